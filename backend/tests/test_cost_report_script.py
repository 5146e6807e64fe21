from __future__ import annotations

from contextlib import contextmanager
from datetime import date

import pytest

from backend.subtrack.scripts import cost_report
from backend.subtrack.services import SubscriptionService


@pytest.fixture
def report_session(db_session, monkeypatch):
    @contextmanager
    def _scope():
        yield db_session

    monkeypatch.setattr(cost_report, "session_scope", _scope)
    return db_session


def test_cost_report_prints_total(report_session, make_subscription, capsys):
    make_subscription(price=100, start_date=date(2025, 1, 1))
    make_subscription(price=50, start_date=date(2024, 11, 1), end_date=date(2025, 2, 1))

    exit_code = cost_report.main(["--from", "01-2025", "--to", "03-2025"])

    assert exit_code == cost_report.EXIT_OK
    assert capsys.readouterr().out.strip() == "400"


def test_cost_report_rejects_inverted_window(report_session, capsys):
    exit_code = cost_report.main(["--from", "05-2025", "--to", "01-2025"])

    assert exit_code == cost_report.EXIT_INVALID_INPUT
    assert capsys.readouterr().out == ""


def test_cost_report_reports_unavailable_storage(report_session, monkeypatch):
    from backend.subtrack.services import AggregationUnavailableError

    def _unavailable(*_args, **_kwargs):
        raise AggregationUnavailableError("Cannot calculate sum of subscriptions")

    monkeypatch.setattr(SubscriptionService, "fetch_candidates", staticmethod(_unavailable))

    exit_code = cost_report.main(["--from", "01-2025", "--to", "03-2025", "--user-id", ""])

    assert exit_code == cost_report.EXIT_UNAVAILABLE
