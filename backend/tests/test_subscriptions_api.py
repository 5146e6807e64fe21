from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy.exc import OperationalError

from backend.subtrack import models
from backend.subtrack.services import SubscriptionService

BASE_URL = "/api/v1/subs"
OWNER_A = uuid.UUID("60601fee-2bf1-4721-ae6f-7636e79a0cba")
OWNER_B = uuid.UUID("1b4e28ba-2fa1-11d2-883f-0016d3cca427")


def _payload(**overrides):
    payload = {
        "service_name": "Yandex Plus",
        "price": 400,
        "user_id": str(OWNER_A),
        "start_date": "07-2025",
    }
    payload.update(overrides)
    return payload


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"message": "service good"}


def test_create_and_read_subscription(client, db_session):
    response = client.post(BASE_URL, json=_payload(end_date="12-2025"))
    assert response.status_code == 201, response.json()
    subscription_id = response.json()["id"]

    stored = db_session.get(models.Subscription, subscription_id)
    assert stored.start_date == date(2025, 7, 1)
    assert stored.end_date == date(2025, 12, 1)

    read = client.get(f"{BASE_URL}/{subscription_id}")
    assert read.status_code == 200
    body = read.json()
    assert body["service_name"] == "Yandex Plus"
    assert body["price"] == 400
    assert body["user_id"] == str(OWNER_A)
    assert body["start_date"] == "07-2025"
    assert body["end_date"] == "12-2025"


def test_create_rejects_invalid_payloads(client):
    assert client.post(BASE_URL, json=_payload(start_date="13-2025")).status_code == 422
    assert client.post(BASE_URL, json=_payload(start_date="2025-07")).status_code == 422
    assert client.post(BASE_URL, json=_payload(price=0)).status_code == 422
    assert client.post(BASE_URL, json=_payload(user_id="nope")).status_code == 422
    inverted = client.post(BASE_URL, json=_payload(start_date="07-2025", end_date="01-2025"))
    assert inverted.status_code == 422


def test_get_missing_subscription_returns_404(client):
    response = client.get(f"{BASE_URL}/999999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Subscription not found"


def test_list_subscriptions_paginates(client, make_subscription):
    for index in range(3):
        make_subscription(service_name=f"Service {index}")

    first = client.get(BASE_URL, params={"page_number": 1, "size": 2})
    assert first.status_code == 200
    data = first.json()
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert data["has_next"] is True
    assert data["has_prev"] is False
    assert [item["service_name"] for item in data["items"]] == ["Service 0", "Service 1"]

    second = client.get(BASE_URL, params={"page_number": 2, "size": 2}).json()
    assert [item["service_name"] for item in second["items"]] == ["Service 2"]
    assert second["has_next"] is False
    assert second["has_prev"] is True


def test_full_update_replaces_every_field(client, make_subscription):
    record = make_subscription(end_date=date(2025, 12, 1))
    response = client.put(
        f"{BASE_URL}/{record.id}",
        json=_payload(service_name="Kinopoisk", price=299, user_id=str(OWNER_B), start_date="01-2026"),
    )
    assert response.status_code == 200
    assert response.json() == {"message": "subscription updated"}

    body = client.get(f"{BASE_URL}/{record.id}").json()
    assert body["service_name"] == "Kinopoisk"
    assert body["price"] == 299
    assert body["user_id"] == str(OWNER_B)
    assert body["start_date"] == "01-2026"
    assert body["end_date"] is None


def test_patch_updates_only_given_fields(client, make_subscription):
    record = make_subscription(price=400)
    response = client.patch(f"{BASE_URL}/{record.id}", json={"price": 450, "end_date": "09-2025"})
    assert response.status_code == 200

    body = client.get(f"{BASE_URL}/{record.id}").json()
    assert body["price"] == 450
    assert body["service_name"] == "Yandex Plus"
    assert body["end_date"] == "09-2025"


def test_patch_rejects_end_before_stored_start(client, make_subscription):
    record = make_subscription(start_date=date(2025, 7, 1))
    response = client.patch(f"{BASE_URL}/{record.id}", json={"end_date": "03-2025"})
    assert response.status_code == 400
    assert response.json()["detail"] == "start_date cannot be after end_date"


def test_patch_missing_subscription_returns_404(client):
    assert client.patch(f"{BASE_URL}/424242", json={"price": 1}).status_code == 404


def test_delete_subscription(client, make_subscription):
    record = make_subscription()
    response = client.delete(f"{BASE_URL}/{record.id}")
    assert response.status_code == 200
    assert response.json() == {"message": "subscription deleted"}
    assert client.get(f"{BASE_URL}/{record.id}").status_code == 404
    assert client.delete(f"{BASE_URL}/{record.id}").status_code == 404


def test_sum_of_empty_store_is_zero(client):
    response = client.get(f"{BASE_URL}/sub_sum", params={"startDate": "01-2025", "endDate": "03-2025"})
    assert response.status_code == 200
    assert response.json() == {"total_sum": 0}


def test_sum_clips_records_to_window(client, make_subscription):
    make_subscription(price=100, start_date=date(2025, 1, 1))
    make_subscription(price=50, start_date=date(2024, 11, 1), end_date=date(2025, 2, 1))
    make_subscription(price=999, start_date=date(2024, 1, 1), end_date=date(2024, 6, 1))

    response = client.get(f"{BASE_URL}/sub_sum", params={"startDate": "01-2025", "endDate": "03-2025"})
    assert response.status_code == 200
    assert response.json() == {"total_sum": 400}


def test_sum_filters_by_user_and_service(client, make_subscription):
    make_subscription(service_name="Netflix", price=100, user_id=OWNER_A, start_date=date(2025, 1, 1))
    make_subscription(service_name="Netflix", price=100, user_id=OWNER_B, start_date=date(2025, 1, 1))
    make_subscription(service_name="Spotify", price=10, user_id=OWNER_A, start_date=date(2025, 1, 1))

    params = {"startDate": "01-2025", "endDate": "03-2025"}
    by_user = client.get(f"{BASE_URL}/sub_sum", params={**params, "userID": str(OWNER_A)})
    assert by_user.json() == {"total_sum": 330}

    by_service = client.get(f"{BASE_URL}/sub_sum", params={**params, "serviceName": "netflix"})
    assert by_service.json() == {"total_sum": 600}

    both = client.get(
        f"{BASE_URL}/sub_sum",
        params={**params, "userID": str(OWNER_B), "serviceName": "NETFLIX"},
    )
    assert both.json() == {"total_sum": 300}

    blank = client.get(f"{BASE_URL}/sub_sum", params={**params, "userID": "", "serviceName": ""})
    assert blank.json() == {"total_sum": 630}


def test_sum_rejects_invalid_input_before_loading_records(client, monkeypatch):
    def _fail(*_args, **_kwargs):
        raise AssertionError("storage must not be queried")

    monkeypatch.setattr(SubscriptionService, "fetch_candidates", staticmethod(_fail))

    cases = [
        {"startDate": "2025-01", "endDate": "03-2025"},
        {"startDate": "01-2025", "endDate": "13-2025"},
        {"startDate": "05-2025", "endDate": "01-2025"},
        {"startDate": "01-2025", "endDate": "03-2025", "userID": "not-a-uuid"},
    ]
    for params in cases:
        response = client.get(f"{BASE_URL}/sub_sum", params=params)
        assert response.status_code == 400, params
        assert response.json()["detail"]


def test_sum_requires_window(client):
    assert client.get(f"{BASE_URL}/sub_sum", params={"startDate": "01-2025"}).status_code == 422


def test_sum_reports_unavailable_storage(client, monkeypatch):
    def _broken_query(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(SubscriptionService, "_candidate_query", staticmethod(_broken_query))

    response = client.get(f"{BASE_URL}/sub_sum", params={"startDate": "01-2025", "endDate": "03-2025"})
    assert response.status_code == 422
    assert response.json()["detail"] == "Cannot calculate sum of subscriptions"


def test_price_above_bigint_range_is_rejected(client, make_subscription):
    assert client.post(BASE_URL, json=_payload(price=2**63)).status_code == 422
    assert client.post(BASE_URL, json=_payload(price=2**63 - 1)).status_code == 201

    record = make_subscription()
    assert client.patch(f"{BASE_URL}/{record.id}", json={"price": 2**63}).status_code == 422


def test_blank_service_name_is_rejected(client, make_subscription):
    assert client.post(BASE_URL, json=_payload(service_name="   ")).status_code == 422

    record = make_subscription()
    assert client.patch(f"{BASE_URL}/{record.id}", json={"service_name": " "}).status_code == 422

    created = client.post(BASE_URL, json=_payload(service_name="  Netflix  "))
    assert created.status_code == 201
    body = client.get(f"{BASE_URL}/{created.json()['id']}").json()
    assert body["service_name"] == "Netflix"


def test_sum_reports_unreadable_record_as_unavailable(client, monkeypatch):
    broken = models.Subscription(
        id=1,
        service_name="Netflix",
        price=-5,
        user_id=OWNER_A,
        start_date=date(2025, 1, 1),
    )

    class _Rows:
        def all(self):
            return [broken]

    monkeypatch.setattr(
        SubscriptionService, "_candidate_query", staticmethod(lambda *_args: _Rows())
    )

    response = client.get(f"{BASE_URL}/sub_sum", params={"startDate": "01-2025", "endDate": "03-2025"})
    assert response.status_code == 422
    assert response.json()["detail"] == "Cannot calculate sum of subscriptions"
