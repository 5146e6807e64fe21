"""Create the subscriptions table."""

from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20251019_0001"
down_revision = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("subscriptions"):
        return

    uuid_type = (
        postgresql.UUID(as_uuid=True)
        if bind.dialect.name == "postgresql"
        else sa.CHAR(36)
    )

    op.create_table(
        "subscriptions",
        sa.Column("subscription_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("service_name", sa.String(length=150), nullable=False),
        sa.Column("price", sa.BigInteger(), nullable=False),
        sa.Column("user_id", uuid_type, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("price >= 0", name="ck_subscriptions_price_non_negative"),
        sa.CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_subscriptions_valid_range",
        ),
    )

    op.create_index(
        "subscriptions_user_service_idx",
        "subscriptions",
        ["user_id", "service_name"],
    )


def downgrade() -> None:
    op.drop_index("subscriptions_user_service_idx", table_name="subscriptions")
    op.drop_table("subscriptions")
