"""ORM model for user subscriptions."""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    func,
)

from ..database import Base
from ..db_types import GUID


class Subscription(Base):
    """A paid service owned by a user for a range of calendar months.

    ``start_date`` and ``end_date`` always hold the first day of their month;
    a missing ``end_date`` means the subscription is still running.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_subscriptions_price_non_negative"),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_subscriptions_valid_range",
        ),
        Index("subscriptions_user_service_idx", "user_id", "service_name"),
    )

    id = Column("subscription_id", Integer, primary_key=True, autoincrement=True)
    service_name = Column(String(150), nullable=False)
    price = Column(BigInteger, nullable=False)
    user_id = Column(GUID(), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
