"""Expose SQLAlchemy models for convenient imports."""

from .subscription import Subscription

__all__ = ["Subscription"]
