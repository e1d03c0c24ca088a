"""
Subscription tier (plan limits) model.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spacehub.db.database import Base
from spacehub.db.models.base import MutableFieldsMixin, TimestampMixin


class TierModel(TimestampMixin, MutableFieldsMixin, Base):
    """Numeric usage limits applied to a user's spaces and queries."""

    __tablename__ = "tiers"

    mutable_fields = (
        "name",
        "description",
        "space_limit",
        "document_limit",
        "query_history_limit",
        "query_limit",
        "file_size_limit_kb",
        "api_call_limit",
        "cost_month",
        "discount",
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    space_limit: Mapped[int] = mapped_column(
        Integer,
        default=5,
        nullable=False,
    )
    document_limit: Mapped[int] = mapped_column(
        Integer,
        default=10,
        nullable=False,
    )
    query_history_limit: Mapped[int] = mapped_column(
        Integer,
        default=100,
        nullable=False,
    )
    query_limit: Mapped[int] = mapped_column(
        Integer,
        default=50,
        nullable=False,
    )
    file_size_limit_kb: Mapped[int] = mapped_column(
        Integer,
        default=5120,
        nullable=False,
    )
    api_call_limit: Mapped[int] = mapped_column(
        Integer,
        default=100,
        nullable=False,
    )
    cost_month: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        default=Decimal("0"),
        nullable=False,
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        nullable=False,
    )
