"""
Space API key model. The bearer token is derived, never stored.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spacehub.db.database import Base
from spacehub.db.models.base import MutableFieldsMixin, TimestampMixin


class SpaceAPIKeyModel(TimestampMixin, MutableFieldsMixin, Base):
    """Space-scoped credential for automated clients."""

    __tablename__ = "space_api_keys"

    mutable_fields = ("name", "description")

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    space_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("spaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
