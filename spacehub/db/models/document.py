"""
Document model.
"""

from typing import Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spacehub.db.database import Base
from spacehub.db.models.base import MutableFieldsMixin, TimestampMixin


PROCESSING_PENDING = 0
PROCESSING_DONE = 1
PROCESSING_FAILED = 2


class DocumentModel(TimestampMixin, MutableFieldsMixin, Base):
    """Uploaded file owned by exactly one space."""

    __tablename__ = "documents"

    mutable_fields = ("name", "description", "is_private", "processing_status")

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
    mime_type: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    size: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
    )
    file_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
    )
    processing_status: Mapped[int] = mapped_column(
        Integer,
        default=PROCESSING_PENDING,
        nullable=False,
    )
    is_private: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
