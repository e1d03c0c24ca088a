"""
Chat session, query log and chat history models.
"""

from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from spacehub.db.database import Base
from spacehub.db.models.base import MutableFieldsMixin, TimestampMixin


class UserQuerySessionModel(TimestampMixin, MutableFieldsMixin, Base):
    """Chat session of a user (or API key client) inside one space."""

    __tablename__ = "user_query_sessions"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    space_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("spaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class UserQueryModel(TimestampMixin, MutableFieldsMixin, Base):
    """One question asked within a session."""

    __tablename__ = "user_queries"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    query_session_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_query_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    query: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )


class ChatHistoryModel(TimestampMixin, Base):
    """Append-only message log keyed by session."""

    __tablename__ = "chat_histories"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    session_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_query_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
    )
