"""
Space, role catalog and membership models.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spacehub.db.database import Base
from spacehub.db.models.base import MutableFieldsMixin, TimestampMixin

if TYPE_CHECKING:
    from spacehub.db.models.user import UserModel


class SpaceModel(TimestampMixin, MutableFieldsMixin, Base):
    """A workspace holding documents and members."""

    __tablename__ = "spaces"

    mutable_fields = ("name", "description", "is_public")

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    is_public: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    document_limit: Mapped[int] = mapped_column(
        Integer,
        default=10,
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


class SpaceRoleModel(TimestampMixin, MutableFieldsMixin, Base):
    """Fixed role catalog: 1 owner, 2 editor, 3 viewer."""

    __tablename__ = "space_roles"

    mutable_fields = ("name", "permission")

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
    )
    name: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )
    permission: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )


class SpaceUserModel(TimestampMixin, MutableFieldsMixin, Base):
    """Membership of a user in a space, at most one per pair."""

    __tablename__ = "space_users"
    __table_args__ = (
        UniqueConstraint("user_id", "space_id", name="uq_space_user"),
    )

    mutable_fields = ("space_role_id",)

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    space_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("spaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    space_role_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("space_roles.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    user: Mapped["UserModel"] = relationship(
        "UserModel",
        lazy="selectin",
    )
    role: Mapped[Optional["SpaceRoleModel"]] = relationship(
        "SpaceRoleModel",
        lazy="selectin",
    )
