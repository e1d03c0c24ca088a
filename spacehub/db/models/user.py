"""
User account, login credential and MFA models.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spacehub.db.database import Base
from spacehub.db.models.base import MutableFieldsMixin, TimestampMixin

if TYPE_CHECKING:
    from spacehub.db.models.tier import TierModel


AUTH_TYPE_LOCAL = "local"
AUTH_TYPE_GOOGLE = "google"
AUTH_TYPE_FACEBOOK = "facebook"
EXTERNAL_AUTH_TYPES = (AUTH_TYPE_GOOGLE, AUTH_TYPE_FACEBOOK)


class UserModel(TimestampMixin, MutableFieldsMixin, Base):
    """User account. Credentials live in user_auth_credentials."""

    __tablename__ = "users"

    mutable_fields = ("username", "email", "is_active")

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    mfa_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    tier_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("tiers.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    tier: Mapped[Optional["TierModel"]] = relationship(
        "TierModel",
        lazy="selectin",
    )


class UserAuthCredentialModel(TimestampMixin, MutableFieldsMixin, Base):
    """One login method for a user: local password or external provider."""

    __tablename__ = "user_auth_credentials"
    __table_args__ = (
        UniqueConstraint("auth_type", "external_id", name="uq_credential_external"),
    )

    mutable_fields = ("password_hash",)

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
    auth_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    external_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )


class UserMFAModel(TimestampMixin, MutableFieldsMixin, Base):
    """TOTP secret and backup codes for a user."""

    __tablename__ = "user_mfa"

    mutable_fields = ("secret", "backup_codes", "verified")

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    secret: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    backup_codes: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
