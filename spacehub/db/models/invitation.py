"""
Space invitation and standing invitation link models.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spacehub.db.database import Base
from spacehub.db.models.base import MutableFieldsMixin, TimestampMixin

if TYPE_CHECKING:
    from spacehub.db.models.space import SpaceModel, SpaceRoleModel
    from spacehub.db.models.user import UserModel


INVITATION_PENDING = "pending"
INVITATION_ACCEPTED = "accepted"
INVITATION_REJECTED = "rejected"


class SpaceInvitationModel(TimestampMixin, MutableFieldsMixin, Base):
    """
    Pending offer of membership at a given role.

    Rows are deleted on accept, reject or cancel, so a stored invitation is
    always pending.
    """

    __tablename__ = "space_invitations"
    __table_args__ = (
        UniqueConstraint("space_id", "invited_user_id", name="uq_space_invitation"),
    )

    mutable_fields = ("space_role_id", "status")

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
    space_role_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("space_roles.id", ondelete="SET NULL"),
        nullable=True,
    )
    invited_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    inviter_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=INVITATION_PENDING,
        nullable=False,
    )

    # Relationships
    space: Mapped["SpaceModel"] = relationship(
        "SpaceModel",
        lazy="selectin",
    )
    role: Mapped[Optional["SpaceRoleModel"]] = relationship(
        "SpaceRoleModel",
        lazy="selectin",
    )
    invited_user: Mapped["UserModel"] = relationship(
        "UserModel",
        foreign_keys=[invited_user_id],
        lazy="selectin",
    )
    inviter: Mapped[Optional["UserModel"]] = relationship(
        "UserModel",
        foreign_keys=[inviter_id],
        lazy="selectin",
    )


class SpaceInvitationLinkModel(TimestampMixin, MutableFieldsMixin, Base):
    """Reusable join token scoped to one role, one per space."""

    __tablename__ = "space_invitation_links"

    mutable_fields = ("space_role_id",)

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    space_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("spaces.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    space_role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("space_roles.id", ondelete="CASCADE"),
        nullable=False,
    )
