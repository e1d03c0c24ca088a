"""
SQLAlchemy ORM models package.

Re-exports all models for convenient imports.
"""

from spacehub.db.models.tier import TierModel
from spacehub.db.models.user import (
    UserModel,
    UserAuthCredentialModel,
    UserMFAModel,
)
from spacehub.db.models.space import (
    SpaceModel,
    SpaceRoleModel,
    SpaceUserModel,
)
from spacehub.db.models.invitation import (
    SpaceInvitationModel,
    SpaceInvitationLinkModel,
)
from spacehub.db.models.api_key import SpaceAPIKeyModel
from spacehub.db.models.document import DocumentModel
from spacehub.db.models.chat import (
    UserQuerySessionModel,
    UserQueryModel,
    ChatHistoryModel,
)

__all__ = [
    # Tier
    "TierModel",
    # User
    "UserModel",
    "UserAuthCredentialModel",
    "UserMFAModel",
    # Space
    "SpaceModel",
    "SpaceRoleModel",
    "SpaceUserModel",
    # Invitation
    "SpaceInvitationModel",
    "SpaceInvitationLinkModel",
    # API key
    "SpaceAPIKeyModel",
    # Document
    "DocumentModel",
    # Chat
    "UserQuerySessionModel",
    "UserQueryModel",
    "ChatHistoryModel",
]
