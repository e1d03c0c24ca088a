"""
Repositories: one generic CRUD base plus entity-specific queries.
"""

from spacehub.db.repositories.crud import CrudRepository
from spacehub.db.repositories.user import (
    TierRepository,
    UserAuthCredentialRepository,
    UserMFARepository,
    UserRepository,
)
from spacehub.db.repositories.space import (
    SpaceRepository,
    SpaceRoleRepository,
    SpaceUserRepository,
)
from spacehub.db.repositories.invitation import (
    SpaceInvitationLinkRepository,
    SpaceInvitationRepository,
)
from spacehub.db.repositories.api_key import SpaceAPIKeyRepository
from spacehub.db.repositories.document import DocumentRepository
from spacehub.db.repositories.chat import (
    ChatHistoryRepository,
    UserQueryRepository,
    UserQuerySessionRepository,
)

__all__ = [
    "CrudRepository",
    "TierRepository",
    "UserAuthCredentialRepository",
    "UserMFARepository",
    "UserRepository",
    "SpaceRepository",
    "SpaceRoleRepository",
    "SpaceUserRepository",
    "SpaceInvitationLinkRepository",
    "SpaceInvitationRepository",
    "SpaceAPIKeyRepository",
    "DocumentRepository",
    "ChatHistoryRepository",
    "UserQueryRepository",
    "UserQuerySessionRepository",
]
