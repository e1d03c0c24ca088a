"""
Pydantic schemas for API responses shared across route modules.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from spacehub.core.auth import TokenPair
from spacehub.core.pagination import Pagination
from spacehub.core.roles import SpaceRole
from spacehub.db.models import (
    ChatHistoryModel,
    DocumentModel,
    SpaceAPIKeyModel,
    SpaceInvitationModel,
    SpaceModel,
    SpaceRoleModel,
    SpaceUserModel,
    TierModel,
    UserModel,
    UserQuerySessionModel,
)


# ============ Pagination ============

class PaginationInfo(BaseModel):
    """Page metadata returned with every list."""

    currentPage: int
    pageSize: int
    totalPages: int
    totalItems: int
    hasNext: bool
    hasPrev: bool

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> "PaginationInfo":
        return cls(
            currentPage=pagination.page,
            pageSize=pagination.page_size,
            totalPages=pagination.total_pages,
            totalItems=pagination.total,
            hasNext=pagination.has_next,
            hasPrev=pagination.has_prev,
        )


# ============ Tier Schemas ============

class TierResponse(BaseModel):
    """Plan limits."""

    id: int
    name: str
    description: Optional[str] = None
    spaceLimit: int
    documentLimit: int
    queryHistoryLimit: int
    queryLimit: int
    fileSizeLimitKb: int
    apiCallLimit: int
    costMonth: Decimal
    discount: Decimal
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, tier: TierModel) -> "TierResponse":
        return cls(
            id=tier.id,
            name=tier.name,
            description=tier.description,
            spaceLimit=tier.space_limit,
            documentLimit=tier.document_limit,
            queryHistoryLimit=tier.query_history_limit,
            queryLimit=tier.query_limit,
            fileSizeLimitKb=tier.file_size_limit_kb,
            apiCallLimit=tier.api_call_limit,
            costMonth=tier.cost_month,
            discount=tier.discount,
            createdAt=tier.created_at,
            updatedAt=tier.updated_at,
        )


# ============ User Schemas ============

class UserResponse(BaseModel):
    """User information response."""

    id: int
    username: str
    email: Optional[str] = None
    isActive: bool
    mfaEnabled: bool
    tierId: Optional[int] = None
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, user: UserModel) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            isActive=user.is_active,
            mfaEnabled=user.mfa_enabled,
            tierId=user.tier_id,
            createdAt=user.created_at,
            updatedAt=user.updated_at,
        )


class MemberSummary(BaseModel):
    """Public identity of another user."""

    id: int
    username: str
    email: Optional[str] = None

    @classmethod
    def from_model(cls, user: UserModel) -> "MemberSummary":
        return cls(id=user.id, username=user.username, email=user.email)


# ============ Space Schemas ============

class RoleResponse(BaseModel):
    """Entry of the role catalog."""

    id: int
    name: str
    permission: int

    @classmethod
    def from_model(cls, role: SpaceRoleModel) -> "RoleResponse":
        return cls(id=role.id, name=role.name, permission=role.permission)


class SpaceResponse(BaseModel):
    """Space metadata."""

    id: int
    name: str
    description: Optional[str] = None
    isPublic: bool
    documentLimit: int
    fileSizeLimitKb: int
    apiCallLimit: int
    memberCount: Optional[int] = None
    role: Optional[str] = Field(None, description="Caller's role, when known")
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(
        cls,
        space: SpaceModel,
        member_count: Optional[int] = None,
        role: Optional[SpaceRole] = None,
    ) -> "SpaceResponse":
        return cls(
            id=space.id,
            name=space.name,
            description=space.description,
            isPublic=space.is_public,
            documentLimit=space.document_limit,
            fileSizeLimitKb=space.file_size_limit_kb,
            apiCallLimit=space.api_call_limit,
            memberCount=member_count,
            role=role.label if role else None,
            createdAt=space.created_at,
            updatedAt=space.updated_at,
        )


class MemberResponse(BaseModel):
    """Membership of a user in a space."""

    userId: int
    spaceId: int
    roleId: Optional[int] = None
    role: Optional[str] = None
    user: MemberSummary
    joinedAt: datetime

    @classmethod
    def from_model(cls, membership: SpaceUserModel) -> "MemberResponse":
        return cls(
            userId=membership.user_id,
            spaceId=membership.space_id,
            roleId=membership.space_role_id,
            role=membership.role.name if membership.role else None,
            user=MemberSummary.from_model(membership.user),
            joinedAt=membership.created_at,
        )


class InvitationResponse(BaseModel):
    """Pending invitation."""

    id: int
    spaceId: int
    spaceName: Optional[str] = None
    roleId: Optional[int] = None
    role: Optional[str] = None
    invitedUserId: int
    invitedUser: Optional[MemberSummary] = None
    inviterId: Optional[int] = None
    inviter: Optional[MemberSummary] = None
    status: str
    createdAt: datetime

    @classmethod
    def from_model(cls, invitation: SpaceInvitationModel) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            spaceId=invitation.space_id,
            spaceName=invitation.space.name if invitation.space else None,
            roleId=invitation.space_role_id,
            role=invitation.role.name if invitation.role else None,
            invitedUserId=invitation.invited_user_id,
            invitedUser=(
                MemberSummary.from_model(invitation.invited_user)
                if invitation.invited_user
                else None
            ),
            inviterId=invitation.inviter_id,
            inviter=MemberSummary.from_model(invitation.inviter) if invitation.inviter else None,
            status=invitation.status,
            createdAt=invitation.created_at,
        )


# ============ API Key Schemas ============

class APIKeyResponse(BaseModel):
    """Space API key; ``token`` is only filled in for space owners."""

    id: int
    spaceId: int
    name: str
    description: Optional[str] = None
    token: Optional[str] = None
    createdAt: datetime

    @classmethod
    def from_model(cls, key: SpaceAPIKeyModel, token: Optional[str]) -> "APIKeyResponse":
        return cls(
            id=key.id,
            spaceId=key.space_id,
            name=key.name,
            description=key.description,
            token=token,
            createdAt=key.created_at,
        )


# ============ Document Schemas ============

class DocumentResponse(BaseModel):
    """Document metadata."""

    id: int
    spaceId: int
    name: str
    description: Optional[str] = None
    mimeType: Optional[str] = None
    size: int = Field(..., ge=0, description="File size in bytes")
    fileUrl: str
    processingStatus: int
    isPrivate: bool
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, document: DocumentModel) -> "DocumentResponse":
        return cls(
            id=document.id,
            spaceId=document.space_id,
            name=document.name,
            description=document.description,
            mimeType=document.mime_type,
            size=document.size,
            fileUrl=document.file_url,
            processingStatus=document.processing_status,
            isPrivate=document.is_private,
            createdAt=document.created_at,
            updatedAt=document.updated_at,
        )


# ============ Chat Schemas ============

class ChatSessionResponse(BaseModel):
    """Chat session."""

    id: int
    spaceId: int
    userId: Optional[int] = None
    createdAt: datetime

    @classmethod
    def from_model(cls, chat_session: UserQuerySessionModel) -> "ChatSessionResponse":
        return cls(
            id=chat_session.id,
            spaceId=chat_session.space_id,
            userId=chat_session.user_id,
            createdAt=chat_session.created_at,
        )


class ChatMessageResponse(BaseModel):
    """One entry of a session's history."""

    id: int
    message: dict[str, Any]
    createdAt: datetime

    @classmethod
    def from_model(cls, entry: ChatHistoryModel) -> "ChatMessageResponse":
        return cls(id=entry.id, message=entry.message, createdAt=entry.created_at)


class ChatAnswerResponse(BaseModel):
    """Answer to a chat question."""

    sessionId: int
    queryId: int
    answer: str


# ============ Auth Schemas ============

class TokenResponse(BaseModel):
    """Authentication token response."""

    accessToken: str
    refreshToken: str
    tokenType: str = "bearer"
    expiresAt: datetime

    @classmethod
    def from_pair(cls, tokens: TokenPair) -> "TokenResponse":
        return cls(
            accessToken=tokens.access_token,
            refreshToken=tokens.refresh_token,
            tokenType=tokens.token_type,
            expiresAt=tokens.expires_at,
        )


class AuthResponse(BaseModel):
    """Tokens plus the signed-in user."""

    token: TokenResponse
    user: UserResponse
    isNewUser: bool = False

    @classmethod
    def build(cls, user: UserModel, tokens: TokenPair, is_new_user: bool = False) -> "AuthResponse":
        return cls(
            token=TokenResponse.from_pair(tokens),
            user=UserResponse.from_model(user),
            isNewUser=is_new_user,
        )


class MFAChallengeResponse(BaseModel):
    """Returned by login when a second factor is required."""

    mfaRequired: bool = True
    tempToken: str
