"""
API router aggregating all route modules.
"""

from fastapi import APIRouter

from spacehub.api.routes import (
    api_keys,
    auth,
    chat,
    documents,
    health,
    invitations,
    mfa,
    public_api,
    spaces,
    tiers,
    users,
)

router = APIRouter()

# Include all route modules
router.include_router(health.router, prefix="/health", tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(mfa.router, prefix="/mfa", tags=["MFA"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(users.crud_router, prefix="/users", tags=["Users"])
router.include_router(tiers.router, prefix="/tiers", tags=["Tiers"])
router.include_router(spaces.router, prefix="/spaces", tags=["Spaces"])
router.include_router(api_keys.router, prefix="/spaces", tags=["Space API Keys"])
router.include_router(invitations.router, prefix="/invitations", tags=["Invitations"])
router.include_router(documents.router, prefix="/documents", tags=["Documents"])
router.include_router(chat.router, prefix="/chat", tags=["Chat"])
router.include_router(public_api.router, prefix="/public", tags=["Public API"])
