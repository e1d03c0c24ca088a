"""
Multi-factor authentication endpoints.
"""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from spacehub.api.deps import CurrentUserDep, KVStoreDep, SessionDep
from spacehub.core.exceptions import UnauthorizedError
from spacehub.models.schemas import AuthResponse
from spacehub.services.mfa_service import MFAService


router = APIRouter()


class CodeRequest(BaseModel):
    """A TOTP code, or a backup code when ``useBackupCode`` is set."""

    code: str = Field(..., min_length=1)
    useBackupCode: bool = False


class MFALoginRequest(CodeRequest):
    """Second login step."""

    tempToken: str


class MFASetupResponse(BaseModel):
    """Shown once; the client renders the URI as a QR code."""

    secret: str
    provisioningUri: str
    backupCodes: list[str]


class MFAStatusResponse(BaseModel):
    enabled: bool


class CodeCheckResponse(BaseModel):
    valid: bool


@router.get("/status", response_model=MFAStatusResponse)
async def mfa_status(current_user: CurrentUserDep, session: SessionDep, kv_store: KVStoreDep):
    """Whether MFA is enabled for the current user."""
    enabled = await MFAService(session, kv_store).is_enabled(current_user.id)
    return MFAStatusResponse(enabled=enabled)


@router.post("/setup", response_model=MFASetupResponse)
async def setup_mfa(current_user: CurrentUserDep, session: SessionDep, kv_store: KVStoreDep):
    """
    Generate a TOTP secret and backup codes.

    MFA stays off until a first code is confirmed with ``POST /mfa/verify``.
    """
    setup = await MFAService(session, kv_store).setup(current_user)
    return MFASetupResponse(
        secret=setup.secret,
        provisioningUri=setup.provisioning_uri,
        backupCodes=setup.backup_codes,
    )


@router.post("/verify", status_code=status.HTTP_204_NO_CONTENT)
async def verify_mfa_setup(
    request: CodeRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    kv_store: KVStoreDep,
):
    """Confirm the first TOTP code and enable MFA."""
    await MFAService(session, kv_store).verify_setup(current_user.id, request.code)


@router.post("/disable", status_code=status.HTTP_204_NO_CONTENT)
async def disable_mfa(
    request: CodeRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    kv_store: KVStoreDep,
):
    """Turn MFA off. Requires a current code."""
    mfa = MFAService(session, kv_store)
    if not await mfa.verify_code(current_user.id, request.code, request.useBackupCode):
        raise UnauthorizedError(f"invalid MFA code for user {current_user.id}", "Invalid MFA code.")
    await mfa.disable(current_user.id)


@router.post("/verify-code", response_model=CodeCheckResponse)
async def verify_code(
    request: CodeRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    kv_store: KVStoreDep,
):
    """Check a code without signing in. A backup code is used up."""
    valid = await MFAService(session, kv_store).verify_code(
        current_user.id, request.code, request.useBackupCode
    )
    return CodeCheckResponse(valid=valid)


@router.post("/login", response_model=AuthResponse)
async def complete_mfa_login(request: MFALoginRequest, session: SessionDep, kv_store: KVStoreDep):
    """Finish a login that returned an MFA challenge."""
    user, tokens = await MFAService(session, kv_store).complete_login(
        request.tempToken, request.code, request.useBackupCode
    )
    return AuthResponse.build(user, tokens)
