"""
Authentication endpoints: local accounts, OAuth sign-in and token refresh.
"""

from typing import Optional, Union

from fastapi import APIRouter, Query, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr, Field

from spacehub.api.deps import CurrentUserDep, KVStoreDep, OAuthProvidersDep, SessionDep
from spacehub.core.auth import TokenPair, create_token_pair
from spacehub.core.exceptions import NotFoundError
from spacehub.models.schemas import (
    AuthResponse,
    MFAChallengeResponse,
    TokenResponse,
    UserResponse,
)
from spacehub.services.auth_service import AuthService
from spacehub.services.mfa_service import MFAService
from spacehub.services.oauth_service import OAuthService


router = APIRouter()


# Request/Response Models
class RegisterRequest(BaseModel):
    """Registration request."""

    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, description="Minimum 8 characters")


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refreshToken: str


class ExchangeStateRequest(BaseModel):
    """One-time state token handed to the web client after OAuth."""

    state: str


class AuthorizationURLResponse(BaseModel):
    """Where to send the browser to start an OAuth sign-in."""

    url: str
    state: str


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(request: RegisterRequest, session: SessionDep):
    """
    Register a new user account.

    Returns the created user profile (without tokens - login required).
    """
    auth = AuthService(session)
    user = await auth.register(
        username=request.username,
        email=request.email,
        password=request.password,
    )
    return UserResponse.from_model(user)


@router.post("/login", response_model=Union[AuthResponse, MFAChallengeResponse])
async def login(request: LoginRequest, session: SessionDep, kv_store: KVStoreDep):
    """
    Login with email and password.

    Returns JWT access and refresh tokens, or a temporary token to finish
    with ``POST /mfa/login`` when the account has MFA enabled.
    """
    auth = AuthService(session)
    user = await auth.authenticate(request.email, request.password)

    if user.mfa_enabled:
        temp_token = await MFAService(session, kv_store).create_temp_token(user.id)
        return MFAChallengeResponse(tempToken=temp_token)

    return AuthResponse.build(user, create_token_pair(user.id))


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request: RefreshRequest, session: SessionDep):
    """
    Refresh access token using refresh token.

    Returns new access and refresh tokens.
    """
    tokens = await AuthService(session).refresh(request.refreshToken)
    return TokenResponse.from_pair(tokens)


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: CurrentUserDep):
    """
    Get current authenticated user's profile.

    Requires valid access token.
    """
    return UserResponse.from_model(current_user)


@router.get("/{provider}/url", response_model=AuthorizationURLResponse)
async def get_authorization_url(
    provider: str,
    session: SessionDep,
    kv_store: KVStoreDep,
    providers: OAuthProvidersDep,
):
    """Start an OAuth sign-in with ``provider``."""
    url, state = await OAuthService(session, kv_store, providers).authorization_url(provider)
    return AuthorizationURLResponse(url=url, state=state)


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    session: SessionDep,
    kv_store: KVStoreDep,
    providers: OAuthProvidersDep,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
):
    """
    OAuth redirect target.

    Always redirects to the web client: an error page, the MFA step, or a
    success page carrying a one-time state token.
    """
    oauth = OAuthService(session, kv_store, providers)
    redirect_url = await oauth.handle_callback(provider, code, state)
    return RedirectResponse(redirect_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.post("/exchange-state", response_model=AuthResponse)
async def exchange_state(
    request: ExchangeStateRequest,
    session: SessionDep,
    kv_store: KVStoreDep,
    providers: OAuthProvidersDep,
):
    """
    Trade a state token from the OAuth success redirect for tokens.

    Each state token can be exchanged once.
    """
    auth_data = await OAuthService(session, kv_store, providers).exchange_state(request.state)

    user = await AuthService(session).get_user_by_id(auth_data["user_id"])
    if user is None:
        raise NotFoundError(f"user {auth_data['user_id']} no longer exists", "User not found.")

    tokens = TokenPair(
        access_token=auth_data["access_token"],
        refresh_token=auth_data["refresh_token"],
        expires_at=auth_data["expires_at"],
    )
    return AuthResponse.build(user, tokens, is_new_user=auth_data["is_new_user"])
