"""
OAuth sign-in flow.

The provider callback never returns tokens in the redirect. It stores the
auth result under a one-time state token that the web client exchanges,
or, for MFA users, hands out a temporary MFA token instead.
"""

import logging
from typing import Any, Optional
from urllib.parse import urlencode
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.config import settings
from spacehub.core.auth import create_token_pair
from spacehub.core.exceptions import NotFoundError, SpaceHubError, ValidationError
from spacehub.core.kv_store import KVStore
from spacehub.core.oauth import OAuthProvider
from spacehub.services.auth_service import AuthService
from spacehub.services.mfa_service import MFAService

logger = logging.getLogger(__name__)


STATE_TOKEN_PREFIX = "oauth:state:"
AUTHORIZE_STATE_PREFIX = "oauth:authorize:"


class OAuthService:
    """Callback handling and state-token exchange for OAuth providers."""

    def __init__(
        self,
        session: AsyncSession,
        kv_store: KVStore,
        providers: dict[str, OAuthProvider],
        web_client_url: str = settings.web_client_url,
        state_token_ttl_seconds: int = settings.state_token_ttl_seconds,
    ):
        self.kv_store = kv_store
        self.providers = providers
        self.web_client_url = web_client_url.rstrip("/")
        self.state_token_ttl_seconds = state_token_ttl_seconds
        self.auth = AuthService(session)
        self.mfa = MFAService(session, kv_store)

    def get_provider(self, name: str) -> OAuthProvider:
        provider = self.providers.get(name)
        if provider is None:
            raise ValidationError(f"provider {name!r} not supported", "Provider not supported.")
        return provider

    async def authorization_url(self, provider_name: str) -> tuple[str, str]:
        """
        Return (url, state) to start the provider flow.

        The state is remembered so the callback only accepts flows this
        server started.
        """
        provider = self.get_provider(provider_name)
        state = str(uuid4())
        await self.kv_store.set(
            f"{AUTHORIZE_STATE_PREFIX}{state}",
            {"provider": provider_name},
            self.state_token_ttl_seconds,
        )
        return provider.authorization_url(state), state

    def error_redirect(self, code: str, message: str) -> str:
        query = urlencode({"code": code, "message": message})
        return f"{self.web_client_url}/auth/error?{query}"

    async def handle_callback(
        self, provider_name: str, code: Optional[str], state: Optional[str]
    ) -> str:
        """
        Finish the provider flow and return the web client redirect URL.

        ``state`` must be one issued by ``authorization_url`` for the same
        provider; each is accepted once. Failures are reported through the
        error page rather than raised.
        """
        if provider_name not in self.providers:
            return self.error_redirect("invalid_provider", "Provider not supported")
        if not code:
            return self.error_redirect("missing_code", "Authorization code missing")
        if not state:
            return self.error_redirect("missing_state", "Authorization state missing")

        issued = await self.kv_store.pop(f"{AUTHORIZE_STATE_PREFIX}{state}")
        if issued is None or issued.get("provider") != provider_name:
            logger.warning("OAuth callback with unknown state for %s", provider_name)
            return self.error_redirect("invalid_state", "Authorization state invalid or expired")

        provider = self.providers[provider_name]
        try:
            access_token = await provider.exchange_code(code)
        except SpaceHubError as e:
            logger.warning("OAuth code exchange failed: %s", e)
            return self.error_redirect("exchange_failed", "Failed to exchange authorization code")

        try:
            info = await provider.get_user_info(access_token)
        except SpaceHubError as e:
            logger.warning("OAuth user info failed: %s", e)
            return self.error_redirect("user_info_failed", "Failed to retrieve user information")

        try:
            user, is_new_user = await self.auth.external_auth(
                auth_type=info.provider,
                external_id=info.external_id,
                email=info.email,
                username=info.username,
            )
        except SpaceHubError as e:
            logger.warning("External auth failed: %s", e)
            return self.error_redirect("auth_failed", "Authentication failed")

        if user.mfa_enabled:
            temp_token = await self.mfa.create_temp_token(user.id)
            return f"{self.web_client_url}/auth/mfa?{urlencode({'state': temp_token})}"

        tokens = create_token_pair(user.id)
        state = str(uuid4())
        await self.kv_store.set(
            f"{STATE_TOKEN_PREFIX}{state}",
            {
                "user_id": user.id,
                "is_new_user": is_new_user,
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
                "expires_at": tokens.expires_at.isoformat(),
            },
            self.state_token_ttl_seconds,
        )
        return f"{self.web_client_url}/auth/success?{urlencode({'state': state})}"

    async def exchange_state(self, state: str) -> dict[str, Any]:
        """Consume a state token and return the stored auth result."""
        if not state:
            raise ValidationError("empty state token", "Invalid state token.")

        auth_data = await self.kv_store.pop(f"{STATE_TOKEN_PREFIX}{state}")
        if auth_data is None:
            raise NotFoundError(
                "state token expired or invalid", "State token expired or invalid."
            )
        return auth_data
