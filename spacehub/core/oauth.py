"""
External identity providers (OAuth 2.0 authorization code flow).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from spacehub.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class OAuthUserInfo:
    """Identity returned by a provider."""

    external_id: str
    email: str
    username: str
    provider: str


class OAuthProvider(ABC):
    """Authorization URL, code exchange and user info lookup."""

    name: str

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token."""

    @abstractmethod
    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        ...


class GoogleOAuthProvider(OAuthProvider):
    """Google sign-in over the OAuth 2.0 web server flow."""

    name = "google"

    AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
    SCOPES = (
        "https://www.googleapis.com/auth/userinfo.email",
        "https://www.googleapis.com/auth/userinfo.profile",
    )

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        redirect_url: str,
    ):
        self.http = http_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "state": state,
        }
        return f"{self.AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        try:
            response = await self.http.post(
                self.TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_url,
                    "grant_type": "authorization_code",
                },
            )
            response.raise_for_status()
            token_data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Google code exchange failed: %s", e)
            raise UpstreamError(f"code exchange failed: {e}") from e

        access_token = token_data.get("access_token")
        if not access_token:
            raise UpstreamError("code exchange returned no access token")
        return access_token

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        try:
            response = await self.http.get(
                self.USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Google user info lookup failed: %s", e)
            raise UpstreamError(f"failed getting user info: {e}") from e

        if not data.get("id") or not data.get("email"):
            raise UpstreamError("provider returned incomplete user info")

        return OAuthUserInfo(
            external_id=str(data["id"]),
            email=data["email"],
            username=data.get("name") or data["email"].split("@")[0],
            provider=self.name,
        )
