"""
Authentication service: local accounts and external identities.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.core.auth import (
    TokenPair,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)
from spacehub.core.exceptions import ConflictError, UnauthorizedError, ValidationError
from spacehub.db.database import transaction
from spacehub.db.models import UserAuthCredentialModel, UserModel
from spacehub.db.models.user import AUTH_TYPE_LOCAL, EXTERNAL_AUTH_TYPES
from spacehub.db.repositories import UserAuthCredentialRepository, UserRepository

logger = logging.getLogger(__name__)


INVALID_CREDENTIALS = "invalid email or password"


class AuthService:
    """Service for authentication and user management."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.credentials = UserAuthCredentialRepository(session)

    async def register(
        self,
        username: str,
        email: str,
        password: str,
    ) -> UserModel:
        """
        Register a new user with a local password credential.

        The user row and the credential are written in one transaction.

        Raises:
            ConflictError: If the email is already registered
        """
        if await self.users.find_by_email(email) is not None:
            raise ConflictError(
                "user with this email already exists",
                "A user with this email already exists.",
            )

        password_hash = hash_password(password)
        async with transaction(self.session):
            user = await self.users.create(UserModel(username=username, email=email))
            await self.credentials.create(
                UserAuthCredentialModel(
                    user_id=user.id,
                    auth_type=AUTH_TYPE_LOCAL,
                    password_hash=password_hash,
                )
            )

        logger.info("Registered user %d", user.id)
        return user

    async def authenticate(self, email: str, password: str) -> UserModel:
        """
        Check an email/password pair.

        Raises:
            UnauthorizedError: On unknown email, wrong password or a
                deactivated account
        """
        user = await self.users.find_by_email(email)
        if user is None:
            raise UnauthorizedError(INVALID_CREDENTIALS, "Invalid email or password.")

        credential = await self.credentials.find_local(user.id)
        if credential is None or credential.password_hash is None:
            raise UnauthorizedError(
                f"user {user.id} has no password set", "Invalid email or password."
            )

        if not verify_password(password, credential.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS, "Invalid email or password.")

        if not user.is_active:
            raise UnauthorizedError(
                f"user {user.id} is deactivated", "User account is deactivated."
            )

        return user

    async def login(self, email: str, password: str) -> tuple[UserModel, TokenPair]:
        """Authenticate and issue a token pair (no MFA step)."""
        user = await self.authenticate(email, password)
        return user, create_token_pair(user.id)

    async def external_auth(
        self,
        auth_type: str,
        external_id: str,
        email: str,
        username: str,
    ) -> tuple[UserModel, bool]:
        """
        Find or create a user from an external identity.

        Returns:
            (user, is_new_user)

        Raises:
            ValidationError: If the provider is not supported
        """
        if auth_type not in EXTERNAL_AUTH_TYPES:
            raise ValidationError(
                f"invalid authentication type {auth_type!r}",
                "Invalid authentication type.",
            )

        is_new_user = False
        async with transaction(self.session):
            user = await self.users.find_by_email(email)
            if user is None:
                is_new_user = True
                user = await self.users.create(UserModel(username=username, email=email))

            credential = await self.credentials.find_by_external_id(auth_type, external_id)
            if credential is None:
                await self.credentials.create(
                    UserAuthCredentialModel(
                        user_id=user.id,
                        auth_type=auth_type,
                        external_id=external_id,
                    )
                )
            elif credential.user_id != user.id:
                raise ConflictError(
                    f"{auth_type} identity {external_id} is linked to user {credential.user_id}",
                    "This external account is linked to another user.",
                )

        if is_new_user:
            logger.info("Created user %d from %s sign-in", user.id, auth_type)
        return user, is_new_user

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Issue a new token pair from a valid refresh token."""
        token_data = decode_token(refresh_token)
        if token_data is None or token_data.token_type != "refresh":
            raise UnauthorizedError("invalid refresh token", "Invalid or expired refresh token.")

        user = await self.get_user_by_id(token_data.user_id)
        if user is None or not user.is_active:
            raise UnauthorizedError(
                f"refresh for unknown or inactive user {token_data.user_id}",
                "Invalid or expired refresh token.",
            )
        return create_token_pair(user.id)

    async def get_user_by_id(self, user_id: int) -> Optional[UserModel]:
        """Get user by ID."""
        return await self.users.find_by_id(user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserModel]:
        """Get user by email."""
        return await self.users.find_by_email(email)
