"""
TOTP multi-factor authentication.

Setup stores an unverified secret; verifying the first code enables MFA on
the user. Login for MFA users goes through a short-lived temporary token
kept in the ephemeral key-value store.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

import pyotp
from sqlalchemy.ext.asyncio import AsyncSession

from spacehub.config import settings
from spacehub.core.auth import TokenPair, create_token_pair
from spacehub.core.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from spacehub.core.kv_store import KVStore
from spacehub.db.database import transaction
from spacehub.db.models import UserMFAModel, UserModel
from spacehub.db.repositories import UserMFARepository, UserRepository

logger = logging.getLogger(__name__)


TEMP_TOKEN_PREFIX = "mfa:temp:"


@dataclass
class MFASetup:
    """Material shown to the user once during setup."""

    secret: str
    provisioning_uri: str
    backup_codes: list[str]


def generate_backup_codes(count: int) -> list[str]:
    """Codes shaped like ``a1b2-c3d4``."""
    return [f"{secrets.token_hex(2)}-{secrets.token_hex(2)}" for _ in range(count)]


class MFAService:
    """TOTP setup, verification and the MFA login step."""

    def __init__(
        self,
        session: AsyncSession,
        kv_store: KVStore,
        issuer: str = settings.mfa_issuer,
        backup_code_count: int = settings.mfa_backup_code_count,
        temp_token_ttl_seconds: int = settings.mfa_temp_token_ttl_seconds,
    ):
        self.session = session
        self.kv_store = kv_store
        self.issuer = issuer
        self.backup_code_count = backup_code_count
        self.temp_token_ttl_seconds = temp_token_ttl_seconds
        self.users = UserRepository(session)
        self.mfa = UserMFARepository(session)

    async def setup(self, user: UserModel) -> MFASetup:
        """
        Generate a new secret and backup codes for ``user``.

        Any earlier unverified setup is replaced.

        Raises:
            ConflictError: If MFA is already enabled
        """
        existing = await self.mfa.find_by_user(user.id)
        if existing is not None:
            if existing.verified:
                raise ConflictError(
                    f"MFA already enabled for user {user.id}",
                    "MFA is already enabled for this account.",
                )
            await self.mfa.delete_by_user(user.id)

        secret = pyotp.random_base32()
        backup_codes = generate_backup_codes(self.backup_code_count)
        await self.mfa.create(
            UserMFAModel(
                user_id=user.id,
                secret=secret,
                backup_codes=backup_codes,
                verified=False,
            )
        )

        account_name = user.email or user.username
        provisioning_uri = pyotp.TOTP(secret).provisioning_uri(
            name=account_name, issuer_name=self.issuer
        )
        return MFASetup(
            secret=secret,
            provisioning_uri=provisioning_uri,
            backup_codes=backup_codes,
        )

    async def verify_setup(self, user_id: int, code: str) -> None:
        """Confirm the first TOTP code and enable MFA in one transaction."""
        mfa = await self.mfa.find_by_user(user_id)
        if mfa is None:
            raise NotFoundError(f"no MFA setup for user {user_id}", "MFA setup not found.")

        if not pyotp.TOTP(mfa.secret).verify(code, valid_window=1):
            raise ValidationError("invalid verification code", "Invalid verification code.")

        user = await self.users.get_by_id(user_id)
        async with transaction(self.session):
            mfa.verified = True
            user.mfa_enabled = True
            await self.mfa.flush()

        logger.info("Enabled MFA for user %d", user_id)

    async def disable(self, user_id: int) -> None:
        user = await self.users.get_by_id(user_id)
        if not user.mfa_enabled:
            raise ValidationError(
                f"MFA not enabled for user {user_id}",
                "MFA is not enabled for this account.",
            )

        async with transaction(self.session):
            await self.mfa.delete_by_user(user_id)
            user.mfa_enabled = False
            await self.users.flush()

        logger.info("Disabled MFA for user %d", user_id)

    async def is_enabled(self, user_id: int) -> bool:
        user = await self.users.find_by_id(user_id)
        return user is not None and user.mfa_enabled

    async def verify_code(self, user_id: int, code: str, use_backup_code: bool = False) -> bool:
        """Check a TOTP code, or consume a backup code."""
        mfa = await self.mfa.find_by_user(user_id)
        if mfa is None or not mfa.verified:
            return False

        if use_backup_code:
            if code not in mfa.backup_codes:
                return False
            # Reassign so the JSON column is flagged dirty
            mfa.backup_codes = [c for c in mfa.backup_codes if c != code]
            await self.mfa.flush()
            logger.info("User %d used a backup code", user_id)
            return True

        return pyotp.TOTP(mfa.secret).verify(code, valid_window=1)

    async def create_temp_token(self, user_id: int) -> str:
        """Token that stands for a completed first factor."""
        token = secrets.token_urlsafe(32)
        await self.kv_store.set(
            f"{TEMP_TOKEN_PREFIX}{token}", user_id, self.temp_token_ttl_seconds
        )
        return token

    async def resolve_temp_token(self, token: str) -> Optional[int]:
        user_id = await self.kv_store.get(f"{TEMP_TOKEN_PREFIX}{token}")
        return int(user_id) if user_id is not None else None

    async def complete_login(
        self, temp_token: str, code: str, use_backup_code: bool = False
    ) -> tuple[UserModel, TokenPair]:
        """
        Second login step for MFA users.

        The temporary token is consumed only when the code is valid.

        Raises:
            UnauthorizedError: On an unknown/expired token or a wrong code
        """
        user_id = await self.resolve_temp_token(temp_token)
        if user_id is None:
            raise UnauthorizedError(
                "MFA temporary token expired or invalid",
                "Invalid or expired temporary token.",
            )

        if not await self.verify_code(user_id, code, use_backup_code):
            raise UnauthorizedError(f"invalid MFA code for user {user_id}", "Invalid MFA code.")

        await self.kv_store.delete(f"{TEMP_TOKEN_PREFIX}{temp_token}")
        user = await self.users.get_by_id(user_id)
        return user, create_token_pair(user.id)
