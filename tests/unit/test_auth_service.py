"""
Tests for local registration, login, refresh and external sign-in.
"""

import pytest

from sqlalchemy import func, select

from spacehub.core.auth import create_access_token, decode_token
from spacehub.core.exceptions import ConflictError, UnauthorizedError, ValidationError
from spacehub.db.models import UserAuthCredentialModel, UserModel
from spacehub.services.auth_service import AuthService



async def credential_types(session, user_id: int) -> list[str]:
    result = await session.execute(
        select(UserAuthCredentialModel.auth_type)
        .where(UserAuthCredentialModel.user_id == user_id)
        .order_by(UserAuthCredentialModel.id)
    )
    return list(result.scalars().all())


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_creates_user_and_credential(self, db_session):
        user = await AuthService(db_session).register("Ada", "ada@example.com", "securepassword")

        assert user.id is not None
        assert user.is_active is True
        assert user.mfa_enabled is False
        assert await credential_types(db_session, user.id) == ["local"]

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, db_session, owner):
        with pytest.raises(ConflictError) as exc_info:
            await AuthService(db_session).register("Again", owner.email, "securepassword")

        assert str(exc_info.value) == "user with this email already exists"
        count = (await db_session.execute(select(func.count()).select_from(UserModel))).scalar_one()
        assert count == 1


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_valid_credentials(self, db_session, owner):
        user = await AuthService(db_session).authenticate(owner.email, owner.password)

        assert user.id == owner.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, owner):
        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).authenticate(owner.email, "wrongpassword")

    @pytest.mark.asyncio
    async def test_unknown_email(self, db_session):
        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).authenticate("nobody@example.com", "testpassword123")

    @pytest.mark.asyncio
    async def test_deactivated_user(self, db_session, owner):
        user = await db_session.get(UserModel, owner.id)
        user.is_active = False
        await db_session.commit()

        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).authenticate(owner.email, owner.password)

    @pytest.mark.asyncio
    async def test_external_only_user_has_no_password(self, db_session):
        service = AuthService(db_session)
        await service.external_auth("google", "sub-1", "ext@example.com", "Ext")

        with pytest.raises(UnauthorizedError):
            await service.authenticate("ext@example.com", "testpassword123")

    @pytest.mark.asyncio
    async def test_login_issues_token_pair(self, db_session, owner):
        user, tokens = await AuthService(db_session).login(owner.email, owner.password)

        assert decode_token(tokens.access_token).user_id == user.id
        assert decode_token(tokens.refresh_token).token_type == "refresh"


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_issues_new_pair(self, db_session, owner):
        service = AuthService(db_session)
        _, tokens = await service.login(owner.email, owner.password)

        refreshed = await service.refresh(tokens.refresh_token)

        assert decode_token(refreshed.access_token).user_id == owner.id

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, db_session, owner):
        access_token, _ = create_access_token(owner.id)

        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).refresh(access_token)

    @pytest.mark.asyncio
    async def test_garbage_refresh_token(self, db_session):
        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).refresh("garbage")


class TestExternalAuth:
    @pytest.mark.asyncio
    async def test_new_user(self, db_session):
        user, is_new = await AuthService(db_session).external_auth(
            "google", "sub-1", "new@example.com", "New"
        )

        assert is_new is True
        assert await credential_types(db_session, user.id) == ["google"]

    @pytest.mark.asyncio
    async def test_existing_email_links_identity(self, db_session, owner):
        user, is_new = await AuthService(db_session).external_auth(
            "google", "sub-2", owner.email, "Owner"
        )

        assert is_new is False
        assert user.id == owner.id
        assert await credential_types(db_session, owner.id) == ["local", "google"]

    @pytest.mark.asyncio
    async def test_repeat_sign_in(self, db_session):
        service = AuthService(db_session)
        first, _ = await service.external_auth("google", "sub-3", "again@example.com", "Again")

        second, is_new = await service.external_auth("google", "sub-3", "again@example.com", "Again")

        assert second.id == first.id
        assert is_new is False
        assert await credential_types(db_session, first.id) == ["google"]

    @pytest.mark.asyncio
    async def test_identity_linked_to_other_user(self, db_session, owner, editor):
        service = AuthService(db_session)
        await service.external_auth("google", "sub-4", owner.email, "Owner")

        with pytest.raises(ConflictError):
            await service.external_auth("google", "sub-4", editor.email, "Editor")

    @pytest.mark.asyncio
    async def test_unsupported_provider(self, db_session):
        with pytest.raises(ValidationError):
            await AuthService(db_session).external_auth("myspace", "sub", "x@example.com", "X")
