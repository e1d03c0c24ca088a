"""
Tests for user lookups, memberships and tier usage.
"""

import pytest

from spacehub.core.exceptions import NotFoundError, ValidationError
from spacehub.core.roles import SpaceRole
from spacehub.db.models import UserQueryModel, UserQuerySessionModel
from spacehub.services.invitation_service import InvitationService
from spacehub.services.user_service import UserService


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_by_email(self, db_session, owner):
        user = await UserService(db_session).get_by_email(owner.email)

        assert user.id == owner.id

    @pytest.mark.asyncio
    async def test_search_matches_username_and_email(self, db_session, owner, editor, viewer):
        service = UserService(db_session)

        assert [user.id for user in await service.search("EDIT")] == [editor.id]
        assert [user.id for user in await service.search("example.com", limit=2)] == [owner.id, editor.id]
        assert await service.search("   ") == []


class TestMemberships:
    @pytest.mark.asyncio
    async def test_spaces_with_roles(self, db_session, make_space, owner, viewer):
        first = await make_space(owner.id, name="First")
        second = await make_space(viewer.id, name="Second", members={owner.id: SpaceRole.VIEWER})

        spaces = await UserService(db_session).get_spaces(owner.id)

        assert [(space.id, role) for space, role in spaces] == [
            (first, SpaceRole.OWNER),
            (second, SpaceRole.VIEWER),
        ]

    @pytest.mark.asyncio
    async def test_pending_invitations(self, db_session, space_id, owner, outsider):
        await InvitationService(db_session).create_invitation(
            space_id, owner.id, int(SpaceRole.VIEWER), invited_user_id=outsider.id
        )
        service = UserService(db_session)

        invitations = await service.get_invitations(outsider.id)

        assert [invitation.space_id for invitation in invitations] == [space_id]
        assert await service.count_pending_invitations(outsider.id) == 1
        assert await service.count_pending_invitations(owner.id) == 0


class TestDeleteAccount:
    @pytest.mark.asyncio
    async def test_last_owner_cannot_delete_account(self, db_session, space_id, owner):
        service = UserService(db_session)

        with pytest.raises(ValidationError):
            await service.delete(owner.id)

        assert (await service.get_by_id(owner.id)).id == owner.id
        assert await service.members.count_owners(space_id) == 1

    @pytest.mark.asyncio
    async def test_co_owner_can_delete_account(self, db_session, make_space, owner, editor):
        shared = await make_space(owner.id, members={editor.id: SpaceRole.OWNER})
        service = UserService(db_session)

        await service.delete(editor.id)

        with pytest.raises(NotFoundError):
            await service.get_by_id(editor.id)
        assert await service.members.count_owners(shared) == 1

    @pytest.mark.asyncio
    async def test_member_can_delete_account(self, db_session, space_id, viewer):
        service = UserService(db_session)

        await service.delete(viewer.id)

        assert await service.members.find_membership(space_id, viewer.id) is None


class TestTierUsage:
    @pytest.mark.asyncio
    async def test_defaults_without_tier(self, db_session, owner):
        usage = await UserService(db_session).get_tier_usage(owner.id)

        assert usage.tier is None
        assert usage.space_limit == 5
        assert usage.query_limit == 50
        assert usage.space_count == 0

    @pytest.mark.asyncio
    async def test_usage_counts(self, db_session, make_user, make_space, tier_id, viewer):
        user = await make_user("Counted", tier_id=tier_id)
        owned = await make_space(user.id, name="Owned")
        await make_space(viewer.id, name="Joined", members={user.id: SpaceRole.EDITOR})
        chat_session = UserQuerySessionModel(user_id=user.id, space_id=owned)
        db_session.add(chat_session)
        await db_session.flush()
        for question in ("one", "two"):
            db_session.add(UserQueryModel(query_session_id=chat_session.id, query=question))
        await db_session.commit()

        service = UserService(db_session)
        usage = await service.get_tier_usage(user.id)

        assert usage.tier.name == "Starter"
        assert usage.space_limit == 2
        assert usage.query_limit == 3
        assert usage.space_count == 2
        assert usage.owned_space_count == 1
        assert usage.total_queries == 2
        assert usage.queries_today == 2
        assert usage.queries_this_month == 2
        assert await service.is_rate_limited(user.id) is False

        db_session.add(UserQueryModel(query_session_id=chat_session.id, query="three"))
        await db_session.commit()
        assert await service.is_rate_limited(user.id) is True
