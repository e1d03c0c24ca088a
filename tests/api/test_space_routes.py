"""
API tests for space, membership, invitation and API key endpoints.
"""

import pytest
from fastapi import status

from spacehub.core.roles import SpaceRole


class TestSpaceEndpoints:
    """Tests for /api/spaces."""

    @pytest.mark.asyncio
    async def test_create_space(self, test_client, owner):
        response = await test_client.post(
            "/api/spaces",
            json={"name": "Lab", "description": "Lab notes", "isPublic": True},
            headers=owner.headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["name"] == "Lab"
        assert data["isPublic"] is True
        assert data["role"] == "owner"
        assert data["memberCount"] == 1

    @pytest.mark.asyncio
    async def test_create_space_over_tier_limit(self, test_client, make_user, tier_id):
        user = await make_user("Limited", tier_id=tier_id)
        for name in ("One", "Two"):
            created = await test_client.post("/api/spaces", json={"name": name}, headers=user.headers)
            assert created.status_code == status.HTTP_201_CREATED

        response = await test_client.post("/api/spaces", json={"name": "Three"}, headers=user.headers)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()["code"] == "E_LIMIT_EXCEEDED"

    @pytest.mark.asyncio
    async def test_create_space_requires_auth(self, test_client):
        response = await test_client.post("/api/spaces", json={"name": "Lab"})

        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    @pytest.mark.asyncio
    async def test_private_space_visibility(self, test_client, space_id, viewer, outsider):
        member_view = await test_client.get(f"/api/spaces/{space_id}", headers=viewer.headers)
        outsider_view = await test_client.get(f"/api/spaces/{space_id}", headers=outsider.headers)
        anonymous_view = await test_client.get(f"/api/spaces/{space_id}")

        assert member_view.status_code == status.HTTP_200_OK
        assert member_view.json()["role"] == "viewer"
        assert member_view.json()["memberCount"] == 3
        assert outsider_view.status_code == status.HTTP_403_FORBIDDEN
        assert anonymous_view.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_public_space_is_readable_anonymously(self, test_client, make_space, owner):
        public_id = await make_space(owner.id, name="Open", is_public=True)

        response = await test_client.get(f"/api/spaces/{public_id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] is None

    @pytest.mark.asyncio
    async def test_missing_space(self, test_client, owner):
        response = await test_client.get("/api/spaces/999", headers=owner.headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_public_listing_is_paginated(self, test_client, make_space, owner):
        for i in range(3):
            await make_space(owner.id, name=f"Open {i}", is_public=True)
        await make_space(owner.id, name="Closed")

        response = await test_client.get("/api/spaces/public", params={"page": 2, "page_size": 2})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [space["name"] for space in data["data"]] == ["Open 2"]
        assert data["pagination"]["totalItems"] == 3
        assert data["pagination"]["hasPrev"] is True
        assert data["pagination"]["hasNext"] is False

    @pytest.mark.asyncio
    async def test_role_catalog(self, test_client):
        response = await test_client.get("/api/spaces/roles")

        assert [role["name"] for role in response.json()] == ["owner", "editor", "viewer"]

    @pytest.mark.asyncio
    async def test_owner_patches_space(self, test_client, space_id, owner):
        response = await test_client.patch(
            f"/api/spaces/{space_id}", json={"isPublic": True}, headers=owner.headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["isPublic"] is True
        assert response.json()["name"] == "Research"

    @pytest.mark.asyncio
    async def test_editor_cannot_update_space(self, test_client, space_id, editor):
        response = await test_client.put(
            f"/api/spaces/{space_id}", json={"name": "Renamed"}, headers=editor.headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_limits_cannot_be_patched(self, test_client, space_id, owner):
        response = await test_client.patch(
            f"/api/spaces/{space_id}", json={"apiCallLimit": 100000}, headers=owner.headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["apiCallLimit"] == 100

    @pytest.mark.asyncio
    async def test_delete_space(self, test_client, space_id, owner, rag_server):
        response = await test_client.delete(f"/api/spaces/{space_id}", headers=owner.headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert ("DELETE", "/space") in rag_server.paths()
        gone = await test_client.get(f"/api/spaces/{space_id}", headers=owner.headers)
        assert gone.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_space_rag_failure(self, test_client, space_id, owner, rag_server):
        rag_server.fail = True

        response = await test_client.delete(f"/api/spaces/{space_id}", headers=owner.headers)

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        rag_server.fail = False
        still_there = await test_client.get(f"/api/spaces/{space_id}", headers=owner.headers)
        assert still_there.status_code == status.HTTP_200_OK


class TestMembershipEndpoints:
    """Tests for joining, roles and leaving."""

    @pytest.mark.asyncio
    async def test_join_public_space(self, test_client, make_space, owner, outsider):
        public_id = await make_space(owner.id, is_public=True)

        response = await test_client.post(f"/api/spaces/{public_id}/join", headers=outsider.headers)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["role"] == "viewer"
        assert data["user"]["id"] == outsider.id

    @pytest.mark.asyncio
    async def test_join_private_space(self, test_client, space_id, outsider):
        response = await test_client.post(f"/api/spaces/{space_id}/join", headers=outsider.headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_list_members(self, test_client, space_id, viewer):
        response = await test_client.get(f"/api/spaces/{space_id}/members", headers=viewer.headers)

        assert response.status_code == status.HTTP_200_OK
        assert sorted(member["role"] for member in response.json()) == ["editor", "owner", "viewer"]

    @pytest.mark.asyncio
    async def test_my_role(self, test_client, space_id, editor):
        response = await test_client.get(f"/api/spaces/{space_id}/role", headers=editor.headers)

        assert response.json() == {"roleId": 2, "role": "editor"}

    @pytest.mark.asyncio
    async def test_change_member_role(self, test_client, space_id, owner, viewer):
        response = await test_client.put(
            f"/api/spaces/{space_id}/members/{viewer.id}",
            json={"roleId": int(SpaceRole.EDITOR)},
            headers=owner.headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] == "editor"

    @pytest.mark.asyncio
    async def test_last_owner_cannot_be_demoted(self, test_client, space_id, owner):
        response = await test_client.put(
            f"/api/spaces/{space_id}/members/{owner.id}",
            json={"roleId": int(SpaceRole.VIEWER)},
            headers=owner.headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_remove_member(self, test_client, space_id, owner, viewer):
        response = await test_client.delete(
            f"/api/spaces/{space_id}/members/{viewer.id}", headers=owner.headers
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        role = await test_client.get(f"/api/spaces/{space_id}/role", headers=viewer.headers)
        assert role.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_leave_space(self, test_client, space_id, editor, owner):
        left = await test_client.post(f"/api/spaces/{space_id}/leave", headers=editor.headers)
        owner_leaves = await test_client.post(f"/api/spaces/{space_id}/leave", headers=owner.headers)

        assert left.status_code == status.HTTP_204_NO_CONTENT
        assert owner_leaves.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_invitation_link_flow(self, test_client, space_id, editor, outsider):
        link = await test_client.post(
            f"/api/spaces/{space_id}/invitation-link",
            json={"roleId": int(SpaceRole.VIEWER)},
            headers=editor.headers,
        )
        assert link.status_code == status.HTTP_200_OK
        data = link.json()
        assert data["url"] == f"http://web.test/spaces/join?token={data['token']}"

        joined = await test_client.post(
            "/api/spaces/join-with-token", json={"token": data["token"]}, headers=outsider.headers
        )

        assert joined.json() == {"spaceId": space_id}
        role = await test_client.get(f"/api/spaces/{space_id}/role", headers=outsider.headers)
        assert role.json()["role"] == "viewer"

    @pytest.mark.asyncio
    async def test_usage(self, test_client, space_id, viewer, outsider):
        usage = await test_client.get(f"/api/spaces/{space_id}/usage", headers=viewer.headers)
        denied = await test_client.get(f"/api/spaces/{space_id}/usage", headers=outsider.headers)

        assert usage.json() == {
            "spaceId": space_id,
            "apiCallsToday": 0,
            "apiCallLimit": 100,
            "rateLimited": False,
        }
        assert denied.status_code == status.HTTP_403_FORBIDDEN


class TestInvitationEndpoints:
    """Tests for /api/invitations."""

    async def invite(self, test_client, space_id, inviter, **invitee):
        return await test_client.post(
            "/api/invitations",
            json={"spaceId": space_id, "roleId": int(SpaceRole.VIEWER), **invitee},
            headers=inviter.headers,
        )

    @pytest.mark.asyncio
    async def test_invite_accept(self, test_client, space_id, owner, outsider):
        created = await self.invite(test_client, space_id, owner, invitedEmail=outsider.email)
        assert created.status_code == status.HTTP_201_CREATED
        invitation = created.json()
        assert invitation["invitedUserId"] == outsider.id
        assert invitation["spaceName"] == "Research"

        count = await test_client.get("/api/invitations/count", headers=outsider.headers)
        assert count.json() == {"count": 1}

        accepted = await test_client.post(
            f"/api/invitations/{invitation['id']}/accept", headers=outsider.headers
        )
        assert accepted.status_code == status.HTTP_200_OK
        assert accepted.json()["role"] == "viewer"

        mine = await test_client.get("/api/invitations", headers=outsider.headers)
        assert mine.json() == []

    @pytest.mark.asyncio
    async def test_invite_requires_invitee(self, test_client, space_id, owner):
        response = await self.invite(test_client, space_id, owner)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_viewer_cannot_invite(self, test_client, space_id, viewer, outsider):
        response = await self.invite(test_client, space_id, viewer, invitedUserId=outsider.id)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_invite_member_is_conflict(self, test_client, space_id, owner, viewer):
        response = await self.invite(test_client, space_id, owner, invitedUserId=viewer.id)

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_only_invitee_can_accept(self, test_client, space_id, owner, outsider, viewer):
        created = await self.invite(test_client, space_id, owner, invitedUserId=outsider.id)

        response = await test_client.post(
            f"/api/invitations/{created.json()['id']}/accept", headers=viewer.headers
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_reject(self, test_client, space_id, owner, outsider):
        created = await self.invite(test_client, space_id, owner, invitedUserId=outsider.id)

        response = await test_client.post(
            f"/api/invitations/{created.json()['id']}/reject", headers=outsider.headers
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        count = await test_client.get("/api/invitations/count", headers=outsider.headers)
        assert count.json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_cancel_and_space_listing(self, test_client, space_id, owner, editor, outsider):
        await self.invite(test_client, space_id, owner, invitedUserId=outsider.id)
        listed = await test_client.get(f"/api/spaces/{space_id}/invitations", headers=editor.headers)
        assert [invitation["invitedUserId"] for invitation in listed.json()] == [outsider.id]

        cancelled = await test_client.delete(
            f"/api/invitations/spaces/{space_id}/users/{outsider.id}", headers=editor.headers
        )

        assert cancelled.status_code == status.HTTP_204_NO_CONTENT
        listed = await test_client.get(f"/api/spaces/{space_id}/invitations", headers=editor.headers)
        assert listed.json() == []


class TestAPIKeyEndpoints:
    """Tests for /api/spaces/{space_id}/api-keys and the public API."""

    @pytest.mark.asyncio
    async def test_key_lifecycle(self, test_client, space_id, owner, viewer):
        created = await test_client.post(
            f"/api/spaces/{space_id}/api-keys",
            json={"name": "Widget", "description": "site search"},
            headers=owner.headers,
        )
        assert created.status_code == status.HTTP_201_CREATED
        key = created.json()
        api_headers = {"Authorization": f"Bearer {key['token']}"}

        listed = await test_client.get(f"/api/spaces/{space_id}/api-keys", headers=viewer.headers)
        assert [(item["id"], item["token"]) for item in listed.json()] == [(key["id"], None)]
        fetched = await test_client.get(
            f"/api/spaces/{space_id}/api-keys/{key['id']}", headers=owner.headers
        )
        assert fetched.json()["token"] == key["token"]

        space = await test_client.get("/api/public/space", headers=api_headers)
        assert space.status_code == status.HTTP_200_OK
        assert space.json()["id"] == space_id

        deleted = await test_client.delete(
            f"/api/spaces/{space_id}/api-keys/{key['id']}", headers=owner.headers
        )
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

        revoked = await test_client.get("/api/public/space", headers=api_headers)
        assert revoked.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_editor_cannot_create_key(self, test_client, space_id, editor):
        response = await test_client.post(
            f"/api/spaces/{space_id}/api-keys", json={"name": "Nope"}, headers=editor.headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_user_token_is_not_an_api_key(self, test_client, owner):
        response = await test_client.get("/api/public/space", headers=owner.headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
