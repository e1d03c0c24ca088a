"""
Shared test fixtures and configuration for pytest.
"""

import os
from types import SimpleNamespace
from typing import AsyncGenerator, Callable, Optional

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["REDIS_URL"] = ""
os.environ["WEB_CLIENT_URL"] = "http://web.test"

import httpx
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from spacehub.core.auth import create_token_pair, hash_password
from spacehub.core.blob_store import LocalBlobStore
from spacehub.core.exceptions import UpstreamError
from spacehub.core.kv_store import InMemoryKVStore
from spacehub.core.oauth import OAuthProvider, OAuthUserInfo
from spacehub.core.rag_client import RAGClient
from spacehub.core.roles import SpaceRole
from spacehub.db.database import Base, enable_sqlite_foreign_keys, get_db_session, init_db
from spacehub.db.models import (
    SpaceModel,
    SpaceUserModel,
    TierModel,
    UserAuthCredentialModel,
    UserModel,
)
from spacehub.db.models.user import AUTH_TYPE_LOCAL
from spacehub.main import app


# Test database URL (in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpassword123"
RAG_BASE_URL = "http://rag.test"


@pytest.fixture
async def async_engine():
    """Create async test database engine with the role catalog seeded."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    await init_db(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


# ============ Collaborator Fixtures ============

class FakeRAGServer:
    """Records requests and answers like the RAG server."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.fail = False
        self.answer = "This is the answer."

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(500, text="rag server exploded")
        if request.url.path == "/chat":
            return httpx.Response(200, json={"output": self.answer})
        return httpx.Response(200, json={"status": "ok"})

    def paths(self) -> list[tuple[str, str]]:
        return [(request.method, request.url.path) for request in self.requests]


class FakeOAuthProvider(OAuthProvider):
    """Provider that accepts one known code."""

    name = "google"

    def __init__(self, user_info: OAuthUserInfo, valid_code: str = "good-code"):
        self.user_info = user_info
        self.valid_code = valid_code

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.test/auth?state={state}"

    async def exchange_code(self, code: str) -> str:
        if code != self.valid_code:
            raise UpstreamError("code exchange failed")
        return "provider-access-token"

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        return self.user_info


@pytest.fixture
def rag_server() -> FakeRAGServer:
    return FakeRAGServer()


@pytest.fixture
async def rag_client(rag_server) -> AsyncGenerator[RAGClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(rag_server.handler)) as http:
        yield RAGClient(http, RAG_BASE_URL)


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(str(tmp_path / "blobs"), "http://files.test")


@pytest.fixture
def kv_store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture
def oauth_provider() -> FakeOAuthProvider:
    return FakeOAuthProvider(
        OAuthUserInfo(
            external_id="google-sub-1",
            email="oauth@example.com",
            username="OAuth User",
            provider="google",
        )
    )


@pytest.fixture
async def test_client(
    db_session, kv_store, rag_client, blob_store, oauth_provider
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database and collaborator overrides."""

    async def override_get_db_session():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db_session] = override_get_db_session

    saved_state = {
        name: getattr(app.state, name)
        for name in ("kv_store", "rag_client", "blob_store", "oauth_providers")
    }
    app.state.kv_store = kv_store
    app.state.rag_client = rag_client
    app.state.blob_store = blob_store
    app.state.oauth_providers = {"google": oauth_provider}

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    for name, value in saved_state.items():
        setattr(app.state, name, value)
    app.dependency_overrides.clear()


# ============ Data Fixtures ============
# Fixtures hand out plain ids, not ORM rows: a rollback inside a request
# expires every row held by the shared session.

def auth_headers_for(user_id: int) -> dict:
    tokens = create_token_pair(user_id)
    return {"Authorization": f"Bearer {tokens.access_token}"}


@pytest.fixture
def make_user(db_session) -> Callable:
    """Factory creating a user with a local password credential."""

    async def _make_user(
        username: str,
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        tier_id: Optional[int] = None,
    ) -> SimpleNamespace:
        email = email or f"{username.lower()}@example.com"
        user = UserModel(username=username, email=email, tier_id=tier_id)
        db_session.add(user)
        await db_session.flush()
        db_session.add(
            UserAuthCredentialModel(
                user_id=user.id,
                auth_type=AUTH_TYPE_LOCAL,
                password_hash=hash_password(password),
            )
        )
        await db_session.commit()
        return SimpleNamespace(
            id=user.id,
            email=email,
            password=password,
            headers=auth_headers_for(user.id),
        )

    return _make_user


@pytest.fixture
def make_space(db_session) -> Callable:
    """Factory creating a space with an owner and optional extra members."""

    async def _make_space(
        owner_id: int,
        name: str = "Research",
        is_public: bool = False,
        members: Optional[dict[int, SpaceRole]] = None,
        **limits,
    ) -> int:
        space = SpaceModel(name=name, is_public=is_public, **limits)
        db_session.add(space)
        await db_session.flush()
        db_session.add(
            SpaceUserModel(user_id=owner_id, space_id=space.id, space_role_id=int(SpaceRole.OWNER))
        )
        for user_id, role in (members or {}).items():
            db_session.add(SpaceUserModel(user_id=user_id, space_id=space.id, space_role_id=int(role)))
        await db_session.commit()
        return space.id

    return _make_space


@pytest.fixture
async def owner(make_user) -> SimpleNamespace:
    return await make_user("Owner")


@pytest.fixture
async def editor(make_user) -> SimpleNamespace:
    return await make_user("Editor")


@pytest.fixture
async def viewer(make_user) -> SimpleNamespace:
    return await make_user("Viewer")


@pytest.fixture
async def outsider(make_user) -> SimpleNamespace:
    return await make_user("Outsider")


@pytest.fixture
async def space_id(make_space, owner, editor, viewer) -> int:
    """Private space with one owner, one editor and one viewer."""
    return await make_space(
        owner.id,
        members={editor.id: SpaceRole.EDITOR, viewer.id: SpaceRole.VIEWER},
    )


@pytest.fixture
async def tier_id(db_session) -> int:
    tier = TierModel(name="Starter", space_limit=2, query_limit=3)
    db_session.add(tier)
    await db_session.commit()
    return tier.id
