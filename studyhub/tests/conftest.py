"""Shared fixtures for StudyHub tests."""

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool

from studyhub.services.auth import Identity

ALICE = Identity(
    id="0a1b2c3d-0000-4000-8000-00000000a11c",
    email="alice@example.com",
    full_name="Alice Author",
)
BOB = Identity(
    id="0a1b2c3d-0000-4000-8000-000000000b0b",
    email="bob@example.com",
    full_name="Bob Reader",
)

TOKENS = {"alice-token": ALICE, "bob-token": BOB}


class FakeAuthProvider:
    """Maps known bearer tokens to identities; anything else is anonymous."""

    def __init__(self, tokens: dict[str, Identity]) -> None:
        self.tokens = tokens
        self.calls: list[str] = []

    async def get_user(self, token: str) -> Identity | None:
        self.calls.append(token)
        return self.tokens.get(token)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons between tests."""
    yield

    # 1. Settings LRU cache
    from studyhub.config import get_settings

    get_settings.cache_clear()

    # 2. Database engine and session factory
    import studyhub.services.database as db_mod

    db_mod._engine = None
    db_mod._session_factory = None

    # 3. Auth provider singleton
    import studyhub.services.auth as auth_mod

    auth_mod._provider = None

    # 4. HTTP client singleton
    import studyhub.services.http_client as http_mod

    http_mod._client = None

    # 5. Blob storage singleton
    import studyhub.services.blob_storage as blob_mod

    blob_mod._images_container_client = None


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from studyhub.config import Settings, get_settings

    test_settings = Settings(
        environment="test",
        database_url="sqlite+aiosqlite://",
        supabase_url="https://auth.example.test",
        supabase_anon_key="test-anon-key",
        azure_storage_account="teststorage",
        azure_images_container="images",
        managed_identity_client_id="test-client-id",
    )

    get_settings.cache_clear()
    monkeypatch.setattr("studyhub.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    # (from studyhub.config import get_settings creates a local binding that
    # the studyhub.config monkeypatch above does not affect)
    for mod_path in [
        "studyhub.services.auth",
        "studyhub.services.blob_storage",
        "studyhub.services.database",
        "studyhub.routers.views",
        "studyhub.main",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


@pytest.fixture
async def engine():
    """In-memory SQLite shared across sessions, with foreign keys enforced."""
    from studyhub.services.database import create_engine, init_models

    engine = create_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def seeded(session_factory):
    """Two users, two categories and three tags."""
    from studyhub.services.tables import Category, Tag, User

    async with session_factory() as s:
        users = [
            User(id=ident.id, email=ident.email, full_name=ident.full_name)
            for ident in (ALICE, BOB)
        ]
        programming = Category(name="Programming", slug="programming", color="#3b82f6")
        maths = Category(name="Mathematics", slug="mathematics")
        python = Tag(name="Python", slug="python")
        algorithms = Tag(name="Algorithms", slug="algorithms")
        beginner = Tag(name="Beginner", slug="beginner")
        s.add_all([*users, programming, maths, python, algorithms, beginner])
        await s.commit()

        return SimpleNamespace(
            alice=ALICE,
            bob=BOB,
            programming=programming.id,
            maths=maths.id,
            python=python.id,
            algorithms=algorithms.id,
            beginner=beginner.id,
        )


@pytest.fixture
def make_post(session_factory, seeded):
    """Create a post through the repository; returns the stored Post row."""
    from studyhub.models.post import PostCreate
    from studyhub.services.posts import PostRepository

    async def _make(title: str, author: Identity = ALICE, **fields):
        fields.setdefault("content", f"# {title}\n\nNotes about {title.lower()}.")
        async with session_factory() as s:
            return await PostRepository(s).create(
                PostCreate(title=title, **fields), author_id=author.id
            )

    return _make


@pytest.fixture
def auth_provider():
    return FakeAuthProvider(dict(TOKENS))


@pytest.fixture
async def client(mock_settings, session_factory, auth_provider):
    """ASGI client with the database and auth provider swapped for fakes."""
    from studyhub.main import app
    from studyhub.services.auth import get_auth_provider
    from studyhub.services.database import get_session

    async def _test_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _test_session
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
