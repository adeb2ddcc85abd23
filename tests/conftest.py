"""Test fixtures — a fresh SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own aiosqlite file database under tmp_path, with
   the schema created from metadata. Nothing leaks between tests and no
   server is needed.
2. Services commit for real. The lifecycle relies on conditional UPDATEs
   and unique constraints, which savepoint tricks would hide.
3. The HTTP client overrides get_db so each request opens its own
   session on the test engine, just like production.

Env vars are set before anything imports talentflow.config: bcrypt at
its minimum cost keeps the suite fast.
"""

import os

os.environ.setdefault("TALENTFLOW_ENVIRONMENT", "test")
os.environ.setdefault("TALENTFLOW_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TALENTFLOW_DATABASE_URL", "sqlite+aiosqlite://")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from talentflow.auth.dependencies import get_token_issuer, get_token_verifier  # noqa: E402
from talentflow.auth.jwt import Identity  # noqa: E402
from talentflow.auth.roles import Role  # noqa: E402
from talentflow.db.engine import get_db  # noqa: E402
from talentflow.db.models import Base, User  # noqa: E402
from talentflow.main import app  # noqa: E402
from talentflow.services.auth_service import AuthService  # noqa: E402
from talentflow.services.job_service import JobService, JobStatus  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client running the real auth pipeline against the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Accounts and tokens ─────────────────────────────────


async def create_user(
    session_factory,
    role: Role = Role.CANDIDATE,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
) -> User:
    email = email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com"
    async with session_factory() as db:
        svc = AuthService(db, get_token_issuer(), get_token_verifier())
        return await svc.register(email=email, name=f"Test {role.value}", password=password, role=role)


def identity_for(user: User) -> Identity:
    return Identity(subject_id=str(user.id), email=user.email, role=Role(user.role))


def auth_headers(user: User) -> dict[str, str]:
    token = get_token_issuer().issue_access_token(identity_for(user))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def admin(session_factory) -> User:
    return await create_user(session_factory, Role.ADMIN)


@pytest_asyncio.fixture()
async def candidate(session_factory) -> User:
    return await create_user(session_factory, Role.CANDIDATE)


@pytest.fixture()
def admin_headers(admin) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture()
def candidate_headers(candidate) -> dict[str, str]:
    return auth_headers(candidate)


@pytest_asyncio.fixture()
async def published_job(session_factory, admin):
    async with session_factory() as db:
        return await JobService(db).create_job(
            identity_for(admin),
            title="Backend Engineer",
            description="Python, SQL",
            status=JobStatus.PUBLISHED,
        )
