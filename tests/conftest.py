import os
import uuid
from typing import AsyncGenerator, Dict

# Settings are read at import time; the signing key has no default
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth import models  # noqa: E402,F401
from app.auth.security import hash_password  # noqa: E402
from app.auth.store import BcryptCredentialVerifier, SqlAlchemyIdentityStore  # noqa: E402
from app.core.enums import UserRole  # noqa: E402
from app.core.schemas import Principal, UserRecord  # noqa: E402
from app.core.services import SchoolService  # noqa: E402
from app.db.session import Base  # noqa: E402
from app.main import create_app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite://"
PASSWORD = "Secret123!"


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory SQLite database per test, shared across connections."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
def identity_store(session_factory) -> SqlAlchemyIdentityStore:
    return SqlAlchemyIdentityStore(session_factory)


@pytest.fixture()
def school(identity_store) -> SchoolService:
    return SchoolService(identity_store, BcryptCredentialVerifier(), collaborator_timeout=5.0)


@pytest.fixture()
async def users(identity_store, password_hash) -> Dict[str, UserRecord]:
    """admin, two teachers and three students sharing PASSWORD."""
    roles = {
        "admin": UserRole.ADMIN,
        "t1": UserRole.TEACHER,
        "t2": UserRole.TEACHER,
        "s1": UserRole.STUDENT,
        "s2": UserRole.STUDENT,
        "s3": UserRole.STUDENT,
    }
    created = {}
    for username, role in roles.items():
        created[username] = await identity_store.save(
            UserRecord(id=uuid.uuid4(), username=username, password_hash=password_hash, role=role)
        )
    return created


@pytest.fixture()
def principals(users) -> Dict[str, Principal]:
    return {name: Principal(user_id=u.id, role=u.role) for name, u in users.items()}


@pytest.fixture()
async def client(school) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a FastAPI app wired to the test service."""
    app = create_app(school)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def login(client):
    async def _login(username: str, password: str = PASSWORD) -> Dict[str, str]:
        response = await client.post("/api/v1/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture()
def password() -> str:
    return PASSWORD
