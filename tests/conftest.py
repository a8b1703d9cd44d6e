"""
Test configuration and fixtures
"""
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

# Set testing environment before the application reads its configuration
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ.pop("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", None)

from social.core import db as db_module  # noqa: E402
from social.core.auth import create_access_token, hash_new_password  # noqa: E402
from social.main import app  # noqa: E402
from social.models.models import Post, User  # noqa: E402

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

requires_postgres = pytest.mark.skipif(
    not TEST_DATABASE_URL,
    reason="TEST_DATABASE_URL is not set",
)


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app without running startup events"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_user(password: str = "secret1", **overrides) -> User:
    """Build a user record the way the database would return it"""
    salt, hashed_password = hash_new_password(password)
    fields = {
        "id": uuid4(),
        "name": "Alice",
        "email": "alice@x.com",
        "salt": salt,
        "hashed_password": hashed_password,
        "created_at": datetime.now(UTC),
    }
    fields.update(overrides)
    return User(**fields)


def make_post(user: User, text: str = "hello", **overrides) -> Post:
    fields = {
        "id": uuid4(),
        "user_id": user.id,
        "user_name": user.name,
        "text": text,
        "created_at": datetime.now(UTC),
    }
    fields.update(overrides)
    return Post(**fields)


def auth_headers_for(user: User) -> dict:
    """Generate authentication headers for a user"""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def alice() -> User:
    return make_user()


@pytest.fixture
def bob() -> User:
    return make_user(name="Bob", email="bob@x.com", password="hunter22")


@pytest.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh PostgreSQL schema for each test; requires TEST_DATABASE_URL"""
    if not TEST_DATABASE_URL:
        pytest.skip("TEST_DATABASE_URL is not set")
    await db_module.init_db(TEST_DATABASE_URL)
    async with db_module.get_connection() as connection:
        await connection.execute("TRUNCATE comments, posts, users")
    try:
        yield
    finally:
        await db_module.close_db()
