"""Pytest configuration and fixtures for API tests."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-signing-key-that-is-long-enough-for-hs256"
os.environ["SEED_ADMIN_EMAIL"] = "admin@example.com"
os.environ["SEED_ADMIN_PASSWORD"] = "AdminPass123"
os.environ["SEED_ADMIN_DISPLAY_NAME"] = "Site Admin"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from blog_api.main import app
from blog_api.db.session import get_session, init_db
from blog_api.services.media import UploadedImage, get_media_service

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminPass123"
AUTHOR_PASSWORD = "AuthorPass123"


class FakeMediaService:
    """In-memory stand-in for the S3 media host."""

    def __init__(self):
        self.objects = {}
        self.fail_uploads = False
        self.fail_deletes = False
        self._counter = 0

    def upload_image(self, file_content, file_name, content_type):
        if self.fail_uploads:
            return None
        self._counter += 1
        key = f"blog/posts/{self._counter}-{file_name}"
        self.objects[key] = (file_content, content_type)
        return UploadedImage(url=f"https://media.test/{key}", key=key)

    def delete_image(self, s3_key):
        if self.fail_deletes:
            raise RuntimeError("media host unavailable")
        self.objects.pop(s3_key, None)
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def media():
    return FakeMediaService()


@pytest.fixture
async def client(engine, media):
    """Async HTTP client wired to the test database and fake media host."""
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_media_service] = lambda: media
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


async def login(client, email, password):
    r = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, f"Login failed: {r.text}"
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
async def admin_headers(client):
    """Login as the seeded admin and return Authorization headers."""
    return await login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def make_author(client, admin_headers):
    """Factory: create an Author account and return (user id, auth headers)."""
    async def _make(name="author"):
        email = f"{name}@example.com"
        r = await client.post(
            "/api/v1/admin/users",
            json={"email": email, "password": AUTHOR_PASSWORD, "display_name": name.title(), "role": "Author"},
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()["id"], await login(client, email, AUTHOR_PASSWORD)
    return _make


def post_form(**overrides):
    data = {
        "title": "Hello World",
        "slug": "hello-world",
        "excerpt": "A first post",
        "content_format": "markdown",
        "content_body": "# Hello\n\nFirst post.",
    }
    data.update(overrides)
    return data


@pytest.fixture
def create_post(client):
    """Factory: create a post through the API and return its JSON."""
    async def _create(headers, files=None, **overrides):
        r = await client.post("/api/v1/posts", data=post_form(**overrides), files=files, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _create
