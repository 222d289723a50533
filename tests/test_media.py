"""Tests for featured image upload, replacement and orphan cleanup."""
import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from blog_api.core.config import settings
from blog_api.models.post import Post
from blog_api.services.posts import PostService
from conftest import post_form

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _image(name="cover.jpg", content=JPEG, content_type="image/jpeg"):
    return {"featured_image": (name, content, content_type)}


def _fail_commit(self, post):
    raise OperationalError("INSERT INTO post", {}, Exception("disk I/O error"))


@pytest.mark.asyncio
async def test_create_with_image(client, admin_headers, media):
    r = await client.post(
        "/api/v1/posts",
        data=post_form(featured_image_alt=" A cover "),
        files=_image(),
        headers=admin_headers,
    )
    assert r.status_code == 201
    image = r.json()["featured_image"]
    assert image["key"] in media.objects
    assert image["url"].endswith(image["key"])
    assert image["alt"] == "A cover"


@pytest.mark.asyncio
async def test_rejects_unsupported_image_type(client, admin_headers, media, session):
    r = await client.post(
        "/api/v1/posts",
        data=post_form(),
        files=_image(name="cover.gif", content=b"GIF89a", content_type="image/gif"),
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"][0]["field"] == "featured_image"
    assert media.objects == {}
    assert session.exec(select(Post)).all() == []


@pytest.mark.asyncio
async def test_upload_failure_rejects_request(client, admin_headers, media, session):
    media.fail_uploads = True
    r = await client.post("/api/v1/posts", data=post_form(), files=_image(), headers=admin_headers)
    assert r.status_code == 500
    assert session.exec(select(Post)).all() == []


@pytest.mark.asyncio
async def test_persistence_failure_removes_uploaded_image(client, admin_headers, media, session, monkeypatch):
    monkeypatch.setattr(PostService, "_commit", _fail_commit)

    r = await client.post("/api/v1/posts", data=post_form(), files=_image(), headers=admin_headers)
    assert r.status_code == 500
    assert media.objects == {}
    assert session.exec(select(Post)).all() == []


@pytest.mark.asyncio
async def test_persistence_failure_on_update_removes_new_image(client, admin_headers, media, create_post, monkeypatch):
    post = await create_post(admin_headers, files=_image())
    original_key = post["featured_image"]["key"]

    monkeypatch.setattr(PostService, "_commit", _fail_commit)
    r = await client.put(
        f"/api/v1/posts/{post['id']}",
        data=post_form(),
        files=_image(name="new.png", content=PNG, content_type="image/png"),
        headers=admin_headers,
    )
    assert r.status_code == 500
    assert list(media.objects) == [original_key]


@pytest.mark.asyncio
async def test_replacing_image_deletes_old_one_after_save(client, admin_headers, media, create_post):
    post = await create_post(admin_headers, files=_image())
    old_key = post["featured_image"]["key"]

    r = await client.put(
        f"/api/v1/posts/{post['id']}",
        data=post_form(),
        files=_image(name="new.png", content=PNG, content_type="image/png"),
        headers=admin_headers,
    )
    assert r.status_code == 200
    new_key = r.json()["featured_image"]["key"]
    assert new_key != old_key
    assert list(media.objects) == [new_key]


@pytest.mark.asyncio
async def test_failed_cleanup_of_old_image_is_not_reported(client, admin_headers, media, create_post):
    post = await create_post(admin_headers, files=_image())
    old_key = post["featured_image"]["key"]

    media.fail_deletes = True
    r = await client.put(
        f"/api/v1/posts/{post['id']}",
        data=post_form(),
        files=_image(name="new.png", content=PNG, content_type="image/png"),
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert old_key in media.objects
    assert r.json()["featured_image"]["key"] in media.objects


@pytest.mark.asyncio
async def test_update_without_image_keeps_existing(client, admin_headers, media, create_post):
    post = await create_post(admin_headers, files=_image())

    r = await client.put(f"/api/v1/posts/{post['id']}", data=post_form(title="New title"), headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["featured_image"]["key"] == post["featured_image"]["key"]
    assert len(media.objects) == 1


@pytest.mark.asyncio
async def test_oversized_body_is_rejected(client, admin_headers, media):
    big = b"\x00" * (settings.MAX_UPLOAD_BYTES + 1)
    r = await client.post(
        "/api/v1/posts",
        data=post_form(),
        files=_image(content=big),
        headers=admin_headers,
    )
    assert r.status_code == 413
    assert media.objects == {}


@pytest.mark.asyncio
async def test_public_views_hide_storage_key(client, admin_headers, create_post):
    post = await create_post(admin_headers, files=_image(), featured_image_alt="Alt")
    await client.post(f"/api/v1/posts/{post['id']}/publish", headers=admin_headers)

    body = (await client.get("/api/v1/posts/slug/hello-world")).json()
    assert body["featured_image"] == {"url": post["featured_image"]["url"], "alt": "Alt"}

    listing = (await client.get("/api/v1/posts/list")).json()
    assert listing["items"][0]["featured_image_url"] == post["featured_image"]["url"]
