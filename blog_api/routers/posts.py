from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from pydantic import BaseModel, ValidationError
from sqlmodel import Session

from blog_api.core.config import settings
from blog_api.core.errors import field_errors
from blog_api.db.session import get_session
from blog_api.models.post import Post
from blog_api.models.user import User
from blog_api.routers.auth import require_admin, require_editor
from blog_api.services.media import ALLOWED_IMAGE_TYPES, MediaService, get_media_service
from blog_api.services.post_repository import PostRepository
from blog_api.services.posts import ImageUpload, PostInput, PostService

router = APIRouter()


# Response models
class TaxonomyRead(BaseModel):
    id: int
    name: str

class FeaturedImage(BaseModel):
    url: str
    key: Optional[str] = None
    alt: Optional[str] = None

class PublicImage(BaseModel):
    url: str
    alt: Optional[str] = None

class PostSummary(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    published_at: Optional[datetime] = None
    featured_image_url: Optional[str] = None

class PostPage(BaseModel):
    items: List[PostSummary]
    page: int
    page_size: int
    total: int

class PublicPost(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    content_format: str
    content_body: str
    published_at: Optional[datetime] = None
    updated_at: datetime
    tags: List[TaxonomyRead] = []
    categories: List[TaxonomyRead] = []
    featured_image: Optional[PublicImage] = None

class PostRead(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    content_format: str
    content_body: str
    status: str
    published_at: Optional[datetime] = None
    updated_at: datetime
    author_id: int
    tags: List[TaxonomyRead] = []
    categories: List[TaxonomyRead] = []
    featured_image: Optional[FeaturedImage] = None

class StatusChange(BaseModel):
    id: int
    status: str
    published_at: Optional[datetime] = None
    updated_at: datetime


def _taxonomy(post: Post):
    tags = [TaxonomyRead(id=t.id, name=t.name) for t in post.tags]
    categories = [TaxonomyRead(id=c.id, name=c.name) for c in post.categories]
    return tags, categories


def to_post_read(post: Post) -> PostRead:
    tags, categories = _taxonomy(post)
    image = None
    if post.featured_image_url:
        image = FeaturedImage(url=post.featured_image_url, key=post.featured_image_key, alt=post.featured_image_alt)
    return PostRead(
        id=post.id,
        title=post.title,
        slug=post.slug,
        excerpt=post.excerpt,
        content_format=post.content_format.value,
        content_body=post.content_body,
        status=post.status.value,
        published_at=post.published_at,
        updated_at=post.updated_at,
        author_id=post.author_id,
        tags=tags,
        categories=categories,
        featured_image=image,
    )


def to_public_post(post: Post) -> PublicPost:
    tags, categories = _taxonomy(post)
    image = None
    if post.featured_image_url:
        image = PublicImage(url=post.featured_image_url, alt=post.featured_image_alt)
    return PublicPost(
        id=post.id,
        title=post.title,
        slug=post.slug,
        excerpt=post.excerpt,
        content_format=post.content_format.value,
        content_body=post.content_body,
        published_at=post.published_at,
        updated_at=post.updated_at,
        tags=tags,
        categories=categories,
        featured_image=image,
    )


def to_status_change(post: Post) -> StatusChange:
    return StatusChange(id=post.id, status=post.status.value, published_at=post.published_at, updated_at=post.updated_at)


def get_post_repository(session: Session = Depends(get_session)) -> PostRepository:
    return PostRepository(session)

def get_post_service(
    session: Session = Depends(get_session),
    media: MediaService = Depends(get_media_service)
) -> PostService:
    return PostService(session, media)


def parse_post_form(**fields) -> PostInput:
    try:
        return PostInput(**fields)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=field_errors(e.errors()))


async def read_image(file: Optional[UploadFile]) -> Optional[ImageUpload]:
    """Validate and read an optional featured image upload."""
    # Browsers send an empty part when no file was chosen
    if file is None or not file.filename:
        return None

    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[{"field": "featured_image", "message": "FeaturedImage must be jpeg/png/webp."}]
        )

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Image is too large")
    return ImageUpload(content=content, file_name=file.filename, content_type=content_type)


# Public endpoints
@router.get("/list", response_model=PostPage)
def list_posts(
    page: int = Query(1),
    page_size: int = Query(20, alias="pageSize"),
    repo: PostRepository = Depends(get_post_repository)
):
    """List published posts, most recent first. Out-of-range paging values are clamped."""
    posts, total, page, page_size = repo.list_published(page, page_size)
    items = [
        PostSummary(
            id=p.id,
            title=p.title,
            slug=p.slug,
            excerpt=p.excerpt,
            published_at=p.published_at,
            featured_image_url=p.featured_image_url,
        )
        for p in posts
    ]
    return PostPage(items=items, page=page, page_size=page_size, total=total)


@router.get("/slug/{slug}", response_model=PublicPost)
def read_post_by_slug(slug: str, repo: PostRepository = Depends(get_post_repository)):
    post = repo.get_published_by_slug(slug)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return to_public_post(post)


# Editor endpoints
@router.post("", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def create_post(
    response: Response,
    title: str = Form(""),
    slug: str = Form(""),
    excerpt: Optional[str] = Form(None),
    content_format: Optional[str] = Form(None),
    content_body: str = Form(""),
    tag_ids: List[int] = Form([]),
    category_ids: List[int] = Form([]),
    featured_image: Optional[UploadFile] = File(None),
    featured_image_alt: Optional[str] = Form(None),
    current_user: User = Depends(require_editor),
    service: PostService = Depends(get_post_service)
):
    """Create a draft post, optionally with a featured image."""
    data = parse_post_form(
        title=title,
        slug=slug,
        excerpt=excerpt,
        content_format=content_format,
        content_body=content_body,
        tag_ids=tag_ids,
        category_ids=category_ids,
        featured_image_alt=featured_image_alt,
    )
    image = await read_image(featured_image)

    post = service.create(current_user, data, image)
    response.headers["Location"] = f"/api/v1/posts/{post.id}"
    return to_post_read(post)


@router.get("/{post_id}", response_model=PostRead)
def read_post(
    post_id: int,
    current_user: User = Depends(require_editor),
    service: PostService = Depends(get_post_service)
):
    """Admins see any post; Authors only their own."""
    return to_post_read(service.get_for_editor(current_user, post_id))


@router.put("/{post_id}", response_model=PostRead)
async def update_post(
    post_id: int,
    title: str = Form(""),
    slug: str = Form(""),
    excerpt: Optional[str] = Form(None),
    content_format: Optional[str] = Form(None),
    content_body: str = Form(""),
    tag_ids: List[int] = Form([]),
    category_ids: List[int] = Form([]),
    featured_image: Optional[UploadFile] = File(None),
    featured_image_alt: Optional[str] = Form(None),
    current_user: User = Depends(require_editor),
    service: PostService = Depends(get_post_service)
):
    """Replace a post's editable fields and its tags and categories."""
    data = parse_post_form(
        title=title,
        slug=slug,
        excerpt=excerpt,
        content_format=content_format,
        content_body=content_body,
        tag_ids=tag_ids,
        category_ids=category_ids,
        featured_image_alt=featured_image_alt,
    )
    image = await read_image(featured_image)

    return to_post_read(service.update(current_user, post_id, data, image))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: int,
    current_user: User = Depends(require_editor),
    service: PostService = Depends(get_post_service)
):
    """Soft delete a post."""
    service.delete(current_user, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/publish", response_model=StatusChange)
def publish_post(
    post_id: int,
    current_user: User = Depends(require_admin),
    service: PostService = Depends(get_post_service)
):
    return to_status_change(service.publish(post_id))


@router.post("/{post_id}/unpublish", response_model=StatusChange)
def unpublish_post(
    post_id: int,
    current_user: User = Depends(require_admin),
    service: PostService = Depends(get_post_service)
):
    return to_status_change(service.unpublish(post_id))
