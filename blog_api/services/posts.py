import logging
import re
from typing import List, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from blog_api.core.clock import utcnow
from blog_api.models.post import Post, PostStatus, ContentFormat
from blog_api.models.user import User
from blog_api.services.media import MediaService, UploadedImage
from blog_api.services.policy import authorize_post_read, authorize_post_write, enforce
from blog_api.services.post_repository import PostRepository

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class PostInput(BaseModel):
    """Editable fields of a post, shared by create and full-replace update."""
    title: str
    slug: str
    excerpt: Optional[str] = None
    content_format: ContentFormat = ContentFormat.MARKDOWN
    content_body: str
    tag_ids: List[int] = []
    category_ids: List[int] = []
    featured_image_alt: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required.")
        return v

    @field_validator("slug")
    @classmethod
    def slug_shape(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Slug is required.")
        if not SLUG_PATTERN.match(v):
            raise ValueError("Slug may only contain lowercase letters, digits and single hyphens.")
        return v

    @field_validator("content_body")
    @classmethod
    def body_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ContentBody is required.")
        return v

    @field_validator("content_format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return ContentFormat.MARKDOWN
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in {f.value for f in ContentFormat}:
                raise ValueError("ContentFormat must be 'markdown' or 'html'.")
        return v

    @field_validator("excerpt", "featured_image_alt")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ImageUpload(BaseModel):
    content: bytes
    file_name: str
    content_type: str


class PostService:
    def __init__(self, session: Session, media: MediaService):
        self.session = session
        self.media = media
        self.repo = PostRepository(session)

    def _get_live_or_404(self, post_id: int) -> Post:
        post = self.repo.get_live(post_id)
        if not post:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
        return post

    def _ensure_slug_free(self, slug: str, exclude_id: Optional[int] = None):
        if self.repo.slug_exists(slug, exclude_id=exclude_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already exists.")

    def _commit(self, post: Post):
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)

    def get_for_editor(self, actor: User, post_id: int) -> Post:
        post = self._get_live_or_404(post_id)
        enforce(authorize_post_read(actor, post))
        return post

    def create(self, actor: User, data: PostInput, image: Optional[ImageUpload] = None) -> Post:
        self._ensure_slug_free(data.slug)

        now = utcnow()
        post = Post(
            author_id=actor.id,
            title=data.title,
            slug=data.slug,
            excerpt=data.excerpt,
            content_format=data.content_format,
            content_body=data.content_body,
            featured_image_alt=data.featured_image_alt,
            status=PostStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        self.repo.replace_associations(post, data.tag_ids, data.category_ids)
        return self.save_with_media(post, image)

    def update(self, actor: User, post_id: int, data: PostInput, image: Optional[ImageUpload] = None) -> Post:
        post = self._get_live_or_404(post_id)
        enforce(authorize_post_write(actor, post, "edit"))
        self._ensure_slug_free(data.slug, exclude_id=post.id)

        post.title = data.title
        post.slug = data.slug
        post.excerpt = data.excerpt
        post.content_format = data.content_format
        post.content_body = data.content_body
        post.featured_image_alt = data.featured_image_alt
        self.repo.replace_associations(post, data.tag_ids, data.category_ids)
        post.touch()
        return self.save_with_media(post, image)

    def save_with_media(self, post: Post, image: Optional[ImageUpload] = None) -> Post:
        """
        Persist ``post``, optionally attaching a freshly uploaded featured image.

        The upload happens first. If the database write then fails, the new
        image is deleted again and the error is re-raised. A superseded image
        is deleted only after the write has committed; failure to delete it
        is logged and otherwise ignored.
        """
        uploaded: Optional[UploadedImage] = None
        superseded_key: Optional[str] = None

        if image is not None:
            uploaded = self.media.upload_image(image.content, image.file_name, image.content_type)
            if uploaded is None:
                raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload image")
            superseded_key = post.featured_image_key
            post.featured_image_url = uploaded.url
            post.featured_image_key = uploaded.key

        try:
            self._commit(post)
        except SQLAlchemyError:
            self.session.rollback()
            if uploaded is not None:
                logger.warning("Saving post failed, removing uploaded image %s", uploaded.key)
                self._discard_image(uploaded.key)
            raise

        if superseded_key and superseded_key != post.featured_image_key:
            self._discard_image(superseded_key)
        return post

    def _discard_image(self, key: str):
        try:
            if not self.media.delete_image(key):
                logger.warning("Could not delete image %s, leaving it orphaned", key)
        except Exception:
            logger.warning("Could not delete image %s, leaving it orphaned", key, exc_info=True)

    def delete(self, actor: User, post_id: int):
        post = self._get_live_or_404(post_id)
        enforce(authorize_post_write(actor, post, "delete"))

        now = utcnow()
        post.status = PostStatus.DELETED
        post.deleted_at = now
        post.touch(now)
        self._commit(post)

    def publish(self, post_id: int) -> Post:
        post = self._get_live_or_404(post_id)
        if post.status == PostStatus.PUBLISHED:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Post is already published.")

        now = utcnow()
        post.status = PostStatus.PUBLISHED
        post.published_at = now
        post.touch(now)
        self._commit(post)
        return post

    def unpublish(self, post_id: int) -> Post:
        post = self._get_live_or_404(post_id)
        if post.status == PostStatus.DRAFT:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Post is already a draft.")

        # published_at is kept as a record of the last publication
        post.status = PostStatus.DRAFT
        post.touch()
        self._commit(post)
        return post
