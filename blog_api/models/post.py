from typing import Optional, List
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel, Column, Relationship
from sqlalchemy import DateTime, Index, Text, text

from blog_api.core.clock import utcnow
from blog_api.models.taxonomy import Tag, Category, PostTag, PostCategory


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    DELETED = "deleted"  # soft delete, terminal


class ContentFormat(str, Enum):
    MARKDOWN = "markdown"
    HTML = "html"


# Enum columns are stored by member name, hence 'DELETED' below
_LIVE_ROWS = text("status != 'DELETED'")


class Post(SQLModel, table=True):
    __table_args__ = (
        Index(
            "ux_post_live_slug",
            "slug",
            unique=True,
            sqlite_where=_LIVE_ROWS,
            postgresql_where=_LIVE_ROWS,
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    # Author
    author_id: int = Field(foreign_key="user.id", index=True)

    # Content
    title: str
    slug: str = Field(index=True)  # URL-friendly key, unique among live posts
    excerpt: Optional[str] = None
    content_format: ContentFormat = Field(default=ContentFormat.MARKDOWN)
    content_body: str = Field(sa_column=Column(Text, nullable=False))

    # Lifecycle
    status: PostStatus = Field(default=PostStatus.DRAFT, index=True)
    published_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime(timezone=True))
    deleted_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Featured image (S3 object)
    featured_image_url: Optional[str] = None
    featured_image_key: Optional[str] = None
    featured_image_alt: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    tags: List[Tag] = Relationship(
        back_populates="posts",
        link_model=PostTag,
        sa_relationship_kwargs={"lazy": "selectin"},
    )
    categories: List[Category] = Relationship(
        back_populates="posts",
        link_model=PostCategory,
        sa_relationship_kwargs={"lazy": "selectin"},
    )

    @property
    def is_published(self) -> bool:
        return self.status == PostStatus.PUBLISHED

    @property
    def is_deleted(self) -> bool:
        return self.status == PostStatus.DELETED

    def touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = now or utcnow()
