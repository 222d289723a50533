from typing import Iterable, List, Optional, Tuple, Type, TypeVar
from fastapi import HTTPException, status
from sqlalchemy import desc, func
from sqlmodel import Session, select

from blog_api.models.post import Post, PostStatus
from blog_api.models.taxonomy import Tag, Category

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

TaxonomyModel = TypeVar("TaxonomyModel", Tag, Category)


def clamp_page(page: Optional[int], page_size: Optional[int]) -> Tuple[int, int]:
    """Page is at least 1, page size is kept within [1, MAX_PAGE_SIZE]."""
    page = max(1, page or 1)
    if page_size is None:
        page_size = DEFAULT_PAGE_SIZE
    page_size = min(max(1, page_size), MAX_PAGE_SIZE)
    return page, page_size


def _unique(ids: Iterable[int]) -> List[int]:
    seen = []
    for item in ids:
        if item not in seen:
            seen.append(item)
    return seen


class PostRepository:
    def __init__(self, session: Session):
        self.session = session

    def _live(self):
        return select(Post).where(Post.status != PostStatus.DELETED)

    def list_published(self, page: Optional[int], page_size: Optional[int]) -> Tuple[List[Post], int, int, int]:
        """Published posts, newest first; posts without a publish time sort as oldest."""
        page, page_size = clamp_page(page, page_size)
        offset = (page - 1) * page_size

        total = self.session.exec(
            select(func.count(Post.id)).where(Post.status == PostStatus.PUBLISHED)
        ).one()

        posts = self.session.exec(
            select(Post)
            .where(Post.status == PostStatus.PUBLISHED)
            .order_by(Post.published_at.is_(None), desc(Post.published_at), desc(Post.id))
            .offset(offset)
            .limit(page_size)
        ).all()
        return list(posts), total, page, page_size

    def get_published_by_slug(self, slug: str) -> Optional[Post]:
        return self.session.exec(
            select(Post).where(Post.slug == slug, Post.status == PostStatus.PUBLISHED)
        ).first()

    def get_live(self, post_id: int) -> Optional[Post]:
        return self.session.exec(self._live().where(Post.id == post_id)).first()

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = self._live().where(Post.slug == slug)
        if exclude_id is not None:
            query = query.where(Post.id != exclude_id)
        return self.session.exec(query).first() is not None

    def _resolve(self, model: Type[TaxonomyModel], ids: Iterable[int], field: str) -> List[TaxonomyModel]:
        wanted = _unique(ids)
        if not wanted:
            return []
        found = self.session.exec(select(model).where(model.id.in_(wanted))).all()
        by_id = {item.id: item for item in found}
        missing = [item_id for item_id in wanted if item_id not in by_id]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=[{"field": field, "message": f"Unknown id(s): {', '.join(map(str, missing))}."}]
            )
        return [by_id[item_id] for item_id in wanted]

    def resolve_tags(self, tag_ids: Iterable[int]) -> List[Tag]:
        return self._resolve(Tag, tag_ids, "tag_ids")

    def resolve_categories(self, category_ids: Iterable[int]) -> List[Category]:
        return self._resolve(Category, category_ids, "category_ids")

    def replace_associations(self, post: Post, tag_ids: Iterable[int], category_ids: Iterable[int]):
        post.tags = self.resolve_tags(tag_ids)
        post.categories = self.resolve_categories(category_ids)

    # Tags and categories

    def list_taxonomy(self, model: Type[TaxonomyModel]) -> List[TaxonomyModel]:
        return list(self.session.exec(select(model).order_by(model.name)).all())

    def create_taxonomy(self, model: Type[TaxonomyModel], name: str) -> TaxonomyModel:
        existing = self.session.exec(select(model).where(func.lower(model.name) == name.lower())).first()
        if existing:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{model.__name__} already exists.")
        item = model(name=name)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item
