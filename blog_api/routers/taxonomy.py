from typing import List
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from blog_api.models.taxonomy import Tag, Category
from blog_api.models.user import User
from blog_api.routers.auth import require_admin
from blog_api.routers.posts import TaxonomyRead, get_post_repository
from blog_api.services.post_repository import PostRepository

router = APIRouter()


class TaxonomyCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required.")
        return v


@router.get("/tags", response_model=List[TaxonomyRead])
def list_tags(repo: PostRepository = Depends(get_post_repository)):
    return repo.list_taxonomy(Tag)


@router.post("/tags", response_model=TaxonomyRead, status_code=status.HTTP_201_CREATED)
def create_tag(
    data: TaxonomyCreate,
    current_user: User = Depends(require_admin),
    repo: PostRepository = Depends(get_post_repository)
):
    return repo.create_taxonomy(Tag, data.name)


@router.get("/categories", response_model=List[TaxonomyRead])
def list_categories(repo: PostRepository = Depends(get_post_repository)):
    return repo.list_taxonomy(Category)


@router.post("/categories", response_model=TaxonomyRead, status_code=status.HTTP_201_CREATED)
def create_category(
    data: TaxonomyCreate,
    current_user: User = Depends(require_admin),
    repo: PostRepository = Depends(get_post_repository)
):
    return repo.create_taxonomy(Category, data.name)
