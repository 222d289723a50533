# Import all models to register them with SQLModel
from blog_api.models.user import User, Role, UserRole, RoleName
from blog_api.models.taxonomy import Tag, Category, PostTag, PostCategory
from blog_api.models.post import Post, PostStatus, ContentFormat

__all__ = [
    "User",
    "Role",
    "UserRole",
    "RoleName",
    "Tag",
    "Category",
    "PostTag",
    "PostCategory",
    "Post",
    "PostStatus",
    "ContentFormat",
]
