from typing import Optional, List
from datetime import datetime
from enum import Enum
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel, Relationship

from blog_api.core.clock import utcnow


class RoleName(str, Enum):
    ADMIN = "Admin"
    AUTHOR = "Author"


class UserRole(SQLModel, table=True):
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", primary_key=True)
    role_id: Optional[int] = Field(default=None, foreign_key="role.id", primary_key=True)


class Role(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)

    users: List["User"] = Relationship(back_populates="roles", link_model=UserRole)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    email: str = Field(unique=True, index=True)
    display_name: str
    password_hash: str

    # Lockout bookkeeping
    access_failed_count: int = Field(default=0)
    lockout_end: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    roles: List[Role] = Relationship(
        back_populates="users",
        link_model=UserRole,
        sa_relationship_kwargs={"lazy": "selectin"},
    )

    @property
    def role_names(self) -> List[str]:
        return sorted(role.name for role in self.roles)

    def has_role(self, role: RoleName) -> bool:
        return role.value in self.role_names

    @property
    def is_admin(self) -> bool:
        return self.has_role(RoleName.ADMIN)
