from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from blog_api.models.user import User, RoleName
from blog_api.routers.auth import get_auth_service, require_admin
from blog_api.services.auth import AuthService

router = APIRouter()


class CreateUserRequest(BaseModel):
    email: str
    password: str
    display_name: str
    role: str

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Email is required.")
        if "@" not in v:
            raise ValueError("Email is not valid.")
        return v

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Password is required.")
        return v

    @field_validator("display_name")
    @classmethod
    def display_name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("DisplayName is required.")
        return v

    @field_validator("role")
    @classmethod
    def role_known(cls, v: str) -> str:
        v = v.strip()
        if v not in {role.value for role in RoleName}:
            raise ValueError("Role must be 'Admin' or 'Author'.")
        return v


class CreatedUser(BaseModel):
    id: int
    email: str
    display_name: str
    role: str


@router.post("/users", response_model=CreatedUser, status_code=status.HTTP_201_CREATED)
def create_user(
    data: CreateUserRequest,
    current_user: User = Depends(require_admin),
    service: AuthService = Depends(get_auth_service)
):
    """Create an Admin or Author account. Admin only."""
    user = service.create_user(data.email, data.password, data.display_name, data.role)
    return CreatedUser(id=user.id, email=user.email, display_name=user.display_name, role=data.role)
