from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import BaseModel
from sqlmodel import Session

from blog_api.db.session import get_session
from blog_api.core.security import decode_access_token
from blog_api.models.user import User, RoleName
from blog_api.services.auth import AuthService

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    email: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class Me(BaseModel):
    id: int
    email: str
    display_name: str
    roles: List[str]


def get_auth_service(session: Session = Depends(get_session)) -> AuthService:
    return AuthService(session)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: AuthService = Depends(get_auth_service),
) -> User:
    if credentials is None or not credentials.credentials:
        raise _credentials_exception("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
        subject = payload.get("sub")
        if subject is None:
            raise _credentials_exception()
        user_id = int(subject)
    except (JWTError, ValueError):
        raise _credentials_exception()

    user = service.get_user_by_id(user_id)
    if user is None:
        raise _credentials_exception()
    return user


def require_roles(*roles: RoleName):
    """Dependency factory: the current user must hold at least one of ``roles``."""
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if not any(current_user.has_role(role) for role in roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user
    return checker


require_admin = require_roles(RoleName.ADMIN)
require_editor = require_roles(RoleName.ADMIN, RoleName.AUTHOR)


@router.post("/login", response_model=Token)
def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    user, error_message = service.authenticate_user(data.email, data.password)
    if not user:
        raise _credentials_exception(error_message)
    return Token(access_token=service.issue_token(user))


@router.get("/me", response_model=Me)
def read_me(current_user: User = Depends(get_current_user)):
    """
    Get current user.
    """
    return Me(
        id=current_user.id,
        email=current_user.email,
        display_name=current_user.display_name,
        roles=current_user.role_names,
    )
