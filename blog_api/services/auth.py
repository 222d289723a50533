import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import func
from sqlmodel import Session, select
from fastapi import HTTPException, status

from blog_api.models.user import User, Role, RoleName
from blog_api.core.clock import as_utc, utcnow
from blog_api.core.config import settings
from blog_api.core.security import (
    create_access_token,
    get_password_hash,
    normalize_email,
    password_policy_errors,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_by_email(self, email: str) -> Optional[User]:
        # Plain equality on the lowered column; LIKE would treat % and _ as wildcards
        return self.session.exec(
            select(User).where(func.lower(User.email) == normalize_email(email))
        ).first()

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_role(self, name: str) -> Optional[Role]:
        return self.session.exec(select(Role).where(Role.name == name)).first()

    def is_locked_out(self, user: User, now: Optional[datetime] = None) -> bool:
        if not settings.LOCKOUT_ENABLED or user.lockout_end is None:
            return False
        return as_utc(user.lockout_end) > (now or utcnow())

    def _record_failure(self, user: User, now: datetime):
        user.access_failed_count += 1
        if settings.LOCKOUT_ENABLED and user.access_failed_count >= settings.LOCKOUT_MAX_FAILED_ATTEMPTS:
            user.lockout_end = now + timedelta(minutes=settings.LOCKOUT_MINUTES)
            user.access_failed_count = 0
            logger.warning("Locking out %s until %s", user.email, user.lockout_end)
        self.session.add(user)
        self.session.commit()

    def _record_success(self, user: User):
        if user.access_failed_count or user.lockout_end:
            user.access_failed_count = 0
            user.lockout_end = None
            self.session.add(user)
            self.session.commit()

    def authenticate_user(self, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        user = self.get_user_by_email(email)
        if not user:
            return None, "Invalid email or password."

        now = utcnow()
        if self.is_locked_out(user, now):
            return None, "Account is temporarily locked. Try again later."

        if not verify_password(password, user.password_hash):
            self._record_failure(user, now)
            return None, "Invalid email or password."

        self._record_success(user)
        return user, None

    def issue_token(self, user: User) -> str:
        return create_access_token(
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            roles=user.role_names,
        )

    def create_user(self, email: str, password: str, display_name: str, role_name: str) -> User:
        """Create an account with a single role. Caller has already validated field shapes."""
        role = self.get_role(role_name)
        if role is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Role '{role_name}' does not exist. Check seeding."
            )

        if self.get_user_by_email(email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists.")

        errors = password_policy_errors(password)
        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=[{"field": "password", "message": message} for message in errors]
            )

        user = User(
            email=normalize_email(email),
            display_name=display_name.strip(),
            password_hash=get_password_hash(password),
            roles=[role],
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("Created %s account %s", role_name, user.email)
        return user

    def ensure_roles(self):
        for name in RoleName:
            if not self.get_role(name.value):
                self.session.add(Role(name=name.value))
        self.session.commit()
