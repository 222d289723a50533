import logging
from fastapi import HTTPException
from sqlmodel import Session

from blog_api.core.config import settings
from blog_api.models.user import RoleName
from blog_api.services.auth import AuthService

logger = logging.getLogger(__name__)


def seed_roles_and_admin(session: Session):
    """Create the Admin/Author roles and, when configured, the bootstrap admin."""
    service = AuthService(session)
    service.ensure_roles()

    email = (settings.SEED_ADMIN_EMAIL or "").strip()
    password = settings.SEED_ADMIN_PASSWORD or ""
    if not email or not password:
        logger.info("No bootstrap admin configured. Skipping admin seed.")
        return

    if service.get_user_by_email(email):
        return

    try:
        service.create_user(email, password, settings.SEED_ADMIN_DISPLAY_NAME, RoleName.ADMIN.value)
    except HTTPException as e:
        logger.error("Could not seed admin %s: %s", email, e.detail)
