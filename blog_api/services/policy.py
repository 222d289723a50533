"""
Authorization decisions for post access.

Every endpoint that reads or mutates a post through the editor API asks one
of these functions for a decision and hands it to ``enforce``. Admins may do
anything. Authors may touch only their own posts, and may change them only
while they are drafts.
"""
from enum import Enum
from typing import Optional

from fastapi import HTTPException, status
from pydantic import BaseModel

from blog_api.models.post import Post, PostStatus
from blog_api.models.user import User, RoleName


class DenyReason(str, Enum):
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"


class PolicyDecision(BaseModel):
    allowed: bool
    reason: Optional[DenyReason] = None
    message: Optional[str] = None


ALLOW = PolicyDecision(allowed=True)


def _deny(reason: DenyReason, message: str) -> PolicyDecision:
    return PolicyDecision(allowed=False, reason=reason, message=message)


def authorize_post_read(actor: User, post: Post) -> PolicyDecision:
    if actor.is_admin:
        return ALLOW
    if not actor.has_role(RoleName.AUTHOR) or post.author_id != actor.id:
        return _deny(DenyReason.FORBIDDEN, "You do not have access to this post.")
    return ALLOW


def authorize_post_write(actor: User, post: Post, action: str = "edit") -> PolicyDecision:
    """Decide whether ``actor`` may ``action`` (edit or delete) ``post``."""
    if actor.is_admin:
        return ALLOW
    if not actor.has_role(RoleName.AUTHOR):
        return _deny(DenyReason.FORBIDDEN, "Author or Admin role required.")
    if post.author_id != actor.id:
        return _deny(DenyReason.FORBIDDEN, f"You can only {action} your own posts.")
    if post.status == PostStatus.PUBLISHED:
        return _deny(
            DenyReason.CONFLICT,
            f"Authors cannot {action} published posts. Ask an admin to unpublish first."
        )
    return ALLOW


_STATUS_CODES = {
    DenyReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    DenyReason.CONFLICT: status.HTTP_409_CONFLICT,
}


def enforce(decision: PolicyDecision):
    if not decision.allowed:
        raise HTTPException(status_code=_STATUS_CODES[decision.reason], detail=decision.message)
