from typing import Optional

from flask import current_app

from app.extensions import db
from app.models import Profile
from app.helpers.account import Viewer, require_super_admin
from app.helpers.errors import NotFound


def set_role_flags(
    viewer: Viewer,
    user_id: str,
    is_admin: Optional[bool] = None,
    is_super_admin: Optional[bool] = None,
) -> Profile:
    """
    Grant or revoke admin / super-admin on a profile.

    Only super admins may change roles. Flags left as None are untouched.
    """
    require_super_admin(viewer)

    profile = db.session.get(Profile, user_id)
    if not profile:
        raise NotFound("Profile not found")

    if is_admin is not None:
        profile.is_admin = bool(is_admin)
    if is_super_admin is not None:
        profile.is_super_admin = bool(is_super_admin)

    db.session.commit()

    current_app.logger.info(
        "roles updated user=%s is_admin=%s is_super_admin=%s by=%s",
        profile.id, profile.is_admin, profile.is_super_admin, viewer.user_id,
    )
    return profile


def staff_emails() -> list[str]:
    """Emails of every admin profile that has one on record."""
    rows = (
        Profile.query
        .filter((Profile.is_admin == True) | (Profile.is_super_admin == True))
        .filter(Profile.email != None)
        .all()
    )
    return sorted({(p.email or "").strip().lower() for p in rows if (p.email or "").strip()})
