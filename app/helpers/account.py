from dataclasses import dataclass
from typing import Optional

from flask import session

from app.extensions import db
from app.models import Profile
from app.helpers.errors import NotAllowed, NotAuthenticated


@dataclass(frozen=True)
class Viewer:
    """Identity + role flags threaded into every core operation."""

    user_id: str
    is_admin: bool = False
    is_super_admin: bool = False

    @property
    def is_staff(self) -> bool:
        return self.is_admin or self.is_super_admin

    def can_act_for(self, user_id: str) -> bool:
        return self.user_id == user_id or self.is_staff


def viewer_from_profile(profile: Profile) -> Viewer:
    return Viewer(
        user_id=profile.id,
        is_admin=bool(profile.is_admin),
        is_super_admin=bool(profile.is_super_admin),
    )


def get_profile_for_session() -> Optional[Profile]:
    # The external auth layer stores the identity under "user_id"
    user_id = (session.get("user_id") or "").strip()
    if not user_id:
        return None
    return db.session.get(Profile, user_id)


def get_viewer() -> Optional[Viewer]:
    profile = get_profile_for_session()
    if not profile:
        return None
    return viewer_from_profile(profile)


def require_staff(viewer: Optional[Viewer]) -> Viewer:
    if viewer is None or not viewer.is_staff:
        raise NotAllowed("Admins only")
    return viewer


def require_super_admin(viewer: Optional[Viewer]) -> Viewer:
    if viewer is None or not viewer.is_super_admin:
        raise NotAllowed("Super admins only")
    return viewer


def require_viewer() -> Viewer:
    viewer = get_viewer()
    if viewer is None:
        raise NotAuthenticated()
    return viewer
