from typing import Optional

from flask import current_app

from app.extensions import db
from app.models import Attempt, Boulder, Competition, ValidationRequest
from app.helpers.account import Viewer, require_super_admin
from app.helpers.errors import BadRequest, NotFound
from app.helpers.leaderboard_cache import invalidate_leaderboard_cache


def get_current_comp(competition_id: Optional[int] = None) -> Optional[Competition]:
    """
    Return the requested competition, or the most recently created one.
    """
    if competition_id:
        return db.session.get(Competition, competition_id)

    return (
        Competition.query
        .order_by(Competition.created_at.desc(), Competition.id.desc())
        .first()
    )


def get_comp_or_404(competition_id: int) -> Competition:
    comp = db.session.get(Competition, competition_id)
    if not comp:
        raise NotFound("Competition not found")
    return comp


def list_competitions() -> list[Competition]:
    return (
        Competition.query
        .order_by(Competition.created_at.desc(), Competition.id.desc())
        .all()
    )


def can_view_leaderboard(comp: Competition, viewer: Optional[Viewer]) -> bool:
    """Admins always can; everyone else only once the board is public."""
    if comp is None:
        return False
    if viewer is not None and viewer.is_staff:
        return True
    return bool(comp.is_leaderboard_public)


def create_competition(viewer: Viewer, name: str, location: str = None, is_leaderboard_public: bool = False) -> Competition:
    require_super_admin(viewer)

    clean = (name or "").strip()
    if not clean:
        raise BadRequest("Competition name is required")

    comp = Competition(
        name=clean,
        location=(location or "").strip() or None,
        is_leaderboard_public=bool(is_leaderboard_public),
    )
    db.session.add(comp)
    db.session.commit()

    current_app.logger.info("competition created id=%s name=%r by=%s", comp.id, comp.name, viewer.user_id)
    return comp


def update_competition(viewer: Viewer, competition_id: int, **fields) -> Competition:
    require_super_admin(viewer)
    comp = get_comp_or_404(competition_id)

    if fields.get("name") is not None:
        clean = str(fields["name"]).strip()
        if not clean:
            raise BadRequest("Competition name is required")
        comp.name = clean
    if fields.get("location") is not None:
        comp.location = str(fields["location"]).strip() or None
    if fields.get("is_leaderboard_public") is not None:
        comp.is_leaderboard_public = bool(fields["is_leaderboard_public"])

    db.session.commit()
    invalidate_leaderboard_cache(comp.id)
    return comp


def set_leaderboard_visibility(viewer: Viewer, competition_id: int, is_public: bool) -> Competition:
    comp = update_competition(viewer, competition_id, is_leaderboard_public=bool(is_public))
    current_app.logger.info(
        "competition %s leaderboard visibility -> %s by=%s", comp.id, comp.is_leaderboard_public, viewer.user_id
    )
    return comp


def delete_competition(viewer: Viewer, competition_id: int) -> None:
    """
    Delete a competition together with its boulders, ledger entries and
    validation requests.
    """
    require_super_admin(viewer)
    comp = get_comp_or_404(competition_id)

    boulder_ids = [b.id for b in Boulder.query.filter_by(competition_id=comp.id).all()]
    if boulder_ids:
        ValidationRequest.query.filter(
            ValidationRequest.boulder_id.in_(boulder_ids)
        ).delete(synchronize_session=False)
    Attempt.query.filter_by(competition_id=comp.id).delete(synchronize_session=False)
    Boulder.query.filter_by(competition_id=comp.id).delete(synchronize_session=False)

    db.session.delete(comp)
    db.session.commit()
    invalidate_leaderboard_cache(competition_id)

    current_app.logger.info("competition deleted id=%s by=%s", competition_id, viewer.user_id)
