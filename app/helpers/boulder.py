from typing import Optional

from flask import current_app

from app.extensions import db
from app.models import Attempt, Boulder, ValidationRequest
from app.helpers.account import Viewer, require_staff
from app.helpers.competition import get_comp_or_404
from app.helpers.errors import BadRequest, BoulderInUse, NotFound
from app.helpers.leaderboard_cache import invalidate_leaderboard_cache
from app.helpers.scoring import apply_point_schedule

DEFAULT_MAX_POINTS = 100
DEFAULT_MAX_ZONE_POINTS = 50


def get_boulders(competition_id: int, active_only: bool = True) -> list[Boulder]:
    q = Boulder.query.filter(Boulder.competition_id == competition_id)
    if active_only:
        q = q.filter(Boulder.is_active == True)
    return q.order_by(Boulder.order.asc(), Boulder.id.asc()).all()


def get_boulder_or_404(boulder_id: int) -> Boulder:
    boulder = db.session.get(Boulder, boulder_id)
    if not boulder:
        raise NotFound("Boulder not found")
    return boulder


def _positive_int(raw, field: str, minimum: int = 0) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid {field}")
    if value < minimum:
        raise BadRequest(f"{field} must be at least {minimum}")
    return value


def create_boulder(
    viewer: Viewer,
    competition_id: int,
    name: str,
    color: str = "red",
    max_points: int = DEFAULT_MAX_POINTS,
    max_zone_points: int = DEFAULT_MAX_ZONE_POINTS,
    is_active: bool = True,
    order: int = 0,
) -> Boulder:
    require_staff(viewer)
    comp = get_comp_or_404(competition_id)

    clean = (name or "").strip()
    if not clean:
        raise BadRequest("Boulder name is required")

    boulder = Boulder(
        name=clean,
        color=(color or "red").strip().lower(),
        is_active=bool(is_active),
        order=_positive_int(order, "order"),
        competition_id=comp.id,
    )
    apply_point_schedule(
        boulder,
        _positive_int(max_points, "max_points", minimum=1),
        _positive_int(max_zone_points, "max_zone_points"),
    )

    db.session.add(boulder)
    db.session.commit()

    current_app.logger.info(
        "boulder created id=%s comp=%s schedule=%s zone=%s",
        boulder.id, comp.id, boulder.attempt_points, boulder.points_for_zone,
    )
    return boulder


def update_boulder(viewer: Viewer, boulder_id: int, **fields) -> Boulder:
    """
    Edit a boulder. Changing either maximum recomputes and overwrites the
    whole stored schedule.
    """
    require_staff(viewer)
    boulder = get_boulder_or_404(boulder_id)

    if fields.get("name") is not None:
        clean = str(fields["name"]).strip()
        if not clean:
            raise BadRequest("Boulder name is required")
        boulder.name = clean
    if fields.get("color") is not None:
        boulder.color = str(fields["color"]).strip().lower()
    if fields.get("is_active") is not None:
        boulder.is_active = bool(fields["is_active"])
    if fields.get("order") is not None:
        boulder.order = _positive_int(fields["order"], "order")

    max_points: Optional[int] = fields.get("max_points")
    max_zone_points: Optional[int] = fields.get("max_zone_points")
    if max_points is not None or max_zone_points is not None:
        apply_point_schedule(
            boulder,
            _positive_int(max_points if max_points is not None else boulder.max_points, "max_points", minimum=1),
            _positive_int(
                max_zone_points if max_zone_points is not None else boulder.max_zone_points,
                "max_zone_points",
            ),
        )

    db.session.commit()
    invalidate_leaderboard_cache(boulder.competition_id)
    current_app.logger.info("boulder updated id=%s schedule=%s", boulder.id, boulder.attempt_points)
    return boulder


def delete_boulder(viewer: Viewer, boulder_id: int) -> None:
    """
    Delete a boulder nobody has logged yet.

    Boulders with ledger entries are refused (BoulderInUse); deactivate them
    instead so scores stay intact.
    """
    require_staff(viewer)
    boulder = get_boulder_or_404(boulder_id)

    if Attempt.query.filter_by(boulder_id=boulder.id).first():
        raise BoulderInUse()

    competition_id = boulder.competition_id
    ValidationRequest.query.filter_by(boulder_id=boulder.id).delete(synchronize_session=False)
    db.session.delete(boulder)
    db.session.commit()
    invalidate_leaderboard_cache(competition_id)
    current_app.logger.info("boulder deleted id=%s by=%s", boulder_id, viewer.user_id)
