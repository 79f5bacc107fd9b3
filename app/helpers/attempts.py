from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models import Attempt, Boulder
from app.helpers.account import Viewer
from app.helpers.errors import AttemptLocked, BadRequest, NotAllowed, NotFound
from app.helpers.leaderboard_cache import invalidate_leaderboard_cache
from app.helpers.scoring import competitor_total_points, status_for_count
from app.helpers.time import utcnow

MAX_LOGGED_ATTEMPTS = 5


def parse_attempt_count(raw, minimum: int = 0) -> int:
    # bool is an int subclass; JSON true must not read as 1
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise BadRequest("Invalid attempt count")
    try:
        count = int(raw)
    except (TypeError, ValueError):
        raise BadRequest("Invalid attempt count")
    if count < minimum or count > MAX_LOGGED_ATTEMPTS:
        raise BadRequest(f"Attempt count must be between {minimum} and {MAX_LOGGED_ATTEMPTS}")
    return count


def get_attempt(user_id: str, boulder_id: int) -> Optional[Attempt]:
    return Attempt.query.filter_by(user_id=user_id, boulder_id=boulder_id).first()


def fetch_user_attempts(user_id: str, competition_id: int) -> list[Attempt]:
    return (
        Attempt.query
        .filter_by(user_id=user_id, competition_id=competition_id)
        .order_by(Attempt.boulder_id.asc())
        .all()
    )


def is_boulder_validated(user_id: str, boulder_id: int) -> bool:
    try:
        attempt = get_attempt(user_id, boulder_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning(
            "validated lookup failed user=%s boulder=%s: %s", user_id, boulder_id, e
        )
        return False
    return bool(attempt and attempt.validated)


def _resolve_boulder(boulder_id: int, competition_id: Optional[int]) -> Boulder:
    boulder = db.session.get(Boulder, boulder_id)
    if not boulder:
        raise NotFound("Boulder not found")
    if competition_id is not None and int(competition_id) != boulder.competition_id:
        raise BadRequest("Boulder is not part of this competition")
    return boulder


def _check_writable(viewer: Viewer, user_id: str, existing: Optional[Attempt]):
    if viewer is None or not viewer.can_act_for(user_id):
        raise NotAllowed()

    # Admins editing someone else's card is the only override
    is_override = viewer.is_staff and viewer.user_id != user_id
    if existing is not None and existing.validated and not is_override:
        current_app.logger.warning(
            "blocked edit of validated attempt user=%s boulder=%s by=%s",
            user_id, existing.boulder_id, viewer.user_id,
        )
        raise AttemptLocked()


def set_attempt(
    viewer: Viewer,
    user_id: str,
    boulder_id: int,
    count,
    competition_id: Optional[int] = None,
) -> dict:
    """
    Record the attempt on which `user_id` sent `boulder_id` (1-5), or clear
    it with 0.

    - Validated entries are locked for the climber (AttemptLocked).
    - Clearing deletes the entry unless it still carries a zone.
    - The validated flag is preserved on update.

    Returns the stored entry (None if deleted) and the climber's fresh total.
    """
    count = parse_attempt_count(count)
    boulder = _resolve_boulder(boulder_id, competition_id)
    existing = get_attempt(user_id, boulder.id)
    _check_writable(viewer, user_id, existing)

    attempt = existing
    if count == 0 and (existing is None or existing.status != "zone" or existing.send_attempt_count):
        if existing is not None:
            db.session.delete(existing)
        attempt = None
    else:
        if attempt is None:
            attempt = Attempt(
                user_id=user_id,
                boulder_id=boulder.id,
                competition_id=boulder.competition_id,
                validated=False,
            )
            db.session.add(attempt)

        if count == 0:
            # Keep the zone, drop the send
            attempt.send_attempt_count = None
            attempt.status = "zone"
        else:
            attempt.send_attempt_count = count
            attempt.status = status_for_count(count)
        attempt.competition_id = boulder.competition_id
        attempt.timestamp = utcnow()

    db.session.commit()
    invalidate_leaderboard_cache(boulder.competition_id)

    current_app.logger.info(
        "attempt %s user=%s boulder=%s count=%s by=%s",
        "cleared" if attempt is None else "saved", user_id, boulder.id, count, viewer.user_id,
    )

    return {
        "attempt": attempt,
        "total_points": competitor_total_points(user_id, boulder.competition_id),
    }


def set_zone(viewer: Viewer, user_id: str, boulder_id: int, reached: bool, competition_id: Optional[int] = None) -> dict:
    """
    Legacy partial-credit marker. A recorded send always wins over a zone.
    """
    boulder = _resolve_boulder(boulder_id, competition_id)
    existing = get_attempt(user_id, boulder.id)
    _check_writable(viewer, user_id, existing)

    if existing is not None and existing.send_attempt_count:
        return {
            "attempt": existing,
            "total_points": competitor_total_points(user_id, boulder.competition_id),
        }

    attempt = existing
    if reached:
        if attempt is None:
            attempt = Attempt(
                user_id=user_id,
                boulder_id=boulder.id,
                competition_id=boulder.competition_id,
                validated=False,
            )
            db.session.add(attempt)
        attempt.status = "zone"
        attempt.timestamp = utcnow()
    elif existing is not None:
        db.session.delete(existing)
        attempt = None

    db.session.commit()
    invalidate_leaderboard_cache(boulder.competition_id)

    return {
        "attempt": attempt,
        "total_points": competitor_total_points(user_id, boulder.competition_id),
    }


def _retries() -> int:
    return max(1, int(current_app.config.get("LEDGER_WRITE_RETRIES", 3) or 1))


def upsert_validated_attempt(user_id: str, boulder_id: int, count: int) -> bool:
    """
    The single authoritative write behind an approval: find-or-create the
    ledger entry and set count, status and validated=True.

    Idempotent, so it is safe to retry; a unique-constraint race on insert
    resolves to an update on the next try.
    """
    boulder = db.session.get(Boulder, boulder_id)
    if not boulder:
        current_app.logger.error("validated upsert: boulder %s no longer exists", boulder_id)
        return False

    competition_id = boulder.competition_id
    tries = _retries()

    for attempt_no in range(1, tries + 1):
        try:
            attempt = get_attempt(user_id, boulder_id)
            if attempt is None:
                attempt = Attempt(user_id=user_id, boulder_id=boulder_id)
                db.session.add(attempt)

            attempt.competition_id = competition_id
            attempt.send_attempt_count = count
            attempt.status = status_for_count(count)
            attempt.validated = True
            attempt.timestamp = utcnow()

            db.session.commit()
            invalidate_leaderboard_cache(competition_id)
            return True
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.warning(
                "validated upsert failed try=%s/%s user=%s boulder=%s: %s",
                attempt_no, tries, user_id, boulder_id, e,
            )

    return False


def force_set_validated(user_id: str, boulder_id: int, validated: bool = True) -> bool:
    """
    Flip only the validated flag on an existing entry, leaving the count alone.

    Recovery path for approvals and administrative override. Returns False
    (never raises) if no entry exists or every retry fails.
    """
    tries = _retries()

    for attempt_no in range(1, tries + 1):
        try:
            updated = (
                Attempt.query
                .filter_by(user_id=user_id, boulder_id=boulder_id)
                .update(
                    {"validated": bool(validated), "timestamp": utcnow()},
                    synchronize_session=False,
                )
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.warning(
                "force validated failed try=%s/%s user=%s boulder=%s: %s",
                attempt_no, tries, user_id, boulder_id, e,
            )
            continue

        if not updated:
            current_app.logger.warning(
                "force validated: no attempt for user=%s boulder=%s", user_id, boulder_id
            )
            return False

        db.session.expire_all()
        boulder = db.session.get(Boulder, boulder_id)
        invalidate_leaderboard_cache(boulder.competition_id if boulder else None)
        return True

    current_app.logger.error(
        "force validated exhausted retries user=%s boulder=%s", user_id, boulder_id
    )
    return False


def admin_set_validated(viewer: Viewer, user_id: str, boulder_id: int, validated: bool = True) -> bool:
    if viewer is None or not viewer.is_staff:
        raise NotAllowed("Admins only")
    ok = force_set_validated(user_id, boulder_id, validated)
    current_app.logger.info(
        "admin validated override user=%s boulder=%s validated=%s ok=%s by=%s",
        user_id, boulder_id, validated, ok, viewer.user_id,
    )
    return ok
