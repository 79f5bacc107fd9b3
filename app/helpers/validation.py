from typing import Optional

from flask import current_app

from app.extensions import db
from app.models import Attempt, Boulder, ValidationRequest
from app.helpers.account import Viewer, require_staff
from app.helpers.admin import staff_emails
from app.helpers.attempts import (
    force_set_validated,
    get_attempt,
    parse_attempt_count,
    set_attempt,
    upsert_validated_attempt,
)
from app.helpers.email import send_ledger_sync_alert
from app.helpers.errors import AttemptLocked, BadRequest, InvalidToken, NotAllowed, NotFound
from app.helpers.time import is_older_than, utcnow
from app.helpers.url import make_token


def _ttl_minutes() -> Optional[int]:
    return current_app.config.get("VALIDATION_REQUEST_TTL_MINUTES")


def is_expired(req: ValidationRequest) -> bool:
    return is_older_than(req.created_at, _ttl_minutes())


def get_pending_request(climber_id: str, boulder_id: int) -> Optional[ValidationRequest]:
    return (
        ValidationRequest.query
        .filter_by(climber_id=climber_id, boulder_id=boulder_id, status="pending")
        .order_by(ValidationRequest.created_at.desc(), ValidationRequest.id.desc())
        .first()
    )


def request_validation(viewer: Viewer, boulder_id: int, attempt_count, regenerate: bool = False) -> ValidationRequest:
    """
    Ask a peer to confirm a send. Returns the pending request whose
    `qr_token` the climber shows to the validator.

    - Re-requesting with the same count reuses the pending token.
    - `regenerate`, a different count, or an expired request deletes the old
      pending request and mints a new token.
    - The climber's ledger entry is updated to the claimed count (still
      unvalidated) before the request is stored.
    """
    if viewer is None:
        raise NotAllowed("You must be logged in")

    count = parse_attempt_count(attempt_count, minimum=1)

    boulder = db.session.get(Boulder, boulder_id)
    if not boulder:
        raise NotFound("Boulder not found")
    if not boulder.is_active:
        raise BadRequest("Boulder is not active")

    existing = get_attempt(viewer.user_id, boulder.id)
    if existing is not None and existing.validated:
        raise AttemptLocked()

    pending = get_pending_request(viewer.user_id, boulder.id)
    if pending is not None and not regenerate and not is_expired(pending) and pending.attempt_count == count:
        return pending

    # Supersede: delete-before-recreate keeps one pending request per boulder
    superseded = (
        ValidationRequest.query
        .filter_by(climber_id=viewer.user_id, boulder_id=boulder.id, status="pending")
        .all()
    )
    for old in superseded:
        db.session.delete(old)
    db.session.flush()

    set_attempt(viewer, viewer.user_id, boulder.id, count)

    req = ValidationRequest(
        climber_id=viewer.user_id,
        boulder_id=boulder.id,
        status="pending",
        attempt_count=count,
        qr_token=make_token(),
    )
    db.session.add(req)
    db.session.commit()

    current_app.logger.info(
        "validation requested id=%s climber=%s boulder=%s count=%s superseded=%s",
        req.id, req.climber_id, req.boulder_id, count, len(superseded),
    )
    return req


def resolve_validation(viewer: Viewer, token: str, approve: bool) -> dict:
    """
    A second climber scans `token` and approves or rejects the claim.

    Approval marks the request approved first, then writes the climber's
    ledger entry (count from the request, validated=True). If that write
    fails the validated flag is forced directly; if that fails too the
    approval stands, operators are alerted and `ledger_synced` is False.
    Rejection never touches the ledger.
    """
    if viewer is None:
        raise NotAllowed("You must be logged in")

    token = (token or "").strip()
    if not token:
        raise InvalidToken()

    req = ValidationRequest.query.filter_by(qr_token=token, status="pending").first()
    if req is None or is_expired(req):
        raise InvalidToken()

    if req.climber_id == viewer.user_id:
        raise NotAllowed("You cannot validate your own climb")

    now = utcnow()
    new_status = "approved" if approve else "rejected"

    # Conditional update: only one resolver can win a pending request
    claimed = (
        ValidationRequest.query
        .filter_by(id=req.id, status="pending")
        .update(
            {
                "status": new_status,
                "validator_id": viewer.user_id,
                "updated_at": now,
                "scanned_at": now,
            },
            synchronize_session=False,
        )
    )
    db.session.commit()
    if not claimed:
        raise InvalidToken()

    db.session.refresh(req)

    current_app.logger.info(
        "validation %s id=%s climber=%s boulder=%s count=%s by=%s",
        new_status, req.id, req.climber_id, req.boulder_id, req.attempt_count, viewer.user_id,
    )

    if not approve:
        return {"request": req, "ledger_synced": None}

    return {"request": req, "ledger_synced": apply_approval(req)}


def apply_approval(req: ValidationRequest) -> bool:
    """Write an approved request into the ledger. Safe to call repeatedly."""
    current = get_attempt(req.climber_id, req.boulder_id)
    if current is not None and not current.validated and current.send_attempt_count != req.attempt_count:
        # The request's count is what the validator witnessed
        current_app.logger.warning(
            "approval count differs from ledger request=%s requested=%s ledger=%s",
            req.id, req.attempt_count, current.send_attempt_count,
        )

    synced = upsert_validated_attempt(req.climber_id, req.boulder_id, req.attempt_count)
    if not synced:
        synced = force_set_validated(req.climber_id, req.boulder_id, True)

    if not synced:
        current_app.logger.error(
            "approval recorded but ledger not updated request=%s climber=%s boulder=%s",
            req.id, req.climber_id, req.boulder_id,
        )
        send_ledger_sync_alert(staff_emails(), req.climber_id, req.boulder_id, req.id)

    return synced


def list_pending_for_reviewer(viewer: Viewer, competition_id: Optional[int] = None, since=None) -> list[ValidationRequest]:
    """
    Pending requests from other climbers, newest first.

    Clients poll this after any change notification and render from it,
    never from the notification payload.
    """
    if viewer is None:
        raise NotAllowed("You must be logged in")

    q = ValidationRequest.query.filter(
        ValidationRequest.status == "pending",
        ValidationRequest.climber_id != viewer.user_id,
    )
    if competition_id is not None:
        q = q.join(Boulder, Boulder.id == ValidationRequest.boulder_id).filter(
            Boulder.competition_id == competition_id
        )
    if since is not None:
        q = q.filter(ValidationRequest.created_at > since)

    rows = q.order_by(ValidationRequest.created_at.desc(), ValidationRequest.id.desc()).all()
    return [r for r in rows if not is_expired(r)]


def list_my_pending(viewer: Viewer) -> list[ValidationRequest]:
    if viewer is None:
        raise NotAllowed("You must be logged in")

    rows = (
        ValidationRequest.query
        .filter_by(climber_id=viewer.user_id, status="pending")
        .order_by(ValidationRequest.created_at.desc(), ValidationRequest.id.desc())
        .all()
    )
    return [r for r in rows if not is_expired(r)]


def reconcile_approved_requests(viewer: Viewer, competition_id: Optional[int] = None) -> dict:
    """
    Re-apply the latest approval per (climber, boulder) whose ledger entry is
    missing or not validated.
    """
    require_staff(viewer)

    q = ValidationRequest.query.filter(ValidationRequest.status == "approved")
    if competition_id is not None:
        q = q.join(Boulder, Boulder.id == ValidationRequest.boulder_id).filter(
            Boulder.competition_id == competition_id
        )
    approved = q.order_by(ValidationRequest.updated_at.desc(), ValidationRequest.id.desc()).all()

    seen = set()
    checked = 0
    repaired = 0
    failed = 0

    for req in approved:
        key = (req.climber_id, req.boulder_id)
        if key in seen:
            continue
        seen.add(key)
        checked += 1

        attempt = Attempt.query.filter_by(user_id=req.climber_id, boulder_id=req.boulder_id).first()
        if attempt is not None and attempt.validated:
            continue

        if upsert_validated_attempt(req.climber_id, req.boulder_id, req.attempt_count):
            repaired += 1
        else:
            failed += 1

    current_app.logger.info(
        "reconcile comp=%s checked=%s repaired=%s failed=%s by=%s",
        competition_id, checked, repaired, failed, viewer.user_id,
    )
    return {"checked": checked, "repaired": repaired, "failed": failed}
