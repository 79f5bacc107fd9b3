from datetime import timedelta

import pytest

from app.extensions import db
from app.helpers import validation as validation_helpers
from app.helpers.attempts import force_set_validated
from app.helpers.scoring import competitor_total_points
from app.helpers.errors import AttemptLocked, BadRequest, InvalidToken, NotAllowed
from app.helpers.time import utcnow
from app.helpers.validation import (
    list_my_pending,
    list_pending_for_reviewer,
    reconcile_approved_requests,
    request_validation,
    resolve_validation,
)
from app.models import Attempt, ValidationRequest

from conftest import fresh, viewer_for


@pytest.fixture
def climbers(make_profile):
    make_profile("alice", gender="female")
    make_profile("bob", gender="male")
    return viewer_for("alice"), viewer_for("bob")


def _entry(user_id, boulder_id):
    db.session.expire_all()
    return Attempt.query.filter_by(user_id=user_id, boulder_id=boulder_id).first()


def test_request_creates_pending_and_unvalidated_entry(app, climbers, make_boulder):
    alice, _ = climbers
    b = make_boulder()

    req = request_validation(alice, b.id, 3)

    assert req.status == "pending"
    assert req.attempt_count == 3
    assert req.qr_token
    entry = _entry("alice", b.id)
    assert entry.send_attempt_count == 3
    assert entry.validated is False


def test_same_count_reuses_token(app, climbers, make_boulder):
    alice, _ = climbers
    b = make_boulder()

    first = request_validation(alice, b.id, 2)
    second = request_validation(alice, b.id, 2)

    assert second.id == first.id
    assert second.qr_token == first.qr_token


def test_regenerate_or_new_count_supersedes(app, climbers, make_boulder):
    alice, _ = climbers
    b = make_boulder()

    first_token = request_validation(alice, b.id, 2).qr_token
    regenerated_token = request_validation(alice, b.id, 2, regenerate=True).qr_token
    changed = request_validation(alice, b.id, 4)

    assert regenerated_token != first_token
    assert changed.qr_token not in (first_token, regenerated_token)
    pending = ValidationRequest.query.filter_by(climber_id="alice", status="pending").all()
    assert [r.id for r in pending] == [changed.id]
    assert _entry("alice", b.id).send_attempt_count == 4


@pytest.mark.parametrize("count", [0, 6])
def test_request_count_out_of_range(app, climbers, make_boulder, count):
    alice, _ = climbers
    b = make_boulder()
    with pytest.raises(BadRequest):
        request_validation(alice, b.id, count)


def test_request_on_inactive_boulder(app, climbers, make_boulder):
    alice, _ = climbers
    b = make_boulder(is_active=False)
    with pytest.raises(BadRequest):
        request_validation(alice, b.id, 1)


def test_request_on_validated_boulder_is_locked(app, climbers, make_boulder):
    alice, _ = climbers
    b = make_boulder()
    request_validation(alice, b.id, 1)
    force_set_validated("alice", b.id)

    with pytest.raises(AttemptLocked):
        request_validation(alice, b.id, 2)


@pytest.mark.parametrize("count, status, points", [(1, "flash", 100), (2, "sent", 95), (5, "sent", 80)])
def test_approval_validates_ledger_entry(app, climbers, make_boulder, count, status, points):
    alice, bob = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, count)

    result = resolve_validation(bob, req.qr_token, approve=True)

    assert result["ledger_synced"] is True
    assert result["request"].status == "approved"
    assert result["request"].validator_id == "bob"
    assert result["request"].scanned_at is not None

    entry = _entry("alice", b.id)
    assert entry.send_attempt_count == count
    assert entry.status == status
    assert entry.validated is True

    assert competitor_total_points("alice", b.competition_id) == points


def test_approval_trusts_requested_count(app, climbers, make_boulder):
    alice, bob = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 2)

    # Count drifts after the QR code was shown
    entry = _entry("alice", b.id)
    entry.send_attempt_count = 4
    entry.status = "sent"
    db.session.commit()

    resolve_validation(bob, req.qr_token, approve=True)

    assert _entry("alice", b.id).send_attempt_count == 2


def test_approval_creates_missing_entry(app, climbers, make_boulder):
    alice, bob = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 1)
    db.session.delete(_entry("alice", b.id))
    db.session.commit()

    resolve_validation(bob, req.qr_token, approve=True)

    entry = _entry("alice", b.id)
    assert entry.validated is True
    assert entry.status == "flash"


def test_rejection_leaves_ledger_untouched(app, climbers, make_boulder):
    alice, bob = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 3)
    before = _entry("alice", b.id).to_dict()

    result = resolve_validation(bob, req.qr_token, approve=False)

    assert result["request"].status == "rejected"
    assert result["ledger_synced"] is None
    assert _entry("alice", b.id).to_dict() == before


def test_unknown_or_empty_token(app, climbers):
    _, bob = climbers
    with pytest.raises(InvalidToken):
        resolve_validation(bob, "nope", approve=True)
    with pytest.raises(InvalidToken):
        resolve_validation(bob, "   ", approve=True)


def test_climber_cannot_validate_own_request(app, climbers, make_boulder):
    alice, _ = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 1)

    with pytest.raises(NotAllowed):
        resolve_validation(alice, req.qr_token, approve=True)
    assert fresh(ValidationRequest, req.id).status == "pending"


def test_token_is_single_use(app, climbers, make_boulder, make_profile):
    alice, bob = climbers
    make_profile("carol")
    b = make_boulder()
    req = request_validation(alice, b.id, 2)
    token = req.qr_token

    resolve_validation(bob, token, approve=False)

    with pytest.raises(InvalidToken):
        resolve_validation(viewer_for("carol"), token, approve=True)
    assert _entry("alice", b.id).validated is False


def test_expired_request_cannot_be_resolved(app, climbers, make_boulder):
    app.config["VALIDATION_REQUEST_TTL_MINUTES"] = 10
    alice, bob = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 2)
    old_token = req.qr_token
    req.created_at = utcnow() - timedelta(minutes=30)
    db.session.commit()

    with pytest.raises(InvalidToken):
        resolve_validation(bob, old_token, approve=True)

    # an expired request is replaced rather than reused
    replacement = request_validation(alice, b.id, 2)
    assert replacement.qr_token != old_token
    assert ValidationRequest.query.filter_by(qr_token=old_token).first() is None


def test_fallback_forces_flag_when_upsert_fails(app, climbers, make_boulder, monkeypatch):
    alice, bob = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 2)
    monkeypatch.setattr(validation_helpers, "upsert_validated_attempt", lambda *args: False)

    result = resolve_validation(bob, req.qr_token, approve=True)

    assert result["ledger_synced"] is True
    assert _entry("alice", b.id).validated is True


def test_total_write_failure_keeps_approval_and_alerts(app, climbers, make_boulder, monkeypatch):
    alice, bob = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 2)

    alerts = []
    monkeypatch.setattr(validation_helpers, "upsert_validated_attempt", lambda *args: False)
    monkeypatch.setattr(validation_helpers, "force_set_validated", lambda *args: False)
    monkeypatch.setattr(validation_helpers, "send_ledger_sync_alert", lambda *args: alerts.append(args))

    result = resolve_validation(bob, req.qr_token, approve=True)

    assert result["ledger_synced"] is False
    assert fresh(ValidationRequest, req.id).status == "approved"
    assert _entry("alice", b.id).validated is False
    assert len(alerts) == 1
    assert alerts[0][1:] == ("alice", b.id, req.id)


def test_reconcile_repairs_unsynced_approvals(app, climbers, make_boulder, monkeypatch, make_profile):
    alice, bob = climbers
    make_profile("admin", is_admin=True)
    b = make_boulder()
    req = request_validation(alice, b.id, 3)

    monkeypatch.setattr(validation_helpers, "upsert_validated_attempt", lambda *args: False)
    monkeypatch.setattr(validation_helpers, "force_set_validated", lambda *args: False)
    monkeypatch.setattr(validation_helpers, "send_ledger_sync_alert", lambda *args: None)
    resolve_validation(bob, req.qr_token, approve=True)
    monkeypatch.undo()

    with pytest.raises(NotAllowed):
        reconcile_approved_requests(alice)

    summary = reconcile_approved_requests(viewer_for("admin", is_admin=True), b.competition_id)

    assert summary == {"checked": 1, "repaired": 1, "failed": 0}
    entry = _entry("alice", b.id)
    assert entry.validated is True
    assert entry.send_attempt_count == 3

    again = reconcile_approved_requests(viewer_for("admin", is_admin=True))
    assert again == {"checked": 1, "repaired": 0, "failed": 0}


def test_pending_listings(app, climbers, make_boulder):
    alice, bob = climbers
    b1 = make_boulder("Slab")
    b2 = make_boulder("Roof")
    r1 = request_validation(alice, b1.id, 1)
    r2 = request_validation(bob, b2.id, 2)

    assert [r.id for r in list_pending_for_reviewer(alice)] == [r2.id]
    assert [r.id for r in list_pending_for_reviewer(bob)] == [r1.id]
    assert list_pending_for_reviewer(bob, competition_id=b1.competition_id + 1) == []
    assert [r.id for r in list_my_pending(alice)] == [r1.id]


def test_request_and_resolve_routes(client, climbers, make_boulder, login):
    b = make_boulder()

    login("alice")
    resp = client.post("/api/validation/request", json={"boulder_id": b.id, "attempt_count": 1})
    assert resp.status_code == 200
    token = resp.get_json()["token"]
    assert resp.get_json()["request"]["qr_token"] == token

    resp = client.post("/api/validation/resolve", json={"token": token, "approve": True})
    assert resp.status_code == 403

    login("bob")
    pending = client.get("/api/validation/pending").get_json()["requests"]
    assert [r["climber_id"] for r in pending] == ["alice"]
    assert "qr_token" not in pending[0]

    resp = client.post("/api/validation/resolve", json={"token": token, "approve": True})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["approved"] is True
    assert body["ledger_synced"] is True
    assert body["request"]["status"] == "approved"

    resp = client.post("/api/validation/resolve", json={"token": token, "approve": True})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Invalid or expired code"


def test_resolve_route_reports_unsynced_approval(client, climbers, make_boulder, login, monkeypatch):
    alice, _ = climbers
    b = make_boulder()
    req = request_validation(alice, b.id, 2)
    token = req.qr_token

    monkeypatch.setattr(validation_helpers, "apply_approval", lambda req: False)
    login("bob")
    resp = client.post("/api/validation/resolve", json={"token": token, "approve": True})

    assert resp.status_code == 502
    body = resp.get_json()
    assert body["approved"] is True
    assert body["ledger_synced"] is False


def test_pending_route_rejects_bad_since(client, climbers, login):
    login("bob")
    assert client.get("/api/validation/pending?since=yesterday").status_code == 400
    assert client.get("/api/validation/pending?since=2030-01-01T00:00:00%2B00:00").get_json()["requests"] == []
