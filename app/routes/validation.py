from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from app.helpers.account import require_viewer
from app.helpers.errors import BadRequest
from app.helpers.payload import as_bool, as_int, json_body
from app.helpers.validation import (
    list_my_pending,
    list_pending_for_reviewer,
    reconcile_approved_requests,
    request_validation,
    resolve_validation,
)

validation_bp = Blueprint("validation", __name__)


def _request_payload(req, include_token=False):
    out = req.to_dict()
    if include_token:
        out["qr_token"] = req.qr_token
    return out


@validation_bp.route("/api/validation/request", methods=["POST"])
def api_request_validation():
    """
    Payload: {"boulder_id": 12, "attempt_count": 2, "regenerate": false}

    Returns the pending request including the token to encode in the QR code.
    """
    viewer = require_viewer()
    data = json_body()

    req = request_validation(
        viewer,
        as_int(data.get("boulder_id"), "boulder_id"),
        data.get("attempt_count"),
        regenerate=as_bool(data.get("regenerate"), False),
    )
    return jsonify({"ok": True, "request": _request_payload(req, include_token=True), "token": req.qr_token})


@validation_bp.route("/api/validation/resolve", methods=["POST"])
def api_resolve_validation():
    """
    Payload: {"token": "...", "approve": true}
    """
    viewer = require_viewer()
    data = json_body()

    approve = as_bool(data.get("approve"))
    if approve is None:
        raise BadRequest("Missing approve")

    result = resolve_validation(viewer, data.get("token"), approve)
    req = result["request"]

    if approve and not result["ledger_synced"]:
        return (
            jsonify(
                {
                    "ok": False,
                    "approved": True,
                    "ledger_synced": False,
                    "error": "Validation recorded but the score could not be updated yet.",
                    "request": _request_payload(req),
                }
            ),
            502,
        )

    return jsonify(
        {
            "ok": True,
            "approved": approve,
            "ledger_synced": result["ledger_synced"],
            "request": _request_payload(req),
        }
    )


@validation_bp.route("/api/validation/pending")
def api_pending_for_reviewer():
    """
    Poll target for peer reviewers: pending requests from other climbers.

    ?competition_id=1&since=2025-03-01T10:00:00
    """
    viewer = require_viewer()

    competition_id = request.args.get("competition_id")
    if competition_id is not None:
        competition_id = as_int(competition_id, "competition_id")

    since = None
    since_raw = (request.args.get("since") or "").strip()
    if since_raw:
        try:
            since = datetime.fromisoformat(since_raw)
        except ValueError:
            raise BadRequest("Invalid since")
        if since.tzinfo is not None:
            since = since.astimezone(timezone.utc).replace(tzinfo=None)

    rows = list_pending_for_reviewer(viewer, competition_id, since)
    return jsonify({"ok": True, "requests": [_request_payload(r) for r in rows]})


@validation_bp.route("/api/validation/mine")
def api_my_pending():
    viewer = require_viewer()
    rows = list_my_pending(viewer)
    return jsonify({"ok": True, "requests": [_request_payload(r, include_token=True) for r in rows]})


@validation_bp.route("/api/admin/validation/reconcile", methods=["POST"])
def api_reconcile():
    viewer = require_viewer()
    competition_id = json_body().get("competition_id")
    if competition_id is not None:
        competition_id = as_int(competition_id, "competition_id")

    return jsonify({"ok": True, **reconcile_approved_requests(viewer, competition_id)})
