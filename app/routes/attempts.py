from flask import Blueprint, jsonify, request

from app.helpers.account import require_viewer
from app.helpers.attempts import (
    admin_set_validated,
    fetch_user_attempts,
    is_boulder_validated,
    set_attempt,
    set_zone,
)
from app.helpers.errors import BadRequest, NotAllowed
from app.helpers.payload import as_bool, as_int, json_body

attempts_bp = Blueprint("attempts", __name__)


@attempts_bp.route("/api/attempt", methods=["POST"])
def api_set_attempt():
    """
    Save/clear the climber's attempt on one boulder.

    Payload:
      {
        "boulder_id": 12,
        "count": 2,              # 0 clears, 1 = flash, 2-5 = sent
        "competition_id": 1,     # optional cross-check
        "user_id": "abc",        # optional; admins only for other climbers
        "type": "send"           # or "zone" (legacy) with "reached": true
      }
    """
    viewer = require_viewer()
    data = json_body()

    user_id = str(data.get("user_id") or viewer.user_id).strip()
    boulder_id = as_int(data.get("boulder_id"), "boulder_id")
    competition_id = data.get("competition_id")
    if competition_id is not None:
        competition_id = as_int(competition_id, "competition_id")

    kind = (data.get("type") or "send").strip().lower()
    if kind == "zone":
        result = set_zone(
            viewer, user_id, boulder_id, as_bool(data.get("reached"), False), competition_id
        )
    elif kind == "send":
        result = set_attempt(viewer, user_id, boulder_id, data.get("count"), competition_id)
    else:
        raise BadRequest("type must be 'send' or 'zone'")

    attempt = result["attempt"]
    return jsonify(
        {
            "ok": True,
            "attempt": attempt.to_dict() if attempt is not None else None,
            "total_points": result["total_points"],
        }
    )


@attempts_bp.route("/api/attempts")
def api_get_attempts():
    """
    Ledger entries for one climber in one competition.

    ?competition_id=1&user_id=abc (user_id defaults to the viewer; staff only for others)
    """
    viewer = require_viewer()
    competition_id = as_int(request.args.get("competition_id"), "competition_id")
    user_id = (request.args.get("user_id") or viewer.user_id).strip()

    if not viewer.can_act_for(user_id):
        raise NotAllowed()

    attempts = fetch_user_attempts(user_id, competition_id)
    return jsonify([a.to_dict() for a in attempts])


@attempts_bp.route("/api/attempt/validated")
def api_is_validated():
    user_id = (request.args.get("user_id") or "").strip()
    if not user_id:
        user_id = require_viewer().user_id
    boulder_id = as_int(request.args.get("boulder_id"), "boulder_id")

    return jsonify({"user_id": user_id, "boulder_id": boulder_id, "validated": is_boulder_validated(user_id, boulder_id)})


@attempts_bp.route("/api/admin/attempt/validated", methods=["POST"])
def api_force_validated():
    """
    Admin override: flip the validated flag without touching the count.
    """
    viewer = require_viewer()
    data = json_body()

    user_id = str(data.get("user_id") or "").strip()
    if not user_id:
        raise BadRequest("Missing user_id")
    boulder_id = as_int(data.get("boulder_id"), "boulder_id")
    validated = as_bool(data.get("validated"), True)

    ok = admin_set_validated(viewer, user_id, boulder_id, validated)
    if not ok:
        return jsonify({"ok": False, "error": "No attempt was updated"}), 404
    return jsonify({"ok": True, "validated": validated})
