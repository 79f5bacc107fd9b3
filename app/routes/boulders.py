from flask import Blueprint, jsonify, request

from app.helpers.account import require_viewer
from app.helpers.boulder import (
    DEFAULT_MAX_POINTS,
    DEFAULT_MAX_ZONE_POINTS,
    create_boulder,
    delete_boulder,
    get_boulders,
    update_boulder,
)
from app.helpers.competition import get_comp_or_404
from app.helpers.payload import as_bool, json_body

boulders_bp = Blueprint("boulders", __name__)


@boulders_bp.route("/api/competitions/<int:competition_id>/boulders")
def api_get_boulders(competition_id):
    """
    Boulders for a competition in display order.

    ?active_only=0 includes deactivated boulders (admin screens).
    """
    get_comp_or_404(competition_id)
    active_only = as_bool(request.args.get("active_only"), True)
    return jsonify([b.to_dict() for b in get_boulders(competition_id, active_only)])


@boulders_bp.route("/api/competitions/<int:competition_id>/boulders", methods=["POST"])
def api_create_boulder(competition_id):
    """
    Payload:
      {
        "name": "Slab 3",
        "color": "blue",
        "max_points": 100,
        "max_zone_points": 50,
        "is_active": true,
        "order": 3
      }

    The five per-attempt values are derived from max_points here and stored.
    """
    viewer = require_viewer()
    data = json_body()

    boulder = create_boulder(
        viewer,
        competition_id,
        name=data.get("name"),
        color=data.get("color") or "red",
        max_points=data.get("max_points", DEFAULT_MAX_POINTS),
        max_zone_points=data.get("max_zone_points", DEFAULT_MAX_ZONE_POINTS),
        is_active=as_bool(data.get("is_active"), True),
        order=data.get("order", 0),
    )
    return jsonify(boulder.to_dict()), 201


@boulders_bp.route("/api/boulders/<int:boulder_id>", methods=["PATCH"])
def api_update_boulder(boulder_id):
    viewer = require_viewer()
    data = json_body()

    boulder = update_boulder(
        viewer,
        boulder_id,
        name=data.get("name"),
        color=data.get("color"),
        max_points=data.get("max_points"),
        max_zone_points=data.get("max_zone_points"),
        is_active=as_bool(data.get("is_active")),
        order=data.get("order"),
    )
    return jsonify(boulder.to_dict())


@boulders_bp.route("/api/boulders/<int:boulder_id>", methods=["DELETE"])
def api_delete_boulder(boulder_id):
    viewer = require_viewer()
    delete_boulder(viewer, boulder_id)
    return jsonify({"ok": True})
