from flask import Blueprint, jsonify

from app.helpers.account import require_viewer
from app.helpers.competition import (
    create_competition,
    delete_competition,
    get_current_comp,
    list_competitions,
    set_leaderboard_visibility,
    update_competition,
)
from app.helpers.errors import BadRequest, NotFound
from app.helpers.payload import as_bool, json_body

competitions_bp = Blueprint("competitions", __name__)


@competitions_bp.route("/api/competitions")
def api_list_competitions():
    return jsonify([c.to_dict() for c in list_competitions()])


@competitions_bp.route("/api/competitions/current")
def api_current_competition():
    comp = get_current_comp()
    if not comp:
        raise NotFound("No competition yet")
    return jsonify(comp.to_dict())


@competitions_bp.route("/api/competitions", methods=["POST"])
def api_create_competition():
    viewer = require_viewer()
    data = json_body()

    comp = create_competition(
        viewer,
        name=data.get("name"),
        location=data.get("location"),
        is_leaderboard_public=as_bool(data.get("is_leaderboard_public"), False),
    )
    return jsonify(comp.to_dict()), 201


@competitions_bp.route("/api/competitions/<int:competition_id>", methods=["PATCH"])
def api_update_competition(competition_id):
    viewer = require_viewer()
    data = json_body()

    comp = update_competition(
        viewer,
        competition_id,
        name=data.get("name"),
        location=data.get("location"),
        is_leaderboard_public=as_bool(data.get("is_leaderboard_public")),
    )
    return jsonify(comp.to_dict())


@competitions_bp.route("/api/competitions/<int:competition_id>/visibility", methods=["POST"])
def api_competition_visibility(competition_id):
    viewer = require_viewer()
    is_public = as_bool(json_body().get("is_public"))
    if is_public is None:
        raise BadRequest("Missing is_public")

    comp = set_leaderboard_visibility(viewer, competition_id, is_public)
    return jsonify(comp.to_dict())


@competitions_bp.route("/api/competitions/<int:competition_id>", methods=["DELETE"])
def api_delete_competition(competition_id):
    viewer = require_viewer()
    delete_competition(viewer, competition_id)
    return jsonify({"ok": True})
