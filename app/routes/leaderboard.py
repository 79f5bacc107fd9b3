import time

from flask import Blueprint, current_app, jsonify, make_response, request

from app.helpers.account import get_viewer, require_viewer
from app.helpers.competition import can_view_leaderboard, get_comp_or_404
from app.helpers.errors import NotAllowed
from app.helpers.leaderboard import (
    DEFAULT_FINALISTS_PER_GENDER,
    build_leaderboard,
    get_user_competition_results,
    list_universities,
    normalize_direction,
    normalize_gender_filter,
    normalize_sort_key,
    rank_leaderboard,
)

leaderboard_bp = Blueprint("leaderboard", __name__)


def _no_store(resp):
    resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    resp.headers["Pragma"] = "no-cache"
    return resp


@leaderboard_bp.route("/api/leaderboard/<int:competition_id>")
def api_leaderboard(competition_id):
    """
    Ranked leaderboard for a competition.

    Query args:
      gender      all | male | female   (all = top finalists per gender)
      q           free-text search over name / university
      university  exact university name, or "all"
      sort        total_points | total_boulders | total_flashes
      dir         desc | asc
    """
    comp = get_comp_or_404(competition_id)
    viewer = get_viewer()

    if not can_view_leaderboard(comp, viewer):
        raise NotAllowed("This leaderboard is not public yet")

    gender = normalize_gender_filter(request.args.get("gender"))
    sort_by = normalize_sort_key(request.args.get("sort"))
    direction = normalize_direction(request.args.get("dir"))
    search = request.args.get("q")
    university = request.args.get("university")

    req_id = int(time.time() * 1000)
    current_app.logger.info(
        "LB API req_id=%s comp_id=%s gender=%r sort=%s dir=%s q=%r university=%r",
        req_id, comp.id, gender, sort_by, direction, search, university,
    )

    entries = build_leaderboard(comp.id)
    rows = rank_leaderboard(
        entries,
        gender=gender,
        search=search,
        university=university,
        sort_by=sort_by,
        direction=direction,
        finalists_per_gender=current_app.config.get("FINALISTS_PER_GENDER", DEFAULT_FINALISTS_PER_GENDER),
    )

    return _no_store(make_response(jsonify({
        "competition": comp.to_dict(),
        "gender": gender,
        "sort": sort_by,
        "dir": direction,
        "req_id": req_id,
        "universities": list_universities(entries),
        "total": len(rows),
        "rows": rows,
    })))


@leaderboard_bp.route("/api/my-results")
def api_my_results():
    viewer = require_viewer()
    return _no_store(make_response(jsonify(get_user_competition_results(viewer.user_id))))
