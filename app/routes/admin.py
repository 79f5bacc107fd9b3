from flask import Blueprint, jsonify

from app.helpers.account import require_viewer
from app.helpers.admin import set_role_flags
from app.helpers.payload import as_bool, json_body

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/api/admin/profiles/<user_id>/roles", methods=["POST"])
def api_set_roles(user_id):
    """
    Payload: {"is_admin": true, "is_super_admin": false} (either key optional)
    """
    viewer = require_viewer()
    data = json_body()

    profile = set_role_flags(
        viewer,
        user_id,
        is_admin=as_bool(data.get("is_admin")),
        is_super_admin=as_bool(data.get("is_super_admin")),
    )
    return jsonify(
        {
            "ok": True,
            "user_id": profile.id,
            "is_admin": bool(profile.is_admin),
            "is_super_admin": bool(profile.is_super_admin),
        }
    )
