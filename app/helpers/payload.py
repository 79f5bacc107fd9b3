from flask import request

from app.helpers.errors import BadRequest

TRUTHY = ("1", "true", "yes", "on")


def json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def as_bool(raw, default=None):
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    return str(raw).strip().lower() in TRUTHY


def as_int(raw, field: str, default=None):
    if raw is None or raw == "":
        if default is not None:
            return default
        raise BadRequest(f"Missing {field}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid {field}")
