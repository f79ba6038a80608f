from typing import Any, Optional

from flask import jsonify, request

from app.services.errors import ValidationError


def json_body() -> dict:
    """Request JSON object (form fields as a fallback); anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict() if request.form else {}
    if not isinstance(data, dict):
        raise ValidationError({"__all__": "Request body must be a JSON object."})
    return data


def arg_int(name: str) -> Optional[int]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError({name: f"{name} must be an integer."})


def arg_bool(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "on", "yes")


def ok(status: int = 200, /, **payload: Any):
    return jsonify({"ok": True, **payload}), status
