from flask import jsonify, request

from .errors import ValidationError


def api_success(data=None, meta=None, status=200):
    body = {"success": True, "data": data if data is not None else {}, "meta": meta or {}}
    return jsonify(body), status


def api_error(code="error", message="", status=400, details=None):
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    body = {"success": False, "error": error}
    return jsonify(body), status


def json_body():
    """Return the request's JSON object, or an empty dict when there is none."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data
