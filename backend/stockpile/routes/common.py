# Overview: Shared helpers for record routes; request parsing and service error translation.

"""
Every CRUD route of a record kind follows the same contract:

- POST   body: record (id optional)                -> 201 {record}
- PUT    body: record, optional "version"/If-Match -> 200 {record}
- DELETE                                           -> 200 {"success": true, "deleted": bool}

Errors are JSON {"error", "code", "details"}:
400 VALIDATION_ERROR, 403 FORBIDDEN, 404 NOT_FOUND, 409 VERSION_CONFLICT.
"""

from flask import request, jsonify, g, current_app

from ..services import record_service, visibility_service
from ..services.record_service import RecordNotFoundError, RecordConflictError
from ..services.fulfillment_service import FulfillmentError
from ..validation import ValidationError


def error_response(message: str, status: int, code: str | None = None, details=None):
    body = {"error": message}
    if code:
        body["code"] = code
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def server_error(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def read_json():
    """Request body as a dict, or None when it is not a JSON object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return data


def expected_version(data: dict) -> int | None:
    """Version the client last read: If-Match header first, then body "version"."""
    header = request.headers.get("If-Match")
    if header:
        return record_service.parse_version(header)
    return record_service.parse_version(data.get("version"))


def current_user_id() -> str | None:
    user = getattr(g, "current_user", None)
    return user.id if user is not None else None


def body_record_id(data: dict) -> str | None:
    raw_id = data.get("id")
    return str(raw_id).strip() if raw_id not in (None, "") else None


def write_denied_response(kind: str, record_id: str | None):
    """
    403 when the user's role may not write kind at all, 404 when record_id
    names a stored record the user cannot see; None when the write may proceed.
    """
    if not visibility_service.can_write(g.current_user, kind):
        return error_response(f"Saving a {kind} requires the manager role", 403, "FORBIDDEN")
    if record_id:
        existing = record_service.find_record(kind, record_id)
        if existing is not None and not visibility_service.can_see_record(g.current_user, kind, existing):
            return error_response(f"{kind} {record_id} not found", 404, "NOT_FOUND")
    return None


def translate_error(e: Exception):
    """JSON response for a known service exception."""
    if isinstance(e, FulfillmentError):
        return error_response(str(e), 400, e.code, e.details)
    if isinstance(e, ValidationError):
        return error_response(str(e), 400, "VALIDATION_ERROR")
    if isinstance(e, RecordConflictError):
        return error_response(str(e), 409, "VERSION_CONFLICT", e.details)
    if isinstance(e, RecordNotFoundError):
        return error_response(str(e), 404, "NOT_FOUND")
    raise e


KNOWN_ERRORS = (FulfillmentError, ValidationError, RecordConflictError, RecordNotFoundError)


def create_record_response(kind: str):
    data = read_json()
    if data is None:
        return error_response("Invalid JSON payload", 400, "VALIDATION_ERROR")

    denied = write_denied_response(kind, body_record_id(data))
    if denied is not None:
        return denied

    try:
        record = record_service.save_record(
            kind,
            data,
            expected_version=expected_version(data),
            user_id=current_user_id(),
        )
        return jsonify(record), 201
    except KNOWN_ERRORS as e:
        return translate_error(e)
    except Exception:
        return server_error(f"create {kind}")


def replace_record_response(kind: str, record_id: str):
    data = read_json()
    if data is None:
        return error_response("Invalid JSON payload", 400, "VALIDATION_ERROR")

    denied = write_denied_response(kind, record_id)
    if denied is not None:
        return denied

    try:
        record = record_service.save_record(
            kind,
            data,
            record_id=record_id,
            expected_version=expected_version(data),
            user_id=current_user_id(),
        )
        return jsonify(record)
    except KNOWN_ERRORS as e:
        return translate_error(e)
    except Exception:
        return server_error(f"replace {kind} {record_id}")


def delete_record_response(kind: str, record_id: str):
    if not visibility_service.can_delete(g.current_user, kind):
        return error_response(f"Deleting a {kind} requires the manager role", 403, "FORBIDDEN")

    try:
        deleted = record_service.delete_record(kind, record_id)
        return jsonify({"success": True, "deleted": deleted})
    except Exception:
        return server_error(f"delete {kind} {record_id}")
