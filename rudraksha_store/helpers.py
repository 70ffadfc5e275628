import math
import re
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from flask import jsonify, request


class ApiError(Exception):
    """An error that maps directly onto a JSON error envelope."""

    def __init__(self, message, status=400, details=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details


def api_response(message, data=None, status=200, **extra):
    """Builds the {error, message, data} envelope every endpoint returns."""
    body = {"error": False, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def error_response(message, status=400, details=None):
    body = {"error": True, "message": message}
    if details:
        body["details"] = details
    return jsonify(body), status


def utcnow():
    return datetime.now(timezone.utc)


def is_object_id(value):
    return isinstance(value, str) and ObjectId.is_valid(value) and len(value) == 24


def parse_object_id(value, label="ID"):
    """Converts a path or body value to an ObjectId, or raises a 400."""
    if isinstance(value, ObjectId):
        return value
    if not is_object_id(value):
        raise ApiError(f"Invalid {label} format", 400)
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ApiError(f"Invalid {label} format", 400)


def read_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ApiError("Invalid JSON in request body", 400)
    return data


def get_pagination(default_limit=10, max_limit=100):
    """Reads page/limit query parameters. Returns (page, limit, skip)."""
    try:
        page = int(request.args.get("page", 1))
        limit = int(request.args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ApiError("page and limit must be integers", 400)
    if page < 1 or limit < 1:
        raise ApiError("page and limit must be positive", 400)
    limit = min(limit, max_limit)
    return page, limit, (page - 1) * limit


def page_payload(key, items, total, page, limit):
    return {
        key: items,
        "total": total,
        "page": page,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def serialize(value):
    """Makes a Mongo document JSON friendly: ObjectIds to strings, _id to id."""
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if key == "_id":
                out["id"] = serialize(item)
            elif key == "password":
                continue
            else:
                out[key] = serialize(item)
        return out
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


def slugify(text):
    slug = re.sub(r"\s+", "-", (text or "").strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)
