from __future__ import annotations

from flask import jsonify


def ok(data=None, message: str | None = None, status: int = 200, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    body.update(extra)
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def fail(message: str, status: int = 200, error: str | None = None, **extra):
    body = {"success": False, "message": message}
    if error:
        body["error"] = error
    body.update(extra)
    return jsonify(body), status


def isoformat(value) -> str | None:
    return value.isoformat() + "Z" if value is not None else None
