from __future__ import annotations

import logging
from typing import Iterable

from flask import Flask, jsonify, request

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"


def is_origin_allowed(origin: str | None, allowed: Iterable[str]) -> bool:
    # no Origin header (or the literal "null") means same-origin or non-browser
    if not origin or origin == "null":
        return True
    return origin.rstrip("/") in {o.rstrip("/") for o in allowed}


def install_origin_filter(app: Flask, allowed_origins: Iterable[str]) -> None:
    allowed = tuple(allowed_origins)

    @app.before_request
    def _check_origin():
        if not request.path.startswith(API_PREFIX):
            return None
        origin = request.headers.get("Origin")
        if is_origin_allowed(origin, allowed):
            return None
        logger.warning("Blocked %s %s from origin %s", request.method, request.path, origin)
        return jsonify({"error": "Forbidden"}), 403
