from __future__ import annotations

from flask import Blueprint

from synorb_config.settings import SERVICE_NAME

from ..http import json_response


def make_health_blueprint() -> Blueprint:
    bp = Blueprint("health", __name__)

    @bp.get("/health")
    def health():
        return json_response({"status": "ok", "service": SERVICE_NAME})

    return bp
