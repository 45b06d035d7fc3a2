from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

from flask import Flask, request

from synorb_common.telemetry import set_request_id
from synorb_config.settings import Settings, init_runtime
from synorb_mcp.client import client_factory
from synorb_mcp.dispatcher import ToolDispatcher

from .routes import make_health_blueprint, make_tools_blueprint


logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    dispatcher_factory: Optional[Callable[[], ToolDispatcher]] = None,
) -> Flask:
    """Flask application factory for the remote (HTTP) deployment.

    A fresh dispatcher, and so a fresh upstream client, is built per request.
    Credentials are resolved by each route and passed explicitly.
    """
    settings = settings or Settings.from_env()
    default_credentials = settings.default_credentials()
    if default_credentials is None:
        logger.warning("SYNORB_API_KEY and SYNORB_API_SECRET not set; requests must carry credentials")

    if dispatcher_factory is None:
        factory = client_factory(settings)

        def dispatcher_factory() -> ToolDispatcher:
            return ToolDispatcher(client_factory=factory, client_id="synorb_api")

    app = Flask(__name__)

    # --- middleware (request id) --------------------------------------------
    @app.before_request
    def ensure_request_id() -> None:
        rid = (
            request.headers.get("X-Request-Id")
            or request.headers.get("X-Correlation-Id")
            or uuid.uuid4().hex
        )
        setattr(request, "request_id", rid)
        set_request_id(rid)

    @app.after_request
    def add_request_id_header(resp):
        rid = getattr(request, "request_id", None)
        if rid and "X-Request-Id" not in resp.headers:
            resp.headers["X-Request-Id"] = rid
        return resp

    @app.teardown_request
    def clear_request_id(_exc) -> None:
        set_request_id(None)

    # --- routes --------------------------------------------------------------
    app.register_blueprint(make_health_blueprint())
    app.register_blueprint(
        make_tools_blueprint(dispatcher_factory=dispatcher_factory, default_credentials=default_credentials)
    )

    return app


def serve(settings: Settings) -> None:
    app = create_app(settings)
    logger.info("Synorb MCP HTTP server running on port %s", settings.port)
    app.run(host=settings.host, port=settings.port)


def main() -> None:
    init_runtime()
    serve(Settings.from_env())


if __name__ == "__main__":
    main()
