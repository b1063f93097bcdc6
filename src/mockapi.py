#!/usr/bin/env python3

import argparse
import logging
import signal
from time import perf_counter

from flask import Flask, g, request
from waitress import serve  # type: ignore
from werkzeug.exceptions import HTTPException

from blacklist_store import BlacklistStore, get_blacklist_store
from blueprints.blacklist import blacklist_bp
from blueprints.health import health_bp
from blueprints.main import main_bp, not_found_response
from config import Config
from utils.http_utils import APIError, get_request_id, json_error, wants_json
from utils.logging_utils import ACCESS_LOGGER_NAME, format_access_line, setup_logging

logger = logging.getLogger(__name__)
access_logger = logging.getLogger(ACCESS_LOGGER_NAME)

CORS_ALLOW_METHODS = "GET, POST, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, X-Request-Id"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Blacklist Mock API Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on")
    parser.add_argument("--host", type=str, default=None, help="Interface to bind")
    parser.add_argument("--threads", type=int, default=None, help="Waitress worker threads")
    parser.add_argument("--no-seed", dest="seed", action="store_false", default=None, help="Start with an empty blacklist")
    return parser.parse_args(argv)


def create_app(config: Config | None = None, store: BlacklistStore | None = None) -> Flask:
    config = config or Config()
    if store is None:
        store = get_blacklist_store(seed=config.seed)

    app = Flask(__name__)
    app.json.sort_keys = False

    # Store dependencies
    app.config["APP_CONFIG"] = config
    app.config["BLACKLIST_STORE"] = store
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length

    # Register Blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(blacklist_bp)

    @app.before_request
    def _start_request():
        g.request_started = perf_counter()
        get_request_id()
        # CORS preflight; headers are added in after_request
        if request.method == "OPTIONS":
            return ("", 204)

    # Consistent JSON error handling
    @app.errorhandler(APIError)
    def _handle_api_error(err: APIError):
        return json_error(err.message, status=err.status, code=err.code, details=err.details)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(err: HTTPException):
        status = err.code or 500
        if not wants_json():
            return (err.name, status)
        if status == 404:
            return not_found_response(request.path)
        if status == 405:
            return json_error(
                "Method not allowed",
                status=405,
                message=f"{request.method} is not supported on {request.path}",
            )
        return json_error(err.name, status=status, message=err.description)

    @app.errorhandler(Exception)
    def _handle_unexpected_error(err: Exception):
        logger.exception("Unhandled exception: %s", err)
        if not wants_json():
            return ("Internal Server Error", 500)
        message = "Something went wrong" if config.is_production else str(err)
        return json_error("Internal Server Error", status=500, message=message)

    @app.after_request
    def _finalize_response(response):
        rid = get_request_id()
        if rid:
            response.headers.setdefault("X-Request-Id", rid)

        # Basic hardening headers
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
        response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        # Enable HSTS only when under HTTPS/behind a proxy forwarding HTTPS
        if request.is_secure or request.headers.get("X-Forwarded-Proto", "").lower() == "https":
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")

        response.headers.setdefault("Access-Control-Allow-Origin", config.cors_origin)
        response.headers.setdefault("Access-Control-Allow-Methods", CORS_ALLOW_METHODS)
        response.headers.setdefault("Access-Control-Allow-Headers", CORS_ALLOW_HEADERS)
        response.headers.setdefault("Access-Control-Expose-Headers", "X-Request-Id")

        started = getattr(g, "request_started", None)
        elapsed_ms = int((perf_counter() - started) * 1000) if started is not None else None
        access_logger.info(
            format_access_line(
                request.remote_addr,
                request.method,
                request.full_path.rstrip("?"),
                request.environ.get("SERVER_PROTOCOL", "HTTP/1.1"),
                response.status_code,
                response.content_length,
                request.referrer,
                request.user_agent.string,
            ),
            extra={"request_id": rid, "elapsed_ms": elapsed_ms},
        )
        return response

    return app


def _install_signal_handlers():
    def _handle_shutdown(signum, frame):
        logger.info(f"{signal.Signals(signum).name} received, shutting down gracefully")
        # waitress stops its loop and task dispatcher on SystemExit
        raise SystemExit(0)

    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)


def main(argv=None):
    args = parse_args(argv)
    config = Config(
        {
            "environment": "development" if args.dev else None,
            "port": args.port,
            "host": args.host,
            "threads": args.threads,
            "seed": args.seed,
        }
    )
    setup_logging(config.log_format)
    config.log_summary()

    app = create_app(config)

    base_url = f"http://localhost:{config.port}"
    logger.info(f"Mock API Server running on port {config.port} ({config.environment} mode)")
    logger.info(f"Health check: {base_url}/api/health")
    logger.info(f"Blacklist API: {base_url}/api/blacklist")
    logger.info(f"Check name: {base_url}/api/blacklist/check/{{name}}")

    _install_signal_handlers()
    try:
        serve(app, host=config.host, port=config.port, threads=config.threads)
    finally:
        logger.info("Process terminated")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
