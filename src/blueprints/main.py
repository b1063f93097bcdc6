from flask import Blueprint, current_app, jsonify

from utils.http_utils import json_error

main_bp = Blueprint("main", __name__)

ENDPOINTS = {
    "health": "/api/health",
    "healthDetailed": "/api/health/detailed",
    "blacklist": "/api/blacklist",
    "blacklistCheck": "/api/blacklist/check/:name",
    "blacklistStats": "/api/blacklist/stats",
}


@main_bp.route("/")
def index():
    return jsonify(
        {
            "success": True,
            "message": "Blacklist Mock API Server",
            "version": current_app.config["APP_CONFIG"].version,
            "endpoints": ENDPOINTS,
        }
    )


def not_found_response(path: str):
    """404 envelope listing the routes this server exposes."""
    return json_error(
        "Not Found",
        status=404,
        message=f"Endpoint {path} not found",
        availableEndpoints=list(ENDPOINTS.values()),
    )
