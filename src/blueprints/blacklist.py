import logging

from flask import Blueprint, current_app, request
from werkzeug.routing import PathConverter

from model import DEFAULT_ADDED_BY, DEFAULT_REASON, coerce_category
from utils.http_utils import APIError, json_error, json_internal_error, json_success
from utils.time_utils import utc_now_iso

logger = logging.getLogger(__name__)

blacklist_bp = Blueprint("blacklist", __name__, url_prefix="/api/blacklist")


class EntryNameConverter(PathConverter):
    """Route segment for an entry name; may contain slashes but not end with one."""

    regex = "[^/](?:.*[^/])?"


@blacklist_bp.record_once
def _register_converters(state):
    state.app.url_map.converters.setdefault("entry_name", EntryNameConverter)


class BlacklistAPIError(APIError):
    """Business failure with a machine-readable ``error`` and a human ``message``."""

    def __init__(self, error: str, description: str, status: int = 400):
        super().__init__(error, status=status)
        self.description = description


@blacklist_bp.errorhandler(BlacklistAPIError)
def _handle_blacklist_error(err: BlacklistAPIError):
    return json_error(err.message, status=err.status, message=err.description)


def _store():
    return current_app.config["BLACKLIST_STORE"]


def _require_name(name, error: str = "Invalid name parameter", description: str = "Name must be a non-empty string") -> str:
    if not isinstance(name, str) or not name.strip():
        raise BlacklistAPIError(error, description, status=400)
    return name.strip()


def _request_body() -> dict:
    if request.is_json:
        # A body that fails to parse is reported, not treated as an empty form
        data = request.get_json(silent=True)
    else:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise BlacklistAPIError("Invalid request body", "Request body must be a JSON object", status=400)
    return data


@blacklist_bp.route("", methods=["GET"])
def list_entries():
    try:
        store = _store()
        entries = store.list_all()
        stats = store.stats().to_dict()
        return json_success(
            data=[entry.to_dict() for entry in entries],
            metadata={**stats, "timestamp": utc_now_iso()},
        )
    except Exception as e:
        logger.exception("Failed to list blacklist entries")
        return json_internal_error("retrieve blacklist", message=str(e))


@blacklist_bp.route("/check/<entry_name:name>", methods=["GET"])
def check_name(name: str):
    trimmed = _require_name(name)
    try:
        entry = _store().get_entry(trimmed)
        payload = {"name": trimmed, "isBlacklisted": entry is not None}
        if entry is not None:
            payload["entry"] = entry.to_dict()
        payload["checkedAt"] = utc_now_iso()
        return json_success(**payload)
    except Exception as e:
        logger.exception(f"Failed to check blacklist for '{trimmed}'")
        return json_internal_error("check blacklist", message=str(e))


@blacklist_bp.route("/stats", methods=["GET"])
def stats():
    try:
        stats_dict = _store().stats().to_dict()
        stats_dict["retrievedAt"] = utc_now_iso()
        return json_success(stats=stats_dict)
    except Exception as e:
        logger.exception("Failed to compute blacklist stats")
        return json_internal_error("retrieve blacklist statistics", message=str(e))


@blacklist_bp.route("", methods=["POST"])
def add_entry():
    data = _request_body()
    name = _require_name(
        data.get("name"),
        error="Invalid name",
        description="Name is required and must be a non-empty string",
    )
    try:
        entry = _store().add_if_absent(
            name=name,
            reason=data.get("reason") or DEFAULT_REASON,
            added_by=data.get("addedBy") or DEFAULT_ADDED_BY,
            category=coerce_category(data.get("category")),
        )
        if entry is None:
            raise BlacklistAPIError(
                "Entry already exists",
                f"Name '{name}' is already blacklisted",
                status=409,
            )
        return json_success(
            "Entry added to blacklist successfully",
            status=201,
            entry=entry.to_dict(),
        )
    except APIError:
        raise
    except Exception as e:
        logger.exception(f"Failed to add '{name}' to blacklist")
        return json_internal_error("add entry to blacklist", message=str(e))


@blacklist_bp.route("/<entry_name:name>", methods=["DELETE"])
def remove_entry(name: str):
    trimmed = _require_name(name)
    try:
        store = _store()
        if not store.is_blacklisted(trimmed):
            raise BlacklistAPIError(
                "Entry not found",
                f"Name '{trimmed}' is not in the blacklist",
                status=404,
            )
        if not store.remove(trimmed):
            logger.error(f"Entry '{trimmed}' vanished between lookup and removal")
            return json_error(
                "Failed to remove entry",
                status=500,
                message="Unexpected error occurred during removal",
            )
        return json_success(
            f"Entry '{trimmed}' removed from blacklist successfully",
            removedAt=utc_now_iso(),
        )
    except APIError:
        raise
    except Exception as e:
        logger.exception(f"Failed to remove '{trimmed}' from blacklist")
        return json_internal_error("remove entry from blacklist", message=str(e))
