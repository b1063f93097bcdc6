import logging
import os
import platform
import socket
import time

import psutil
from flask import Blueprint, current_app, jsonify

from utils.time_utils import format_uptime, utc_now_iso

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)

# Captured at import so uptime covers the whole process lifetime
_PROCESS_START = time.monotonic()


def _uptime_seconds() -> float:
    return time.monotonic() - _PROCESS_START


def _mb(num_bytes: int) -> str:
    return f"{round(num_bytes / 1024 / 1024)}MB"


def _runtime_config():
    cfg = current_app.config["APP_CONFIG"]
    return cfg.environment, cfg.version


@health_bp.route("/api/health")
def health():
    environment, version = _runtime_config()
    rss = psutil.Process().memory_info().rss
    total = psutil.virtual_memory().total
    percentage = (rss / total * 100) if total else 0.0
    return (
        jsonify(
            {
                "status": "healthy",
                "timestamp": utc_now_iso(),
                "uptime": int(_uptime_seconds()),
                "version": version,
                "environment": environment,
                "memory": {
                    "used": _mb(rss),
                    "total": _mb(total),
                    "percentage": f"{percentage:.2f}%",
                },
                "pid": os.getpid(),
            }
        ),
        200,
    )


@health_bp.route("/api/health/detailed")
def health_detailed():
    environment, version = _runtime_config()
    proc = psutil.Process()
    mem = proc.memory_info()
    vm = psutil.virtual_memory()
    uptime = _uptime_seconds()
    try:
        cpu_percent = proc.cpu_percent(interval=None)
    except psutil.Error:
        logger.warning("Unable to read process CPU usage")
        cpu_percent = None
    return (
        jsonify(
            {
                "status": "healthy",
                "timestamp": utc_now_iso(),
                "uptime": {"seconds": uptime, "human": format_uptime(uptime)},
                "system": {
                    "platform": platform.system().lower(),
                    "arch": platform.machine(),
                    "pythonVersion": platform.python_version(),
                    "pid": os.getpid(),
                    "ppid": os.getppid(),
                    "hostname": socket.gethostname(),
                },
                "memory": {
                    "rss": _mb(mem.rss),
                    "vms": _mb(mem.vms),
                    "systemUsed": _mb(vm.used),
                    "systemTotal": _mb(vm.total),
                    "percentage": f"{(mem.rss / vm.total * 100) if vm.total else 0.0:.2f}%",
                },
                "cpu": {"percent": cpu_percent, "count": psutil.cpu_count()},
                "environment": environment,
                "version": version,
            }
        ),
        200,
    )


# Lightweight probes for CI and container orchestration
@health_bp.route("/healthz")
def healthz():
    return ("OK", 200)


@health_bp.route("/readyz")
def readyz():
    if current_app.config.get("BLACKLIST_STORE") is None:
        return ("not-ready", 503)
    return ("ready", 200)
