import json
import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_VERSION = "1.0.0"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_THREADS = 1
DEFAULT_MAX_CONTENT_LENGTH = 1024 * 1024
DEFAULT_CORS_ORIGIN = "*"
LOG_FORMATS = ("text", "json")

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


class Config:
    """Runtime settings for the mock API server.

    Options precedence:
    1. CLI flags (passed in as ``overrides``)
    2. Environment variables (MOCKAPI_*, PORT, FLASK_ENV), including values from ``.env``
    3. Defaults
    """

    # Base path for the source directory
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))

    def __init__(self, overrides: dict | None = None):
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

        self.project_dir = os.getenv("MOCKAPI_PROJECT_DIR") or os.path.abspath(
            os.path.join(self.BASE_DIR, "..")
        )
        self.env_file = os.path.join(self.project_dir, ".env")
        if os.path.isfile(self.env_file):
            # Never override variables already present in the environment
            load_dotenv(self.env_file, override=False)
            logger.debug(f"Loaded environment from {self.env_file}")

        self.environment = self._resolve_environment(overrides.get("environment"))
        self.port = overrides["port"] if "port" in overrides else self._env_int(("MOCKAPI_PORT", "PORT"), DEFAULT_PORT)
        self.host = overrides.get("host") or os.getenv("MOCKAPI_HOST", "").strip() or DEFAULT_HOST
        self.threads = overrides["threads"] if "threads" in overrides else self._env_int(("MOCKAPI_THREADS",), DEFAULT_THREADS)
        self.version = os.getenv("MOCKAPI_VERSION", "").strip() or DEFAULT_VERSION
        self.max_content_length = self._env_int(("MAX_CONTENT_LENGTH",), DEFAULT_MAX_CONTENT_LENGTH)
        self.cors_origin = os.getenv("MOCKAPI_CORS_ORIGIN", "").strip() or DEFAULT_CORS_ORIGIN
        self.log_format = self._resolve_log_format()
        self.seed = overrides.get("seed", self._env_bool("MOCKAPI_SEED", True))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_dev(self) -> bool:
        return self.environment in ("dev", "development")

    def _resolve_environment(self, override: str | None) -> str:
        if override:
            return override.strip().lower()
        env_mode = os.getenv("MOCKAPI_ENV", "").strip() or os.getenv("FLASK_ENV", "").strip()
        return env_mode.lower() or DEFAULT_ENVIRONMENT

    def _resolve_log_format(self) -> str:
        value = os.getenv("MOCKAPI_LOG_FORMAT", "").strip().lower() or "text"
        if value not in LOG_FORMATS:
            logger.warning(f"Unknown MOCKAPI_LOG_FORMAT '{value}', defaulting to text")
            return "text"
        return value

    @staticmethod
    def _env_int(names: tuple, default: int) -> int:
        """Return the first set env var among ``names`` as a positive int."""
        for name in names:
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                continue
            try:
                value = int(raw)
            except ValueError:
                logger.warning(f"Invalid integer for {name}: {raw!r}, using default {default}")
                return default
            if value <= 0:
                logger.warning(f"{name} must be positive, got {value}; using default {default}")
                return default
            return value
        return default

    @staticmethod
    def _env_bool(name: str, default: bool) -> bool:
        raw = os.getenv(name)
        if raw is None or raw.strip() == "":
            return default
        value = raw.strip().lower()
        if value in _TRUTHY:
            return True
        if value in _FALSY:
            return False
        logger.warning(f"Invalid boolean for {name}: {raw!r}, using default {default}")
        return default

    def to_dict(self):
        return {
            "environment": self.environment,
            "host": self.host,
            "port": self.port,
            "threads": self.threads,
            "version": self.version,
            "max_content_length": self.max_content_length,
            "cors_origin": self.cors_origin,
            "log_format": self.log_format,
            "seed": self.seed,
        }

    def log_summary(self) -> None:
        logger.info("Runtime config:\n%s", json.dumps(self.to_dict(), indent=3))
