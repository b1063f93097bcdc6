# pyright: reportMissingImports=false
import os
import sys

import pytest

# Ensure src/ is on sys.path for top-level imports (`config`, `blueprints`, `utils`)
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ABS = os.path.abspath(os.path.join(PROJECT_ROOT, "src"))
if SRC_ABS not in sys.path:
    sys.path.insert(0, SRC_ABS)

_CONFIG_ENV_VARS = (
    "MOCKAPI_PORT",
    "PORT",
    "MOCKAPI_HOST",
    "MOCKAPI_ENV",
    "FLASK_ENV",
    "MOCKAPI_VERSION",
    "MOCKAPI_THREADS",
    "MAX_CONTENT_LENGTH",
    "MOCKAPI_CORS_ORIGIN",
    "MOCKAPI_LOG_FORMAT",
    "MOCKAPI_SEED",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    # Read .env from an empty temp dir and drop any inherited settings
    monkeypatch.setenv("MOCKAPI_PROJECT_DIR", str(tmp_path))
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    import blacklist_store

    blacklist_store.reset_blacklist_store()


@pytest.fixture()
def app_config():
    from config import Config

    return Config()


@pytest.fixture()
def store():
    from blacklist_store import BlacklistStore

    return BlacklistStore()


@pytest.fixture()
def flask_app(app_config, store):
    from mockapi import create_app

    return create_app(app_config, store=store)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()
