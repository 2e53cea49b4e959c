"""Configuration loading and defaults.

Reads from stackdeploy.toml at the project root, with environment variable overrides.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from stackdeploy.errors import ConfigError
from stackdeploy.resources import StackConfig

# Look for .env in the package's parent directory (project root)
_project_root = Path(__file__).resolve().parent.parent
load_dotenv(_project_root / ".env")
load_dotenv()  # also check cwd

# ---------------------------------------------------------------------------
# Load stackdeploy.toml
# ---------------------------------------------------------------------------

CONFIG_PATH = Path(os.getenv("STACKDEPLOY_CONFIG", str(_project_root / "stackdeploy.toml")))


def read_toml(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def env_number(key: str, default, cast=int):
    """``cast`` the environment value of ``key`` (or ``default``), naming the variable on failure."""
    raw = os.getenv(key, default)
    try:
        return cast(raw)
    except (TypeError, ValueError) as e:
        kind = "an integer" if cast is int else "a number"
        raise ConfigError(f"{key} must be {kind}, got {raw!r}") from e


_cfg = read_toml(CONFIG_PATH)
_engine = _cfg.get("engine", {})
_backend = _cfg.get("backend", {})

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv("STACKDEPLOY_LOG_LEVEL", _engine.get("log_level", "INFO")).upper()
MAX_WORKERS = env_number("STACKDEPLOY_MAX_WORKERS", _engine.get("max_workers", 1))
EVENT_LOG = os.getenv("STACKDEPLOY_EVENT_LOG", _engine.get("event_log", ""))

# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------

BACKEND = os.getenv("STACKDEPLOY_BACKEND", _backend.get("name", "memory"))
BACKEND_URL = os.getenv("STACKDEPLOY_BACKEND_URL", _backend.get("url", ""))
HTTP_TIMEOUT = env_number("STACKDEPLOY_HTTP_TIMEOUT", _backend.get("timeout", 30), float)
HTTP_RETRIES = env_number("STACKDEPLOY_HTTP_RETRIES", _backend.get("retries", 2))

# Credentials are env-only, never in toml
BACKEND_TOKEN = os.getenv("STACKDEPLOY_BACKEND_TOKEN", "")

# ---------------------------------------------------------------------------
# Stack naming
# ---------------------------------------------------------------------------

_STACK_KEYS = ("prefix", "resource_function", "environment", "region", "location")


def load_stack_config(section: dict | None = None) -> StackConfig:
    """Build the naming config from the ``[stack]`` table plus STACKDEPLOY_STACK_* overrides.

    ``section`` replaces the table read from stackdeploy.toml, which is handy
    for tests and for declaration files that carry their own ``[stack]``.
    """
    raw = dict(_cfg.get("stack", {}) if section is None else section)
    for key in _STACK_KEYS:
        override = os.getenv(f"STACKDEPLOY_STACK_{key.upper()}")
        if override:
            raw[key] = override

    try:
        return StackConfig(**raw)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigError(f"Invalid [stack] configuration: {', '.join(missing)}") from e
