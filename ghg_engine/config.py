"""
config.py – Load and validate environment configuration.

All configuration is loaded from environment variables (or a .env file
at the project root).  Call `get_config()` once at startup to obtain a
validated Config object.  Nothing is required: without a DATABASE_URL the
engine runs on the built-in factor catalog and scenarios are not persisted.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ghg_engine.constants import (
    DEFAULT_JURISDICTION,
    DEFAULT_REDUCTION_TARGET,
    DEFAULT_TIMELINE_HORIZON,
)

# Repo root, so .env can live next to pyproject.toml.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# override=True ensures .env values always win over stale OS-level env vars.
_env_file = _PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file, override=True)


class ConfigError(EnvironmentError):
    """Raised when an environment variable holds an unusable value."""


@dataclass
class Config:
    """Validated runtime configuration."""

    database_url: str | None = None
    default_jurisdiction: str = DEFAULT_JURISDICTION
    timeline_horizon: int = DEFAULT_TIMELINE_HORIZON
    default_reduction_target: int = DEFAULT_REDUCTION_TARGET
    compliance_weights: dict[str, Any] = field(default_factory=dict)
    log_level: str = "INFO"


def _int_var(name: str, default: int, minimum: int = 0, maximum: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum or (maximum is not None and value > maximum):
        bound = f"{minimum}..{maximum}" if maximum is not None else f">= {minimum}"
        raise ConfigError(f"{name} must be {bound}, got {value}")
    return value


def get_config() -> Config:
    """
    Read environment variables, validate them, and return a Config.

    Raises
    ------
    ConfigError (an EnvironmentError)
        If a numeric variable is malformed, or COMPLIANCE_WEIGHTS is not a
        JSON object of non-negative integers.
    """
    weights_raw = os.environ.get("COMPLIANCE_WEIGHTS", "").strip()
    weights: dict[str, Any] = {}
    if weights_raw:
        try:
            weights = json.loads(weights_raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"COMPLIANCE_WEIGHTS is not valid JSON: {e}") from None
        if not isinstance(weights, dict):
            raise ConfigError("COMPLIANCE_WEIGHTS must be a JSON object")
        for key, value in weights.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(
                    f"COMPLIANCE_WEIGHTS[{key!r}] must be a non-negative integer, got {value!r}"
                )

    return Config(
        database_url=os.environ.get("DATABASE_URL") or None,
        default_jurisdiction=os.environ.get("DEFAULT_JURISDICTION") or DEFAULT_JURISDICTION,
        timeline_horizon=_int_var("TIMELINE_HORIZON", DEFAULT_TIMELINE_HORIZON, minimum=1, maximum=100),
        default_reduction_target=_int_var("DEFAULT_REDUCTION_TARGET", DEFAULT_REDUCTION_TARGET, maximum=100),
        compliance_weights=weights,
        log_level=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
    )
