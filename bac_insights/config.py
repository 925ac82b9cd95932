"""Settings: built-in defaults, then an optional YAML file, then environment variables.

The YAML file path comes from the `path` argument or BAC_INSIGHTS_CONFIG.
Example file:

    db_path: instance/insights.db
    risk_model_variant: A
    history_limit: 60
    baseline_window_days: 28
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BAC_INSIGHTS_CONFIG"
DEFAULT_DB_PATH = str(Path("instance") / "insights.db")

# Environment variable -> settings field.
ENV_OVERRIDES = {
    "APP_DB_PATH": "db_path",
    "APP_SECRET_KEY": "secret_key",
    "ADMIN_TOKEN": "admin_token",
    "RISK_MODEL_VARIANT": "risk_model_variant",
    "HISTORY_LIMIT": "history_limit",
    "BASELINE_WINDOW_DAYS": "baseline_window_days",
}


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    secret_key: str = "dev-only-change-me"
    admin_token: str = ""
    risk_model_variant: str = "A"
    history_limit: int = 60
    baseline_window_days: int = 28


def _coerce(settings: Settings, values: Dict[str, Any]) -> Settings:
    types = {f.name: f.type for f in fields(Settings)}
    updates = {}
    for key, value in values.items():
        if key not in types:
            logger.warning("ignoring unknown setting %r", key)
            continue
        if value is None:
            continue
        try:
            updates[key] = int(value) if types[key] in (int, "int") else str(value)
        except (TypeError, ValueError):
            logger.warning("ignoring invalid value for %s: %r", key, value)
    return replace(settings, **updates)


def read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings file must contain a mapping")
    return data


def load_settings(path: Optional[str] = None) -> Settings:
    settings = Settings()

    path = path or os.environ.get(CONFIG_ENV_VAR)
    if path:
        if os.path.exists(path):
            settings = _coerce(settings, read_yaml(path))
            logger.info("loaded settings from %s", path)
        else:
            logger.warning("settings file %s not found, using defaults", path)

    env_values = {field: os.environ[var] for var, field in ENV_OVERRIDES.items() if var in os.environ}
    return _coerce(settings, env_values)
