"""Runtime configuration: defaults, YAML file, environment, CLI overrides.

Later layers win: defaults < config file < RELBISECT_* environment < CLI.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

import yaml

from relbisect.constants import Constants

logger = logging.getLogger(__name__)

_ENV_KEYS = {
    "RELEASES_URL": "releases_url",
    "CACHE_FILE": "cache_file",
    "CACHE_TTL": "cache_ttl_sec",
    "BUILDS_DIR": "builds_dir",
}

_INT_FIELDS = ("cache_ttl_sec", "supported_majors")
_BOOL_FIELDS = ("headless",)


def default_cache_file(environ: Optional[Mapping[str, str]] = None) -> str:
    """Path of the release cache, honoring XDG_CACHE_HOME."""
    env = os.environ if environ is None else environ
    base = env.get("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return os.path.join(base, Constants.CACHE_DIR_NAME, Constants.CACHE_FILE_NAME)


def _load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load settings from a YAML (or JSON) file.

    Args:
        config_path: Path to the config file.

    Returns:
        Settings dict; empty when the file is missing or invalid.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}

    if not isinstance(data, dict):
        return {}
    section = data.get(Constants.CONFIG_SECTION, data)
    return section if isinstance(section, dict) else {}


def _coerce(name: str, value: Any) -> Any:
    if name in _INT_FIELDS:
        return int(value)
    if name in _BOOL_FIELDS:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    return value


@dataclass
class RelbisectConfig:
    """Settings shared by every relbisect command."""

    releases_url: str = Constants.RELEASES_URL
    cache_file: str = field(default_factory=default_cache_file)
    cache_ttl_sec: int = Constants.VERSION_CACHE_TTL_SEC
    supported_majors: int = Constants.NUM_SUPPORTED_MAJORS
    builds_dir: Optional[str] = None
    executable_name: Optional[str] = None
    payload_entry: str = Constants.PAYLOAD_ENTRY_NAME
    compare_url_template: Optional[str] = Constants.COMPARE_URL_TEMPLATE
    headless: bool = False

    def update(self, values: Mapping[str, Any], source: str) -> None:
        """Apply known keys from ``values``; unknown keys are ignored."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            name = key.replace("-", "_")
            if name not in known:
                logger.warning("Ignoring unknown setting %r from %s", key, source)
                continue
            if value is None:
                continue
            try:
                setattr(self, name, _coerce(name, value))
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid value for %s from %s: %r", name, source, value)

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RelbisectConfig":
        """Build a config from defaults, an optional file and the environment."""
        env = os.environ if environ is None else environ
        config = cls(cache_file=default_cache_file(env))
        file_values = _load_config_file(config_path)
        if file_values:
            config.update(file_values, source=config_path or "config")
            logger.debug("Loaded config from: %s", config_path)

        env_values = {
            attr: env[Constants.ENV_PREFIX + suffix]
            for suffix, attr in _ENV_KEYS.items()
            if env.get(Constants.ENV_PREFIX + suffix)
        }
        if env_values:
            config.update(env_values, source="environment")
        return config

    def apply_args(self, args: Any) -> None:
        """Apply CLI overrides, which take precedence over everything else."""
        overrides = {
            "releases_url": getattr(args, "RELEASES_URL", None),
            "cache_file": getattr(args, "CACHE_FILE", None),
            "builds_dir": getattr(args, "BUILDS_DIR", None),
            "executable_name": getattr(args, "EXECUTABLE_NAME", None),
            "payload_entry": getattr(args, "PAYLOAD_ENTRY", None),
        }
        if getattr(args, "HEADLESS", False):
            overrides["headless"] = True
        self.update(overrides, source="command line")
