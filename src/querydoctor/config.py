"""
Configuration system for querydoctor.

Configuration reaches the engine as a flat map of analyzer settings:

    {
        "n_plus_one.threshold": 5,
        "slow_query.threshold_ms": 100,
        "missing_index.min_rows_scanned": 1000,
        "frequent_query.enabled": False,
    }

Unknown analyzer ids and unknown settings are ignored; missing settings use
each analyzer's documented defaults. Invalid values (negative or
non-numeric thresholds) raise ConfigurationError at load time, before any
analysis pass begins.

Usage:
    from querydoctor.config import Config, get_config

    config = Config.from_mapping({"n_plus_one.threshold": 8})
    config.get_rule_threshold("n_plus_one", "threshold")  # 8

    # Environment / file driven
    config = get_config()
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from querydoctor.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "QUERYDOCTOR_"
ANALYZER_ENV_PREFIX = f"{ENV_PREFIX}ANALYZER_"

# Global (non-analyzer) settings accepted as bare keys in flat maps
GLOBAL_SETTINGS = ("cache_size", "parallel", "max_workers", "max_issues_per_rule", "fail_fast")


class AnalyzerSettings(BaseModel):
    """Configuration for a single analyzer."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Whether the analyzer runs")
    thresholds: dict[str, int | float] = Field(
        default_factory=dict,
        description="Analyzer-specific thresholds",
    )


class Config(BaseModel):
    """
    querydoctor configuration.

    Holds per-analyzer settings plus orchestration knobs. Instances are
    immutable; build a new one with model_copy(update=...) to change it.
    """

    model_config = ConfigDict(frozen=True)

    analyzers: dict[str, AnalyzerSettings] = Field(
        default_factory=dict,
        description="Per-analyzer settings keyed by analyzer id",
    )

    cache_size: int = Field(
        default=1000,
        ge=1,
        description="Capacity of the parse and normalization caches",
    )
    parallel: bool = Field(
        default=False,
        description="Run analyzers on a thread pool",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        description="Thread pool size when parallel is enabled",
    )
    max_issues_per_rule: int = Field(
        default=100,
        ge=1,
        description="Cap on issues kept from a single analyzer",
    )
    fail_fast: bool = Field(
        default=False,
        description="Raise on the first analyzer failure instead of isolating it",
    )

    def get_rule_threshold(
        self,
        rule_id: str,
        threshold_name: str,
        default: int | float | None = None,
    ) -> int | float | None:
        """Get a threshold value for an analyzer, or the provided default."""
        settings = self.analyzers.get(rule_id)
        if settings is not None and threshold_name in settings.thresholds:
            return settings.thresholds[threshold_name]
        return default

    def is_rule_enabled(self, rule_id: str) -> bool:
        """Check if an analyzer is enabled."""
        if rule_id in self.analyzers:
            return self.analyzers[rule_id].enabled
        return True  # Analyzers enabled by default

    def rule_settings(self, rule_id: str) -> dict[str, Any]:
        """Settings dict suitable for an analyzer's config schema."""
        settings = self.analyzers.get(rule_id)
        if settings is None:
            return {}
        return {"enabled": settings.enabled, **settings.thresholds}

    def config_hash(self) -> str:
        """
        Generate a hash of the configuration.

        Two configs with the same hash produce the same analysis output.
        """
        config_dict = self.model_dump(exclude={"cache_size", "parallel", "max_workers"})
        config_json = json.dumps(config_dict, sort_keys=True, default=str)
        return hashlib.sha256(config_json.encode()).hexdigest()[:16]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Config":
        """
        Build a Config from a flat or nested settings map.

        Accepts flat keys ("n_plus_one.threshold"), a nested "analyzers"
        section ({"analyzers": {"n_plus_one": {"threshold": 5}}}) and the
        global settings listed in GLOBAL_SETTINGS. Anything else is ignored.

        Raises:
            ConfigurationError: If a threshold is negative or not a number,
                or a global setting is invalid.
        """
        analyzers: dict[str, dict[str, Any]] = {}
        global_kwargs: dict[str, Any] = {}

        nested = data.get("analyzers")
        if nested is not None:
            if not isinstance(nested, Mapping):
                raise ConfigurationError(
                    "'analyzers' section must be a mapping", config_key="analyzers"
                )
            for rule_id, settings in nested.items():
                if not isinstance(settings, Mapping):
                    raise ConfigurationError(
                        f"Settings for analyzer '{rule_id}' must be a mapping",
                        config_key=str(rule_id),
                    )
                for setting, value in settings.items():
                    analyzers.setdefault(str(rule_id), {})[str(setting)] = value

        for key, value in data.items():
            if key == "analyzers":
                continue
            if key in GLOBAL_SETTINGS:
                global_kwargs[key] = value
                continue
            if "." not in key:
                logger.debug("Ignoring unknown configuration key %s", key)
                continue
            rule_id, setting = key.split(".", 1)
            analyzers.setdefault(rule_id, {})[setting] = value

        parsed = {
            rule_id: _parse_analyzer_settings(rule_id, settings)
            for rule_id, settings in analyzers.items()
        }

        try:
            return cls(analyzers=parsed, **global_kwargs)
        except ValidationError as e:
            first = e.errors()[0]
            config_key = ".".join(str(loc) for loc in first.get("loc", ()))
            raise ConfigurationError(
                f"Invalid configuration: {first.get('msg', e)}",
                config_key=config_key or None,
            ) from e


def _parse_analyzer_settings(rule_id: str, settings: Mapping[str, Any]) -> AnalyzerSettings:
    """Validate one analyzer's raw settings."""
    enabled = True
    thresholds: dict[str, int | float] = {}

    for setting, value in settings.items():
        config_key = f"{rule_id}.{setting}"
        if setting == "enabled":
            enabled = _coerce_bool(value, config_key)
            continue
        thresholds[setting] = _coerce_threshold(value, config_key)

    return AnalyzerSettings(enabled=enabled, thresholds=thresholds)


def _coerce_bool(value: Any, config_key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _parse_env_bool(value)
    if isinstance(value, int):
        return value != 0
    raise ConfigurationError(
        f"'{config_key}' must be a boolean, got {value!r}", config_key=config_key
    )


def _coerce_threshold(value: Any, config_key: str) -> int | float:
    """Convert a raw threshold to a non-negative number."""
    if isinstance(value, bool):
        raise ConfigurationError(
            f"'{config_key}' must be a number, got {value!r}", config_key=config_key
        )
    if isinstance(value, str):
        try:
            value = float(value) if "." in value else int(value)
        except ValueError:
            raise ConfigurationError(
                f"'{config_key}' must be a number, got {value!r}", config_key=config_key
            ) from None
    if not isinstance(value, (int, float)):
        raise ConfigurationError(
            f"'{config_key}' must be a number, got {value!r}", config_key=config_key
        )
    if value < 0:
        raise ConfigurationError(
            f"'{config_key}' must not be negative, got {value!r}", config_key=config_key
        )
    return value


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def load_config_from_env(environ: Mapping[str, str] | None = None) -> Config:
    """
    Load configuration from environment variables.

    Environment variable naming convention:
    - QUERYDOCTOR_<SETTING> for global settings
    - QUERYDOCTOR_ANALYZER_<ANALYZER_ID>__<SETTING> for analyzer settings
      (double underscore separates the id from the setting, since both
      contain single underscores)

    Examples:
    - QUERYDOCTOR_PARALLEL=true
    - QUERYDOCTOR_CACHE_SIZE=5000
    - QUERYDOCTOR_ANALYZER_N_PLUS_ONE__THRESHOLD=8
    - QUERYDOCTOR_ANALYZER_SLOW_QUERY__THRESHOLD_MS=250
    - QUERYDOCTOR_ANALYZER_FREQUENT_QUERY__ENABLED=false
    """
    env = os.environ if environ is None else environ

    flat: dict[str, Any] = {
        "cache_size": _parse_env_int(env.get(f"{ENV_PREFIX}CACHE_SIZE"), 1000),
        "parallel": _parse_env_bool(env.get(f"{ENV_PREFIX}PARALLEL"), False),
        "max_workers": _parse_env_int(env.get(f"{ENV_PREFIX}MAX_WORKERS"), 4),
        "max_issues_per_rule": _parse_env_int(
            env.get(f"{ENV_PREFIX}MAX_ISSUES_PER_RULE"), 100
        ),
        "fail_fast": _parse_env_bool(env.get(f"{ENV_PREFIX}FAIL_FAST"), False),
    }

    for key, value in env.items():
        if not key.startswith(ANALYZER_ENV_PREFIX):
            continue
        rule_part, sep, setting = key[len(ANALYZER_ENV_PREFIX):].partition("__")
        if not sep or not rule_part or not setting:
            logger.warning("Ignoring malformed analyzer setting %s", key)
            continue
        flat[f"{rule_part.lower()}.{setting.lower()}"] = value

    return Config.from_mapping(flat)


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Falls back to environment variables when the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be parsed or holds invalid values.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to load config from {path}: {e}", config_key=str(path)
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping", config_key=str(path)
        )

    return Config.from_mapping(data)


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. QUERYDOCTOR_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
