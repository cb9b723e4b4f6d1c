"""Configuration loading with priority: explicit overrides > environment > config file.

Sampling values are tolerant: an invalid sample rate, rate limit or rule
override is replaced by its default with a warning instead of failing.
"""

from __future__ import annotations

import json
import logging
import math
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from campione.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "campione.toml"
HOME_CONFIG_FILE_NAME = ".campione.toml"

# 0 means unset: spans matching no rule fall through to priority sampling
DEFAULT_SAMPLE_RATE = 0.0
# None means unlimited
DEFAULT_RATE_LIMIT = None

ENV_PREFIX = "CAMPIONE_"
ENV_VARS = {
    "CAMPIONE_TRACE_SAMPLE_RATE": ("sampling", "sample_rate"),
    "CAMPIONE_TRACE_RATE_LIMIT": ("sampling", "rate_limit"),
    "CAMPIONE_TRACE_SAMPLING_RULES": ("sampling", "rules"),
    "CAMPIONE_DEBUG": ("logging", "debug"),
}


class SamplingConfig(BaseModel):
    """Sampling section: global fallback rate, rate limit and rule override."""

    sample_rate: float = DEFAULT_SAMPLE_RATE
    rate_limit: Optional[float] = DEFAULT_RATE_LIMIT
    rules: Optional[List[Dict[str, Any]]] = None

    @field_validator("sample_rate", mode="before")
    @classmethod
    def _tolerant_sample_rate(cls, value: Any) -> float:
        if value is None or value == "":
            return DEFAULT_SAMPLE_RATE
        try:
            rate = float(value)
        except (TypeError, ValueError):
            logger.warning(
                f"using default rate {DEFAULT_SAMPLE_RATE} because sample_rate is invalid: {value!r}"
            )
            return DEFAULT_SAMPLE_RATE
        if 0.0 <= rate <= 1.0:
            return rate
        logger.warning(
            f"using default rate {DEFAULT_SAMPLE_RATE} because provided value is out of range: {rate}"
        )
        return DEFAULT_SAMPLE_RATE

    @field_validator("rate_limit", mode="before")
    @classmethod
    def _tolerant_rate_limit(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return DEFAULT_RATE_LIMIT
        try:
            limit = float(value)
        except (TypeError, ValueError):
            logger.warning(f"using default rate limit because rate_limit is invalid: {value!r}")
            return DEFAULT_RATE_LIMIT
        if not limit >= 0.0:
            logger.warning(f"using default rate limit because rate_limit is negative: {limit}")
            return DEFAULT_RATE_LIMIT
        if math.isinf(limit):
            return DEFAULT_RATE_LIMIT
        return limit

    @field_validator("rules", mode="before")
    @classmethod
    def _tolerant_rules(cls, value: Any) -> Optional[List[Dict[str, Any]]]:
        if value is None or value == "":
            return None
        if isinstance(value, (str, bytes)):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                logger.warning(f"error parsing sampling rules: {e}")
                return None
        if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
            logger.warning("error parsing sampling rules: expected a list of objects")
            return None
        return value


class LoggingConfig(BaseModel):
    debug: bool = False


class CampioneConfig(BaseModel):
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def find_config_file() -> Optional[str]:
    """
    Look for a config file in the working directory, then the home directory.

    Returns:
        Path of the first config file found, or None
    """
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / HOME_CONFIG_FILE_NAME,
    ]
    for path in candidates:
        if path.is_file():
            return str(path)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file.

    Returns:
        Parsed sections, or an empty dict if the file does not exist

    Raises:
        ConfigError: If the file is not valid TOML
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError("Invalid TOML in config file", details={"path": path, "error": e}) from e


def load_config_from_env(flat: bool = False) -> Dict[str, Any]:
    """
    Read configuration from ``CAMPIONE_*`` environment variables.

    Args:
        flat: Return ``{"sample_rate": ...}`` instead of nested sections

    Returns:
        Raw values for the variables that are set
    """
    result: Dict[str, Any] = {}
    for env_name, (section, key) in ENV_VARS.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        if flat:
            result[key] = value
        else:
            result.setdefault(section, {})[key] = value
    return result


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> CampioneConfig:
    """
    Load configuration from all sources.

    Priority: explicit overrides > environment variables > config file.

    Args:
        config_file: Config file path, searched for when not given
        overrides: Nested sections, e.g. ``{"sampling": {"rate_limit": 100}}``

    Raises:
        ConfigError: If a source cannot be parsed or a value has the wrong shape
    """
    path = config_file or find_config_file()
    data = load_toml_config(path) if path else {}
    data = _merge(data, load_config_from_env())
    data = _merge(data, overrides or {})

    try:
        return CampioneConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError("Invalid configuration", details={"errors": e.error_count()}) from e


def validate_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[bool, str, Optional[CampioneConfig]]:
    """
    Load configuration without raising.

    Returns:
        (is_valid, message, config) where config is None when invalid
    """
    try:
        config = load_config(config_file=config_file, overrides=overrides)
    except ConfigError as e:
        return False, str(e), None
    return True, "Configuration is valid", config
