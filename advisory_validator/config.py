"""Configuration for validation runs.

Settings are resolved with the following precedence (highest to lowest):
1. CLI argument
2. Environment variable (ADVISORY_VALIDATOR_<KEY>)
3. Config file (`.advisory-validator.yaml` at the corpus root)
4. Built-in default

Usage:
    from advisory_validator.config import get_setting, get_timeout

    repository = get_setting("repository", cli_value=cli_repository, root=root)
    timeout = get_timeout(cli_value=cli_timeout, root=root)
"""

from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Any

import yaml

from advisory_validator.constants import DEFAULT_REPOSITORY, DEFAULT_TIMEOUT
from advisory_validator.errors import ConfigError

logger = logging.getLogger(__name__)

# Config file name, at the corpus root (hidden, so discovery never sees it)
CONFIG_FILENAME = ".advisory-validator.yaml"

ENV_PREFIX = "ADVISORY_VALIDATOR_"

DEFAULTS: dict[str, Any] = {
    "repository": DEFAULT_REPOSITORY,
    "timeout": DEFAULT_TIMEOUT,
}

KNOWN_SETTINGS: frozenset[str] = frozenset(DEFAULTS)


def get_config_path(root: Path) -> Path:
    """Get the path to the config file for a corpus."""
    return root / CONFIG_FILENAME


def load_config(root: Path) -> dict[str, Any]:
    """Load configuration from the corpus config file.

    Args:
        root: Corpus root directory.

    Returns:
        Config dictionary. Returns empty dict if file doesn't exist.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    config_file = get_config_path(root)

    if not config_file.exists():
        return {}

    content = config_file.read_text()
    if not content.strip():
        return {}

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(str(config_file), None, f"not valid YAML ({e})") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(config_file), data, "expected a mapping of settings")

    for key in data:
        if key not in KNOWN_SETTINGS:
            logger.warning("Ignoring unknown setting %r in %s", key, config_file)
    return data


def _get_env_var_name(key: str) -> str:
    """Convert a setting key to environment variable name.

    Args:
        key: Setting key (e.g., "repository")

    Returns:
        Environment variable name (e.g., "ADVISORY_VALIDATOR_REPOSITORY")
    """
    return f"{ENV_PREFIX}{key.upper()}"


def get_setting(
    key: str,
    cli_value: Any | None = None,
    root: Path | None = None,
) -> Any | None:
    """Resolve a setting with full precedence.

    Args:
        key: Setting key (e.g., "repository", "timeout")
        cli_value: Value passed via CLI argument (highest precedence)
        root: Corpus root for loading the config file

    Returns:
        Resolved value, or the built-in default (None for unknown keys).
    """
    if cli_value is not None:
        return cli_value

    env_value = os.environ.get(_get_env_var_name(key))
    if env_value is not None:
        return env_value

    if root is not None:
        config = load_config(root)
        if config.get(key) is not None:
            return config[key]

    return DEFAULTS.get(key)


def get_timeout(cli_value: float | None = None, root: Path | None = None) -> float:
    """Resolve the repository request timeout in seconds.

    Raises:
        ConfigError: If the resolved value is not a positive number.
    """
    value = get_setting("timeout", cli_value=cli_value, root=root)
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("timeout", value, "expected a number of seconds") from e
    if not math.isfinite(timeout) or timeout <= 0:
        raise ConfigError("timeout", value, "must be a finite number greater than zero")
    return timeout
