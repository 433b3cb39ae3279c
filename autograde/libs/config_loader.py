"""Configuration loading utilities for autograde."""

import copy
import os
from typing import Any, Dict, Optional
import logging

import yaml

LOG = logging.getLogger(__name__)

ConfigType = dict[str, Any]

_MISSING = object()

# Environment variables that override values from the YAML files.
ENV_OVERRIDES: Dict[str, str] = {
    "OPENROUTER_API_KEY": "llm.api_key",
    "OPENROUTER_MODEL": "llm.model",
    "OPENROUTER_BASE_URL": "llm.base_url",
    "NEXT_PUBLIC_APP_URL": "llm.app_url",
    "DATABASE_URL": "store.database_url",
}


def _config_dir() -> str:
    current_dir = os.path.dirname(os.path.abspath(__file__))
    # Go up two levels: libs -> autograde -> project_root
    project_root = os.path.dirname(os.path.dirname(current_dir))
    return os.path.join(project_root, "config")


def load_configs(*path_configs: str) -> dict[str, Any]:
    """Load and merge YAML configuration files.

    Args:
        *path_configs: Paths to YAML configuration files

    Returns:
        Merged configuration dictionary

    Raises:
        TypeError: If a config file doesn't contain a dict
        ValueError: If no configs are loaded
    """
    def merge(orig_conf: Any, new_conf: Any):
        """Recursively merge configuration dictionaries."""
        if isinstance(orig_conf, dict) and isinstance(new_conf, dict):
            result = copy.deepcopy(orig_conf)
            for k, v in new_conf.items():
                if k in orig_conf:
                    result[k] = merge(orig_conf[k], v)
                else:
                    result[k] = v
            return result
        else:
            return copy.deepcopy(new_conf)

    result = {}
    for path in list(path_configs):
        LOG.info("loading config from %s", path)
        if os.path.isfile(path):
            with open(path, "r") as f:
                c = yaml.safe_load(f)
                if not isinstance(c, dict):
                    raise TypeError(f"YAML config file {path} must be a dict")
                result = merge(result, c)
        else:
            LOG.warning("Skipping missing config file %s", repr(path))
    if not result:
        raise ValueError("No configs loaded")
    return result


def load_default_configs() -> dict[str, Any]:
    """Load default and local configuration files.

    Looks for config files in the following order:
    1. config/default.yaml (base configuration)
    2. config/local.yaml (local overrides, not committed to git)

    Environment overrides (see ENV_OVERRIDES) are applied last.
    """
    config_dir = _config_dir()
    default_config_path = os.path.join(config_dir, "default.yaml")
    local_config_path = os.path.join(config_dir, "local.yaml")

    return apply_env_overrides(load_configs(default_config_path, local_config_path))


def load_all_configs(config_dir: Optional[str] = None) -> dict[str, Any]:
    """Load and merge all YAML configuration files in the config directory.

    Loads files in alphabetical order, with later files overriding earlier ones.
    Skips files that don't have .yaml or .yml extensions. Environment overrides
    are applied on top of the merged result.

    Args:
        config_dir: Directory to read (defaults to the project's config/)

    Returns:
        Merged configuration from all YAML files in config/
    """
    config_dir = config_dir or _config_dir()

    if not os.path.exists(config_dir):
        raise ValueError(f"Config directory not found: {config_dir}")

    yaml_files = []
    for filename in sorted(os.listdir(config_dir)):
        if filename.endswith(('.yaml', '.yml')):
            yaml_files.append(os.path.join(config_dir, filename))

    if not yaml_files:
        raise ValueError("No YAML files found in config directory")

    LOG.info("Loading configs from: %s", yaml_files)
    return apply_env_overrides(load_configs(*yaml_files))


def apply_env_overrides(config: dict[str, Any],
                        environ: Optional[Dict[str, str]] = None) -> dict[str, Any]:
    """Copy selected environment variables into the config.

    Empty variables are ignored so an unset key in the shell never clobbers
    a value from local.yaml.

    Args:
        config: Configuration dict to update (a copy is returned)
        environ: Mapping to read instead of os.environ

    Returns:
        New configuration dict with overrides applied
    """
    environ = os.environ if environ is None else environ
    result = copy.deepcopy(config)
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if not value:
            continue
        node = result
        parts = key.split('.')
        for part in parts[:-1]:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        LOG.debug("config %s set from environment variable %s", key, env_name)
    return result


def get_config(key: str, config: dict[str, Any] = None, default: Any = _MISSING) -> Any:
    """Get a configuration value by dot-separated key.

    Args:
        key: Dot-separated path to config value (e.g., "grading.bonus_threshold")
        config: Configuration dict (if None, loads default configs)
        default: Value returned when the key is missing

    Returns:
        Configuration value

    Raises:
        KeyError: If key not found in configuration and no default was given
    """
    if config is None:
        config = load_default_configs()

    keys = key.split('.')
    value = config
    for i, k in enumerate(keys):
        if not isinstance(value, dict) or k not in value:
            if default is not _MISSING:
                return default
            if not isinstance(value, dict):
                raise KeyError(f"Cannot access {k} in non-dict value at {'.'.join(keys[:i])}")
            raise KeyError(f"Key {key} not found in configuration")
        value = value[k]
    return value
