from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = Path("chiara.config.yaml")
DEFAULT_BASE_URL = "https://api.podio.com"
DEFAULT_TIMEOUT_SECONDS = 20
DEFAULT_USER_AGENT = "chiara/0.1"
DEFAULT_LIMIT = 30


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """
    Load chiara configuration from YAML file.

    Args:
        path: Optional path to the config file. Defaults to chiara.config.yaml

    Returns:
        Dictionary with configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config structure is invalid
    """
    cfg_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    # Validate structure
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    if "version" not in config:
        raise ValueError("Config must have 'version' field")

    for section in ["api", "auth", "filter"]:
        if section in config and not isinstance(config[section], dict):
            raise ValueError(f"Config section '{section}' must be a dictionary")

    apps = config.get("auth", {}).get("apps", [])
    if not isinstance(apps, list):
        raise ValueError("Config 'auth.apps' must be a list")
    for entry in apps:
        if not isinstance(entry, dict):
            raise ValueError("Each entry in 'auth.apps' must be a dictionary")
        for field in ["app_id", "app_token"]:
            if field not in entry:
                raise ValueError(f"App entry in 'auth.apps' missing required field: {field}")

    limit = config.get("filter", {}).get("default_limit", DEFAULT_LIMIT)
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 0:
        raise ValueError("Config 'filter.default_limit' must be a non-negative integer")

    return config


def get_api_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Get API connection settings with defaults applied.

    Defaults:
    - base_url: https://api.podio.com
    - timeout_seconds: 20
    - user_agent: chiara/0.1
    """
    if config is None:
        config = load_config()

    result = dict(config.get("api", {}))
    result.setdefault("base_url", DEFAULT_BASE_URL)
    result.setdefault("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    result.setdefault("user_agent", DEFAULT_USER_AGENT)
    result["base_url"] = str(result["base_url"]).rstrip("/")
    return result


def get_auth_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if config is None:
        config = load_config()
    return dict(config.get("auth", {}))



def get_default_limit(config: Optional[Dict[str, Any]] = None) -> int:
    if config is None:
        config = load_config()
    return config.get("filter", {}).get("default_limit", DEFAULT_LIMIT)

