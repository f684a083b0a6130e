"""Application configuration using pydantic-settings.

Process-wide settings come from environment variables (or a ``.env`` file).
The list of routers to poll lives in a separate JSON file so it can be edited
without restarting the collector; it is re-read at the start of every cycle.
"""

import json
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from routerstats.schemas import RouterConfig


class ConfigError(ValueError):
    """Raised when the router configuration file cannot be used."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_NAME: str = "Router Traffic Accounting Service"
    STATS_DATABASE_URL: str = "sqlite:///./network_stats.db"
    LEASES_DATABASE_URL: str = "sqlite:///./dhcp_leases.db"
    ROUTERS_CONFIG_FILE: str = "routers.json"
    FETCH_TIMEOUT_SECONDS: float = 10.0
    POLL_INTERVAL_SECONDS: int = 1800
    MAX_WORKERS: Optional[int] = None
    MONTHLY_RESET_POLICY: Literal["global", "per_entity"] = "global"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


def load_routers(path: str) -> Dict[str, RouterConfig]:
    """Load the router map from a JSON file.

    The file maps a router name (usually its IP address) to the URLs of its
    three text endpoints::

        {"192.168.1.1": {"ap_stats": "...", "wan_stats": "...", "dhcp_leases": ""}}

    Args:
        path: Path to the JSON file.

    Returns:
        Mapping of router name to its validated RouterConfig.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or contains
            entries that fail validation.
    """
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Configuration file '{path}' not found")
    except OSError as e:
        raise ConfigError(f"Error reading configuration file '{path}': {e}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON format in '{path}': {e}")

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Invalid configuration in '{path}': expected an object of routers"
        )

    routers = {}
    for name, urls in raw.items():
        try:
            routers[name] = RouterConfig.model_validate(urls)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration for router '{name}': {e}")
    return routers
