import os
import tomllib
from pathlib import Path
from typing import Any, Optional

_DEFAULT_CONFIG_PATH = Path("config.toml")
_DEFAULT_ENV_PATH = Path("secrets")

DEFAULT_BASE_URL = "https://app.ticketmaster.com/discovery/v2"
DEFAULT_IMPORT_LIMIT = 50
PRODUCTION = "production"


def load(path: Path = _DEFAULT_CONFIG_PATH, env_path: Path = _DEFAULT_ENV_PATH) -> dict[str, Any]:
    """Load config from TOML, then overlay any secrets from .env.

    A missing config file is not an error; every accessor below has a default.
    """
    cfg: dict[str, Any] = {}
    if path.exists():
        with open(path, "rb") as f:
            cfg = tomllib.load(f)
    _load_env(env_path, cfg)
    return cfg


def _load_env(env_path: Path, cfg: dict) -> None:
    """
    Parse a .env file and inject values into the config dict.

    Supported variable names:
      TICKETMASTER_API_KEY  -> cfg["secrets"]["ticketmaster_api_key"]
      APP_ENV               -> cfg["app"]["environment"]

    Shell environment variables take precedence over .env values.
    """
    _apply_env_vars(cfg)

    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key not in os.environ:
                os.environ[key] = value

    _apply_env_vars(cfg)


def _apply_env_vars(cfg: dict) -> None:
    secrets = cfg.setdefault("secrets", {})
    if v := os.environ.get("TICKETMASTER_API_KEY"):
        secrets["ticketmaster_api_key"] = v
    if v := os.environ.get("APP_ENV"):
        cfg.setdefault("app", {})["environment"] = v


def get_environment(cfg: dict) -> str:
    return cfg.get("app", {}).get("environment", "development")


def is_production(cfg: dict) -> bool:
    return get_environment(cfg).strip().lower() == PRODUCTION


def get_database_path(cfg: dict) -> Path:
    return Path(cfg.get("database", {}).get("path", "data/showsforus.db"))


def get_api_key(cfg: dict) -> Optional[str]:
    return cfg.get("secrets", {}).get("ticketmaster_api_key") or None


def get_ticketmaster(cfg: dict) -> dict:
    """Return the [ticketmaster] section with defaults filled in."""
    tm = cfg.get("ticketmaster", {})
    return {
        "base_url": tm.get("base_url", DEFAULT_BASE_URL),
        "country_code": tm.get("country_code", "US"),
        "timeout": tm.get("timeout", 15),
    }


def get_import_settings(cfg: dict) -> dict:
    return {"limit": cfg.get("import", {}).get("limit", DEFAULT_IMPORT_LIMIT)}
