import json
import os
from pathlib import Path
from pydantic import BaseModel, ValidationError

ENV_PREFIX = "CATALOG_"


def get_data_dir() -> Path:
    """Directory holding settings.json and the default SQLite database."""
    # CATALOG_DATA_DIR if set (e.g. /data in Docker), otherwise ~/.config/catalog
    data_dir = os.environ.get(f"{ENV_PREFIX}DATA_DIR")
    return Path(data_dir) if data_dir else Path.home() / ".config" / "catalog"


def get_settings_file() -> Path:
    return get_data_dir() / "settings.json"


class Settings(BaseModel):
    """Runtime settings for the catalog service."""
    database_url: str = ""
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    log_level: str = "info"
    seed_demo_data: bool = False


def ensure_data_dir() -> None:
    """Ensure the data directory exists."""
    get_data_dir().mkdir(parents=True, exist_ok=True)


def _read_settings_file() -> dict:
    settings_file = get_settings_file()
    if not settings_file.exists():
        return {}

    try:
        with open(settings_file, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def _read_env() -> dict:
    """Collect overrides from CATALOG_* environment variables."""
    env = os.environ
    values: dict = {}
    if env.get(f"{ENV_PREFIX}DATABASE_URL"):
        values["database_url"] = env[f"{ENV_PREFIX}DATABASE_URL"]
    if env.get(f"{ENV_PREFIX}CORS_ORIGINS"):
        origins = env[f"{ENV_PREFIX}CORS_ORIGINS"].split(",")
        values["cors_origins"] = [o.strip() for o in origins if o.strip()]
    if env.get(f"{ENV_PREFIX}LOG_LEVEL"):
        values["log_level"] = env[f"{ENV_PREFIX}LOG_LEVEL"].lower()
    if env.get(f"{ENV_PREFIX}SEED_DEMO_DATA"):
        values["seed_demo_data"] = env[f"{ENV_PREFIX}SEED_DEMO_DATA"].lower() in ("1", "true", "yes", "on")
    return values


def load_settings() -> Settings:
    """
    Load settings: defaults, then settings.json, then environment.

    An invalid settings.json is ignored rather than preventing startup.
    """
    file_values = _read_settings_file()
    try:
        settings = Settings(**file_values)
    except ValidationError:
        settings = Settings()

    settings = settings.model_copy(update=_read_env())
    if not settings.database_url:
        settings.database_url = f"sqlite:///{get_data_dir() / 'catalog.db'}"
    return settings


def save_settings(settings: Settings) -> None:
    """Persist settings to settings.json."""
    ensure_data_dir()
    with open(get_settings_file(), "w") as f:
        json.dump(settings.model_dump(mode="json"), f, indent=2)
