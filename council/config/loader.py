"""Load and save the JSON config file."""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from council.config.schema import Config


def get_data_dir() -> Path:
    """Directory holding config, credentials and logs."""
    return Path.home() / ".council"


def get_config_path() -> Path:
    return get_data_dir() / "config.json"


def load_config(path: Path | None = None) -> Config:
    """Load config from disk.

    A missing file yields defaults. An unreadable or invalid file is reported
    and also yields defaults, so a broken config never blocks a debate.
    """
    path = path or get_config_path()
    if not path.exists():
        return Config()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Config.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Failed to load config from {}: {}", path, e)
        return Config()


def save_config(config: Config, path: Path | None = None) -> Path:
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(mode="json"), indent=2) + "\n", encoding="utf-8")
    return path
