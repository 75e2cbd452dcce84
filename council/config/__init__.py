"""Configuration schema and loader."""

from council.config.loader import get_config_path, get_data_dir, load_config, save_config
from council.config.schema import Config, DebateSettings, GenerationSettings, ProviderSettings

__all__ = [
    "Config",
    "DebateSettings",
    "GenerationSettings",
    "ProviderSettings",
    "get_config_path",
    "get_data_dir",
    "load_config",
    "save_config",
]
