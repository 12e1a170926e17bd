from settings.config import (
    CONFIG_FILENAME,
    ConfigError,
    TagsConfig,
    TypeIRConfig,
    load_config,
    resolve_cache_dir,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "TagsConfig",
    "TypeIRConfig",
    "load_config",
    "resolve_cache_dir",
]
