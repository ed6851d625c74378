"""Configuration module for MKV Tracks Swapper.

Configuration precedence (highest to lowest):
1. CLI arguments
2. Profile (for swap settings, when --profile is given)
3. Environment variables (TRACKS_SWAPPER_*)
4. Config file (~/.tracks-swapper/config.toml)
5. Default values
"""

from tracks_swapper.config.env import EnvReader
from tracks_swapper.config.loader import (
    ConfigError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from tracks_swapper.config.models import (
    LoggingConfig,
    ProcessingConfig,
    SwapConfig,
    SwapperConfig,
    TimeoutsConfig,
    ToolPathsConfig,
)
from tracks_swapper.config.profiles import (
    ProfileError,
    ProfileModel,
    ProfileNotFoundError,
    get_profiles_directory,
    list_profiles,
    load_profile,
    merge_profile_with_config,
)

__all__ = [
    "ConfigError",
    "EnvReader",
    "LoggingConfig",
    "ProcessingConfig",
    "ProfileError",
    "ProfileModel",
    "ProfileNotFoundError",
    "SwapConfig",
    "SwapperConfig",
    "TimeoutsConfig",
    "ToolPathsConfig",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "get_profiles_directory",
    "list_profiles",
    "load_config_file",
    "load_profile",
    "merge_profile_with_config",
]
