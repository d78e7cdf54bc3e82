"""Configuration management for agentbridge.

Hierarchical YAML configuration:
- System-level config (/etc/agentbridge/ or %PROGRAMDATA%)
- User-level config (~/.config/agentbridge/, ~/.agentbridge/ or %APPDATA%)
- Project-level config (<project>/.agentbridge/)
- Environment variable overrides (highest priority)

Example usage:
    from agentbridge.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.backend.default)
    print(config.usage.model_limits)
"""

from agentbridge.config.loader import (
    dict_to_config,
    get_config,
    load_config,
    merge_layers,
    reset_config,
)
from agentbridge.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_settings_path,
    get_user_config_dir,
)
from agentbridge.config.schema import (
    DEFAULT_CONTEXT_LIMIT,
    BackendConfig,
    Config,
    LoggingConfig,
    PermissionsConfig,
    ServerConfig,
    UsageConfig,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "dict_to_config",
    "merge_layers",
    "BackendConfig",
    "UsageConfig",
    "PermissionsConfig",
    "ServerConfig",
    "LoggingConfig",
    "DEFAULT_CONTEXT_LIMIT",
    "get_config_paths",
    "get_project_config_path",
    "get_settings_path",
    "get_user_config_dir",
]
