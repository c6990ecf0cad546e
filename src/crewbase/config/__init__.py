"""Application configuration helpers."""

from __future__ import annotations

from .env import (
    ConfigurationError,
    MissingConfigurationError,
    env_bool,
    env_float,
    optional_env_var,
    require_env_vars,
)
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .merge import MergeConfig, get_merge_config
from .quickbooks import QuickBooksSyncConfig, get_quickbooks_sync_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MergeConfig",
    "MissingConfigurationError",
    "QuickBooksSyncConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_float",
    "get_database_config",
    "get_merge_config",
    "get_quickbooks_sync_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
