"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Persistent key/value store (SQLite)
- Output and logging (Loguru + Rich)
"""

from .config import (
    Config,
    load_config,
    save_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    ensure_directories,
)
from .output import TransientMessage, get_console, log, setup_loguru
from .store import Store, get_database_path

__all__ = [
    # Config
    "Config",
    "load_config",
    "save_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "ensure_directories",
    # Output
    "TransientMessage",
    "get_console",
    "log",
    "setup_loguru",
    # Store
    "Store",
    "get_database_path",
]
