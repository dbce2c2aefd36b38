"""
Configuration management for Aura TUI
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class PlayerConfig:
    """Configuration for the mpv audio engine."""

    mpv_socket_path: Optional[str] = None
    volume: int = 50


@dataclass
class CacheConfig:
    """Configuration for the prefetch cache."""

    enabled: bool = True
    window_size: int = 5
    max_concurrent: int = 3
    download_timeout: float = 120.0
    directory: Optional[str] = None  # Default: <tmp>/aura-tui-cache

    def validate(self) -> None:
        """Validate cache configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.window_size < 1:
            raise ValueError(f"window_size must be at least 1, got {self.window_size}")
        if self.max_concurrent < 1:
            raise ValueError(
                f"max_concurrent must be at least 1, got {self.max_concurrent}"
            )


@dataclass
class PlaybackConfig:
    """Configuration for queue and playback behaviour."""

    autoplay: bool = True
    ad_block: bool = True
    load_timeout: float = 15.0  # Give up on a track that never starts
    advance_timeout: float = 30.0  # Force-release a stuck advance
    recommendation_limit: int = 15


@dataclass
class CatalogConfig:
    """Configuration for catalog search and stream resolution."""

    search_limit: int = 15
    search_timeout: float = 15.0
    resolve_timeout: float = 20.0
    recommendation_timeout: float = 20.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # Default: ~/.local/share/aura-tui/aura-tui.log


@dataclass
class UIConfig:
    """Configuration for the command loop."""

    error_display_seconds: float = 5.0
    use_colors: bool = True


@dataclass
class Config:
    """Main configuration object."""

    player: PlayerConfig = field(default_factory=PlayerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "aura-tui"
    return Path.home() / ".config" / "aura-tui"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Used during development so a checkout's config.toml wins over the
    user's global one.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    try:
        current = Path(__file__).resolve().parent
        for parent in [current] + list(current.parents):
            if (parent / "pyproject.toml").exists():
                config_path = parent / "config.toml"
                if config_path.exists():
                    return config_path
                return None
    except OSError:
        pass
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/aura-tui (or ~/.config/aura-tui)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "aura-tui"
    return Path.home() / ".local" / "share" / "aura-tui"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Aura TUI Configuration

[player]
# Path for mpv socket (auto-detected if not specified)
# mpv_socket_path = "/tmp/aura-tui-mpv"

# Default volume (0-100)
volume = 50

[cache]
# Download upcoming queue tracks ahead of time
enabled = true

# Number of upcoming tracks to keep downloaded
window_size = 5

# Maximum simultaneous yt-dlp downloads
max_concurrent = 3

# Seconds before a stuck download is killed
download_timeout = 120

# Cache directory (default: system temp dir)
# directory = "/tmp/aura-tui-cache"

[playback]
# Keep playing related tracks when the queue runs out
autoplay = true

# Skip tracks that look like ads
ad_block = true

# Seconds to wait for a track to start before skipping it
load_timeout = 15

# Seconds before a stuck auto-advance is released
advance_timeout = 30

# Number of related tracks fetched for radio mode
recommendation_limit = 15

[catalog]
search_limit = 15
search_timeout = 15
resolve_timeout = 20
recommendation_timeout = 20

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/aura-tui/aura-tui.log)
# log_file = "/path/to/aura-tui.log"

[ui]
# Seconds an error message stays visible
error_display_seconds = 5

# Use colors in terminal output
use_colors = true
""".strip()


def _section(data: dict, cls, defaults):
    """Build a config section dataclass, falling back to defaults per key."""
    values = {
        name: data.get(name, getattr(defaults, name))
        for name in cls.__dataclass_fields__
    }
    return cls(**values)


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - AURA_TUI_MPV_SOCKET
    - AURA_TUI_LOG_LEVEL
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        config = Config()

        if "player" in toml_data:
            config.player = _section(toml_data["player"], PlayerConfig, config.player)
            config.player.volume = max(0, min(100, int(config.player.volume)))

        if "cache" in toml_data:
            config.cache = _section(toml_data["cache"], CacheConfig, config.cache)
            if config.cache.directory:
                config.cache.directory = str(Path(config.cache.directory).expanduser())
            try:
                config.cache.validate()
            except ValueError as e:
                print(f"Warning: Invalid cache configuration: {e}")
                print("Using default cache configuration.")
                config.cache = CacheConfig()

        if "playback" in toml_data:
            config.playback = _section(
                toml_data["playback"], PlaybackConfig, config.playback
            )

        if "catalog" in toml_data:
            config.catalog = _section(toml_data["catalog"], CatalogConfig, config.catalog)

        if "logging" in toml_data:
            config.logging = _section(toml_data["logging"], LoggingConfig, config.logging)
            config.logging.level = config.logging.level.upper()
            if config.logging.log_file:
                config.logging.log_file = str(Path(config.logging.log_file).expanduser())

        if "ui" in toml_data:
            config.ui = _section(toml_data["ui"], UIConfig, config.ui)

        return _apply_env_overrides(config)

    except (tomllib.TOMLDecodeError, OSError, TypeError, ValueError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return Config()


def _apply_env_overrides(config: Config) -> Config:
    socket_path = os.environ.get("AURA_TUI_MPV_SOCKET")
    log_level = os.environ.get("AURA_TUI_LOG_LEVEL")

    if socket_path:
        config.player.mpv_socket_path = socket_path
    if log_level:
        config.logging.level = log_level.upper()

    return config


def save_config(config: Config) -> bool:
    """Save configuration to file."""
    config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        toml_content = f"""# Aura TUI Configuration

[player]
volume = {config.player.volume}"""

        if config.player.mpv_socket_path:
            toml_content += f'\nmpv_socket_path = "{config.player.mpv_socket_path}"'

        toml_content += f"""

[cache]
enabled = {str(config.cache.enabled).lower()}
window_size = {config.cache.window_size}
max_concurrent = {config.cache.max_concurrent}
download_timeout = {config.cache.download_timeout}"""

        if config.cache.directory:
            toml_content += f'\ndirectory = "{config.cache.directory}"'

        toml_content += f"""

[playback]
autoplay = {str(config.playback.autoplay).lower()}
ad_block = {str(config.playback.ad_block).lower()}
load_timeout = {config.playback.load_timeout}
advance_timeout = {config.playback.advance_timeout}
recommendation_limit = {config.playback.recommendation_limit}

[catalog]
search_limit = {config.catalog.search_limit}
search_timeout = {config.catalog.search_timeout}
resolve_timeout = {config.catalog.resolve_timeout}
recommendation_timeout = {config.catalog.recommendation_timeout}

[logging]
level = "{config.logging.level}"
"""
        toml_content = toml_content.rstrip("\n")

        if config.logging.log_file:
            toml_content += f'\nlog_file = "{config.logging.log_file}"'

        toml_content += f"""

[ui]
error_display_seconds = {config.ui.error_display_seconds}
use_colors = {str(config.ui.use_colors).lower()}
"""

        with open(config_path, "w", encoding="utf-8") as f:
            f.write(toml_content)

        return True

    except OSError as e:
        print(f"Error saving configuration to {config_path}: {e}")
        return False


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
