"""
Configuration module for StreamNotify.
Loads settings from YAML file and provides typed configuration.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .models import EventType, normalize_login


DEFAULT_CONFIG_PATH = "config.yaml"
CONFIG_ENV_VAR = "STREAMNOTIFY_CONFIG"


@dataclass
class TelegramConfig:
    """Telegram bot configuration."""
    api_id: int
    api_hash: str
    bot_token: str
    chat_id: int                  # Main channel for stream notifications
    admin_id: int                 # Admin chat for recorder and disk reports
    session_name: str = "streamnotify"
    send_delay: float = 5.0       # Seconds between outgoing messages


@dataclass
class TwitchConfig:
    """Twitch API and monitoring configuration."""
    client_id: str
    client_secret: str
    channels: List[str] = field(default_factory=list)


@dataclass
class ChannelConfig:
    """Per-channel presentation overrides."""
    display_name: Optional[str] = None
    photo_live: Optional[str] = None
    photo_off: Optional[str] = None


@dataclass
class RecorderConfig:
    """Recording settings."""
    channels: List[str] = field(default_factory=list)  # Allow-list of logins to record
    output_dir: str = "./recordings"
    format: str = "best"


@dataclass
class DiskConfig:
    """Disk space alerting settings."""
    path: Optional[str] = None    # Defaults to recorder output dir
    low_space_gb: float = 7.0
    critical_interval_minutes: int = 15
    routine_interval_minutes: int = 60


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    file: str = "./logs/info.log"
    max_size_mb: int = 10
    backup_count: int = 5


@dataclass
class StorageConfig:
    """Key-value store settings."""
    db_file: str = "./data/db.json"


@dataclass
class Config:
    """Main configuration container."""
    telegram: TelegramConfig
    twitch: TwitchConfig
    channels: Dict[str, ChannelConfig] = field(default_factory=dict)
    photos: Dict[EventType, str] = field(default_factory=dict)
    recorder: RecorderConfig = field(default_factory=RecorderConfig)
    disk: DiskConfig = field(default_factory=DiskConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    timeout: int = 60             # Seconds between ticks
    heartbeat_url: Optional[str] = None

    def __post_init__(self):
        """Ensure directories exist."""
        Path(self.recorder.output_dir).mkdir(parents=True, exist_ok=True)
        Path(self.logging.file).parent.mkdir(parents=True, exist_ok=True)
        Path(self.storage.db_file).parent.mkdir(parents=True, exist_ok=True)

    @property
    def disk_path(self) -> str:
        return self.disk.path or self.recorder.output_dir


def parse_photos(data: Optional[dict]) -> Dict[EventType, str]:
    """
    Build the event photo table.

    Raises:
        ConfigurationError: If a key does not name an event kind.
    """
    photos: Dict[EventType, str] = {}
    for key, value in (data or {}).items():
        try:
            event_type = EventType(str(key).lower())
        except ValueError:
            known = ', '.join(e.value for e in EventType)
            raise ConfigurationError(f"Unknown photo event '{key}', expected one of: {known}")
        if value:
            photos[event_type] = str(value)
    return photos


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file. Falls back to
            $STREAMNOTIFY_CONFIG, then ./config.yaml.

    Returns:
        Config object with all settings.

    Raises:
        ConfigurationError: If the file is missing, empty or incomplete.
    """
    config_path = Path(config_path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}\n"
            f"Please create a config.yaml file. See config.example.yaml for reference."
        )

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    if not data:
        raise ConfigurationError("Configuration file is empty")

    return parse_config(data)


def parse_config(data: dict) -> Config:
    """Validate raw YAML data and build a Config."""

    def require(section: str, names: List[str]) -> dict:
        values = data.get(section)
        if not isinstance(values, dict):
            raise ConfigurationError(f"Missing '{section}' section in config")
        for name in names:
            if values.get(name) in (None, ''):
                raise ConfigurationError(f"Missing required field: {section}.{name}")
        return values

    def as_int(value: Any, name: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Field {name} must be an integer, got {value!r}")

    def as_float(value: Any, default: float) -> float:
        """Parse float from YAML value with safe fallbacks."""
        if value is None:
            return default
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip().replace(",", "."))
            except ValueError:
                return default
        return default

    telegram_data = require('telegram', ['api_id', 'api_hash', 'bot_token', 'chat_id'])
    chat_id = as_int(telegram_data['chat_id'], 'telegram.chat_id')
    telegram_config = TelegramConfig(
        api_id=as_int(telegram_data['api_id'], 'telegram.api_id'),
        api_hash=str(telegram_data['api_hash']),
        bot_token=str(telegram_data['bot_token']),
        chat_id=chat_id,
        admin_id=as_int(telegram_data.get('admin_id', chat_id), 'telegram.admin_id'),
        session_name=telegram_data.get('session_name', 'streamnotify'),
        send_delay=max(0.0, as_float(telegram_data.get('send_delay'), 5.0)),
    )

    twitch_data = require('twitch', ['client_id', 'client_secret'])
    twitch_config = TwitchConfig(
        client_id=str(twitch_data['client_id']),
        client_secret=str(twitch_data['client_secret']),
        channels=[normalize_login(ch) for ch in twitch_data.get('channels') or []],
    )

    channels = {}
    for login, values in (data.get('channels') or {}).items():
        values = values or {}
        channels[normalize_login(login)] = ChannelConfig(
            display_name=values.get('display_name'),
            photo_live=values.get('photo_live'),
            photo_off=values.get('photo_off'),
        )

    recorder_data = data.get('recorder') or {}
    recorder_config = RecorderConfig(
        channels=[normalize_login(ch) for ch in recorder_data.get('channels') or []],
        output_dir=recorder_data.get('output_dir', './recordings'),
        format=recorder_data.get('format', 'best'),
    )

    disk_data = data.get('disk') or {}
    disk_config = DiskConfig(
        path=disk_data.get('path'),
        low_space_gb=as_float(disk_data.get('low_space_gb'), 7.0),
        critical_interval_minutes=as_int(disk_data.get('critical_interval_minutes', 15), 'disk.critical_interval_minutes'),
        routine_interval_minutes=as_int(disk_data.get('routine_interval_minutes', 60), 'disk.routine_interval_minutes'),
    )

    logging_data = data.get('logging') or {}
    logging_config = LoggingConfig(
        level=logging_data.get('level', 'INFO'),
        file=logging_data.get('file', './logs/info.log'),
        max_size_mb=logging_data.get('max_size_mb', 10),
        backup_count=logging_data.get('backup_count', 5),
    )

    storage_data = data.get('storage') or {}
    storage_config = StorageConfig(
        db_file=storage_data.get('db_file', './data/db.json'),
    )

    return Config(
        telegram=telegram_config,
        twitch=twitch_config,
        channels=channels,
        photos=parse_photos(data.get('photos')),
        recorder=recorder_config,
        disk=disk_config,
        logging=logging_config,
        storage=storage_config,
        timeout=as_int(data.get('timeout', 60), 'timeout'),
        heartbeat_url=data.get('heartbeat_url') or None,
    )
