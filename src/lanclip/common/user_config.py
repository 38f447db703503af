"""
User Configuration Management

Manages user-editable transport settings stored in a JSON file.
Settings can be changed without modifying code; sender and receiver
must agree on the group, ports and datagram size.
"""
import json
import logging
import ipaddress
from pathlib import Path
from typing import Any, List, Optional
from dataclasses import dataclass, asdict

from lanclip import config

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_multicast_group(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        return ipaddress.IPv4Address(value).is_multicast
    except ValueError:
        return False


@dataclass
class TransportConfig:
    """User configuration for the clipboard transport"""

    # Multicast
    multicast_group: str = config.MULTICAST_GROUP
    multicast_port: int = config.MULTICAST_PORT
    multicast_ttl: int = config.MULTICAST_TTL
    max_datagram_size: int = config.MAX_DATAGRAM_SIZE

    # Fallback channel
    fallback_port: int = config.FALLBACK_PORT
    fallback_timeout: float = config.FALLBACK_CONNECT_TIMEOUT
    max_record_size: int = config.FALLBACK_MAX_RECORD_SIZE

    # Timing
    run_timeout: int = config.DEFAULT_RUN_TIMEOUT
    announce_interval: float = config.ANNOUNCE_INTERVAL
    send_join_timeout: float = config.SEND_JOIN_TIMEOUT
    poll_interval: float = config.SOCKET_POLL_INTERVAL

    # Receive mode: keep listening after a bad announcement
    retry_on_error: bool = True

    def validate(self) -> List[str]:
        """Return a list of problems, empty if the config is usable"""
        errors = []

        if not _is_multicast_group(self.multicast_group):
            errors.append(f"multicast_group must be an IPv4 multicast address (224.0.0.0/4), got {self.multicast_group!r}")

        for key in ('multicast_port', 'fallback_port'):
            value = getattr(self, key)
            if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= 65535:
                errors.append(f"{key} must be a port between 1 and 65535, got {value!r}")

        for key in ('multicast_ttl', 'max_datagram_size', 'max_record_size', 'run_timeout',
                    'announce_interval', 'send_join_timeout', 'poll_interval', 'fallback_timeout'):
            value = getattr(self, key)
            if not _is_number(value) or value <= 0:
                errors.append(f"{key} must be a positive number, got {value!r}")
        if errors:
            return errors

        if self.multicast_ttl > 255:
            errors.append(f"multicast_ttl must be between 1 and 255, got {self.multicast_ttl}")

        # Room for the JSON framing of a tiny envelope
        if self.max_datagram_size < 64 or self.max_datagram_size > 65507:
            errors.append(f"max_datagram_size must be between 64 and 65507, got {self.max_datagram_size}")

        if self.max_record_size < self.max_datagram_size:
            errors.append("max_record_size must not be smaller than max_datagram_size")

        return errors

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'TransportConfig':
        """Create config from dict, using defaults for missing keys"""
        defaults = cls()
        for key, value in data.items():
            if hasattr(defaults, key):
                setattr(defaults, key, value)
        return defaults


class ConfigManager:
    """Manages loading, saving, and accessing user configuration"""

    _instance: Optional['ConfigManager'] = None
    _config: Optional[TransportConfig] = None
    _path: Optional[Path] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def path(self) -> Path:
        return self._path or config.get_data_dir() / CONFIG_FILENAME

    def load(self, config_path: Path = None) -> TransportConfig:
        """
        Load configuration from file

        Raises ValueError if the file holds invalid values. An unreadable
        file falls back to defaults.
        """
        if config_path is not None:
            self._path = Path(config_path)
        path = self.path

        if path.exists():
            try:
                with open(path, 'r') as f:
                    data = json.load(f)
                loaded = TransportConfig.from_dict(data)
                logger.info(f"Loaded config from {path}")
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Failed to load config: {e}, using defaults")
                loaded = TransportConfig()
        else:
            logger.info("No config file found, using defaults")
            loaded = TransportConfig()

        errors = loaded.validate()
        if errors:
            raise ValueError(f"Invalid config in {path}: {'; '.join(errors)}")

        self._config = loaded
        return self._config

    def save(self, config_path: Path = None) -> bool:
        """Save configuration to file"""
        path = Path(config_path) if config_path else self.path

        try:
            with open(path, 'w') as f:
                json.dump(self._config.to_dict(), f, indent=2)
            logger.info(f"Saved config to {path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            return False

    def get(self) -> TransportConfig:
        """Get current configuration"""
        if self._config is None:
            self.load()
        return self._config

    def set(self, key: str, value: Any) -> bool:
        """Set a configuration value, rejecting values that fail validation"""
        current = self.get()
        if not hasattr(current, key) or key.startswith('_'):
            logger.error(f"Unknown config key: {key}")
            return False

        candidate = TransportConfig.from_dict({**current.to_dict(), key: value})
        errors = candidate.validate()
        if errors:
            for error in errors:
                logger.error(error)
            return False

        self._config = candidate
        return self.save()

    def reset(self) -> TransportConfig:
        """Reset to default configuration

        Never reads the config file, so it also recovers from one that
        holds invalid values.
        """
        self._config = TransportConfig()
        self.save()
        return self._config


def get_config() -> TransportConfig:
    """Get the current user configuration"""
    return ConfigManager().get()


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance"""
    return ConfigManager()


def print_config():
    """Print current configuration in a readable format"""
    manager = get_config_manager()
    cfg = manager.get()

    print("\n" + "=" * 50)
    print("  lanclip - Configuration")
    print("=" * 50)

    print("\n  Multicast:")
    print(f"    Group:          {cfg.multicast_group}:{cfg.multicast_port}")
    print(f"    TTL:            {cfg.multicast_ttl}")
    print(f"    Max Datagram:   {cfg.max_datagram_size} bytes")

    print("\n  Fallback Channel:")
    print(f"    Port:           {cfg.fallback_port}")
    print(f"    Timeout:        {cfg.fallback_timeout}s")

    print("\n  Timing:")
    print(f"    Run Timeout:    {cfg.run_timeout}s")
    print(f"    Announce Every: {cfg.announce_interval}s")

    print("\n  Receive:")
    print(f"    Retry On Error: {'ON' if cfg.retry_on_error else 'OFF'}")

    print(f"\n  Config File: {manager.path}")
    print("=" * 50 + "\n")
