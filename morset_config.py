"""Configuration persistence for Morset.

Saves and restores training settings between application launches.
"""
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional
import json
import logging
import os
import sys

from morset_keyer import KeyerMode
from morset_utils import (DEFAULT_FREQUENCY, DEFAULT_VOLUME, DEFAULT_WPM, MAX_FREQUENCY, MAX_VOLUME,
                          MAX_WPM, MIN_FREQUENCY, MIN_VOLUME, MIN_WPM, clamp)

logger = logging.getLogger(__name__)

MIN_WORDS_PER_PHRASE = 1
MAX_WORDS_PER_PHRASE = 10


def get_config_dir() -> str:
    """Get the platform-appropriate config directory (created if missing)."""
    if sys.platform == 'win32':
        # Windows: Use AppData\Local
        base = os.environ.get('LOCALAPPDATA', os.path.expanduser('~'))
        config_dir = os.path.join(base, 'Morset')
    elif sys.platform == 'darwin':
        # macOS: Use ~/Library/Application Support
        config_dir = os.path.join(os.path.expanduser('~'), 'Library', 'Application Support', 'Morset')
    else:
        # Linux/Unix: Use XDG_CONFIG_HOME or ~/.config
        xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.join(os.path.expanduser('~'), '.config'))
        config_dir = os.path.join(xdg_config, 'morset')

    os.makedirs(config_dir, exist_ok=True)
    return config_dir


def get_config_path() -> str:
    return os.path.join(get_config_dir(), 'config.json')


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from disk.

    Returns:
        Dictionary with configuration data, or empty dict if the file is
        missing or unreadable.
    """
    config_path = path or get_config_path()
    if not os.path.exists(config_path):
        return {}

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(config: Dict[str, Any], path: Optional[str] = None) -> None:
    """Save configuration to disk; failures are logged, not raised."""
    config_path = path or get_config_path()
    try:
        with open(config_path, 'w') as f:
            json.dump(config, indent=2, fp=f)
    except OSError as e:
        logger.warning("Could not save config to %s: %s", config_path, e)


@dataclass
class Settings:
    """User settings consumed once at startup and saved on exit."""
    wpm: int = DEFAULT_WPM
    frequency: int = DEFAULT_FREQUENCY
    volume: int = DEFAULT_VOLUME
    keyer_mode: KeyerMode = KeyerMode.STRAIGHT
    silent: bool = False
    farnsworth: bool = False
    words_per_phrase: int = 1
    listening_wpm: int = DEFAULT_WPM

    def __post_init__(self):
        self.wpm = clamp(int(self.wpm), MIN_WPM, MAX_WPM)
        self.listening_wpm = clamp(int(self.listening_wpm), MIN_WPM, MAX_WPM)
        self.frequency = clamp(int(self.frequency), MIN_FREQUENCY, MAX_FREQUENCY)
        self.volume = clamp(int(self.volume), MIN_VOLUME, MAX_VOLUME)
        self.words_per_phrase = clamp(int(self.words_per_phrase), MIN_WORDS_PER_PHRASE, MAX_WORDS_PER_PHRASE)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        """Build settings from a config dict, skipping unknown or malformed values."""
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            try:
                if f.name == 'keyer_mode':
                    value = KeyerMode.parse(str(value))
                elif f.name in ('silent', 'farnsworth'):
                    value = bool(value)
                else:
                    value = int(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid setting %s=%r", f.name, value)
                continue
            kwargs[f.name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['keyer_mode'] = self.keyer_mode.value
        return data
