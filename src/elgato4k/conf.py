"""User preferences for elgato4k.

Config is stored at ~/.config/elgato4k/config.json (XDG-compliant).

Usage:
    from elgato4k.conf import get_update_check_enabled, get_usb_timeout_ms
"""
from __future__ import annotations

import json
import logging
import os

from .constants import USB_TIMEOUT_MS

log = logging.getLogger(__name__)

# =========================================================================
# Config file location (XDG-compliant)
# =========================================================================

_XDG_CONFIG = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
CONFIG_DIR = os.path.join(_XDG_CONFIG, 'elgato4k')
CONFIG_PATH = os.path.join(CONFIG_DIR, 'config.json')

# Set to "1" to skip the release check regardless of config
NO_UPDATE_CHECK_ENV = 'ELGATO4K_NO_UPDATE_CHECK'

USB_TIMEOUT_MIN_MS = 100
USB_TIMEOUT_MAX_MS = 10000


# =========================================================================
# Low-level config persistence
# =========================================================================

def load_config() -> dict:
    """Load user config from disk. Returns empty dict on missing/corrupt file."""
    try:
        with open(CONFIG_PATH, 'r') as f:
            config = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return {}
    return config if isinstance(config, dict) else {}


def save_config(config: dict):
    """Save user config to disk."""
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_PATH, 'w') as f:
        json.dump(config, f, indent=2)


# =========================================================================
# Update check
# =========================================================================

def get_update_check_enabled() -> bool:
    """Whether to look for a newer release on startup (default on)."""
    if os.environ.get(NO_UPDATE_CHECK_ENV) == '1':
        return False
    return bool(load_config().get('check_updates', True))


def set_update_check_enabled(enabled: bool):
    config = load_config()
    config['check_updates'] = bool(enabled)
    save_config(config)


# =========================================================================
# USB
# =========================================================================

def get_usb_timeout_ms() -> int:
    """Control transfer timeout, clamped to 100..10000 ms."""
    value = load_config().get('usb_timeout_ms', USB_TIMEOUT_MS)
    try:
        value = int(value)
    except (TypeError, ValueError):
        log.warning("Ignoring invalid usb_timeout_ms in %s: %r", CONFIG_PATH, value)
        return USB_TIMEOUT_MS
    return max(USB_TIMEOUT_MIN_MS, min(USB_TIMEOUT_MAX_MS, value))
