"""Release check against the GitHub releases API.

Runs once after the command finishes.  Any failure (offline, rate limit,
malformed reply) is silent apart from a DEBUG log line.
"""
from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Optional

from .__version__ import __version__

log = logging.getLogger(__name__)

RELEASES_URL = "https://api.github.com/repos/bmarr/elgato4k-linux/releases/latest"
RELEASES_PAGE = "https://github.com/bmarr/elgato4k-linux/releases/latest"
UPDATE_CHECK_TIMEOUT_S = 3


def extract_tag_name(body: str) -> Optional[str]:
    """Version from the ``tag_name`` of a release JSON body, without the ``v``."""
    try:
        tag = json.loads(body).get('tag_name')
    except (json.JSONDecodeError, AttributeError):
        return None
    if not isinstance(tag, str) or not tag:
        return None
    return tag[1:] if tag.startswith('v') else tag


def _parse_version(v: str) -> list[int]:
    return [int(part) for part in v.split('.') if part.isdigit()]


def is_newer(latest: str, current: str) -> bool:
    """Compare dotted versions numerically: '0.10.0' > '0.9.0'."""
    return _parse_version(latest) > _parse_version(current)


def fetch_latest_version(timeout: float = UPDATE_CHECK_TIMEOUT_S) -> Optional[str]:
    """Latest release version on GitHub, or None on any failure."""
    req = urllib.request.Request(RELEASES_URL, headers={
        'User-Agent': 'elgato4k-linux',
        'Accept': 'application/vnd.github.v3+json',
    })
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            body = resp.read().decode('utf-8', errors='replace')
    except urllib.error.HTTPError as e:
        log.debug("Update check failed (%d)", e.code)
        return None
    except (urllib.error.URLError, OSError, ValueError) as e:
        log.debug("Update check failed: %s", e)
        return None
    return extract_tag_name(body)


def check_for_update(current: str = __version__) -> Optional[str]:
    """Return the newer release version if one exists, else None."""
    latest = fetch_latest_version()
    if latest is not None and is_newer(latest, current):
        return latest
    return None
