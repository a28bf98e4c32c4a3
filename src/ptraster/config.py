"""
User configuration for ptraster.

Keeps two files under ~/.config/ptraster:

- media.json: custom media geometry, registered into a MediaRegistry
- last_device: the last device that printed successfully, with a TTL
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

from .media import MediaInfo, MediaRegistry

logger = logging.getLogger(__name__)

# Default cache TTL: 24 hours
DEFAULT_TTL_SECONDS = 24 * 60 * 60

# Config directory location
CONFIG_DIR = Path.home() / ".config" / "ptraster"
MEDIA_FILE = CONFIG_DIR / "media.json"
DEVICE_FILE = CONFIG_DIR / "last_device"


# --- Custom media ---


@dataclass
class CustomMedia:
    """A media.json entry."""

    media: int
    info: MediaInfo
    media_type: Optional[int] = None
    media_width: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CustomMedia":
        """
        Build an entry from its JSON form.

        Raises:
            KeyError, TypeError, ValueError: If the entry is malformed
        """
        info = MediaInfo(
            name=str(data["name"]),
            size=float(data["size"]),
            print_area=float(data["print_area"]),
            page_margin=float(data["page_margin"]),
            min_margin=float(data.get("min_margin", 0.0)),
            max_margin=float(data.get("max_margin", 0.0)),
            min_length=float(data.get("min_length", 0.0)),
            max_length=float(data.get("max_length", 0.0)),
        )
        media_type = data.get("media_type")
        media_width = data.get("media_width")
        if (media_type is None) != (media_width is None):
            raise ValueError("media_type and media_width must be given together")
        return cls(
            media=int(data["media"]),
            info=info,
            media_type=None if media_type is None else int(media_type),
            media_width=None if media_width is None else int(media_width),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"media": self.media}
        data.update(asdict(self.info))
        if self.media_type is not None:
            data["media_type"] = self.media_type
            data["media_width"] = self.media_width
        return data


def _read_json(path: Path, expected: type) -> Optional[Any]:
    """Parse a config file. Missing, unreadable or mistyped files read as None."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return None
    if not isinstance(data, expected):
        logger.warning("Ignoring %s: expected a JSON %s", path, expected.__name__)
        return None
    return data


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


def _read_media_file() -> list[dict[str, Any]]:
    return _read_json(MEDIA_FILE, list) or []


def _write_media_file(entries: list[dict[str, Any]]) -> None:
    _write_json(MEDIA_FILE, entries)


def load_custom_media() -> list[CustomMedia]:
    """Read valid media.json entries, skipping malformed ones."""
    entries = []
    for raw in _read_media_file():
        try:
            entries.append(CustomMedia.from_dict(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed media entry %r: %s", raw, e)
    return entries


def register_custom_media(registry: MediaRegistry) -> int:
    """
    Register every media.json entry on ``registry``.

    Returns:
        Number of entries registered
    """
    entries = load_custom_media()
    for entry in entries:
        registry.register(entry.media, entry.info, entry.media_type, entry.media_width)
    return len(entries)


def save_custom_media(entry: CustomMedia) -> None:
    """Add an entry to media.json, replacing one with the same id."""
    entries = [e for e in _read_media_file() if not (isinstance(e, dict) and e.get("media") == entry.media)]
    entries.append(entry.to_dict())
    _write_media_file(entries)


def remove_custom_media(media: int) -> bool:
    """
    Remove an entry from media.json.

    Returns:
        True if an entry was removed
    """
    entries = _read_media_file()
    kept = [e for e in entries if not (isinstance(e, dict) and e.get("media") == media)]
    if len(kept) == len(entries):
        return False
    _write_media_file(kept)
    return True


# --- Last device ---


@dataclass
class CachedDevice:
    """The last device a job succeeded on."""

    device: str
    baudrate: int
    last_used: float  # Unix timestamp


def load_cached_device(ttl_seconds: int = DEFAULT_TTL_SECONDS) -> Optional[CachedDevice]:
    """Return the last device, or None if there is none or it is older than ``ttl_seconds``."""
    data = _read_json(DEVICE_FILE, dict)
    if data is None:
        return None

    try:
        cached = CachedDevice(
            device=str(data["device"]),
            baudrate=int(data["baudrate"]),
            last_used=float(data["last_used"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Ignoring malformed %s: %s", DEVICE_FILE, e)
        return None

    if time.time() - cached.last_used > ttl_seconds:
        logger.debug("Cached device %s has expired", cached.device)
        return None
    return cached


def save_device(device: str, baudrate: int) -> None:
    """Remember ``device`` as the last one that printed."""
    _write_json(DEVICE_FILE, asdict(CachedDevice(device, baudrate, time.time())))


def clear_cache() -> bool:
    """Forget the last device. True if one was cached."""
    try:
        DEVICE_FILE.unlink()
    except FileNotFoundError:
        return False
    return True
