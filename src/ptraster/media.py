"""
Media Geometry Table for P-touch printers.

Maps the (media type, media width) pair reported in a status reply to a
canonical media identifier, and media identifiers to their physical
geometry. Identifiers follow the Raster Command Reference media table.

A MediaRegistry is an explicit object rather than module state: the
printer facade and the raster encoder take one as a parameter, and
callers register third-party tape on the instance they pass around.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Optional, Union

from .units import DEFAULT_DPI, mm_to_dots

logger = logging.getLogger(__name__)


class OpenIntEnum(IntEnum):
    """IntEnum that accepts values outside its declared members.

    Printer replies can carry byte values newer than this table. An
    undeclared value becomes a pseudo-member that compares equal to the
    raw integer instead of raising ValueError.
    """

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNKNOWN_{value:#04x}"
        member._value_ = value
        return member

    @property
    def is_known(self) -> bool:
        """True if this value is a declared member."""
        return self._name_ in type(self).__members__


class MediaType(OpenIntEnum):
    """Media type byte (status offset 11, print information byte 1)."""

    NO_MEDIA = 0x00
    LAMINATED_TAPE = 0x01
    NON_LAMINATED_TAPE = 0x03
    HEAT_SHRINK_TUBE = 0x11
    INCOMPATIBLE_TAPE = 0xFF

    @property
    def description(self) -> str:
        return _MEDIA_TYPE_NAMES.get(self, "Unknown")

    def is_valid(self) -> bool:
        """True if the printer accepts this type in a print information command."""
        return self in (
            MediaType.LAMINATED_TAPE,
            MediaType.NON_LAMINATED_TAPE,
            MediaType.HEAT_SHRINK_TUBE,
        )


_MEDIA_TYPE_NAMES = {
    MediaType.NO_MEDIA: "No media",
    MediaType.LAMINATED_TAPE: "Laminated tape",
    MediaType.NON_LAMINATED_TAPE: "Non-laminated tape",
    MediaType.HEAT_SHRINK_TUBE: "Heat-Shrink Tube",
    MediaType.INCOMPATIBLE_TAPE: "Incompatible tape",
}


class MediaWidth(OpenIntEnum):
    """Media width byte in millimetres (3.5mm tape reports 4)."""

    NO_TAPE = 0
    MM_3_5 = 4
    MM_6 = 6
    MM_9 = 9
    MM_12 = 12
    MM_18 = 18
    MM_24 = 24

    @property
    def description(self) -> str:
        if self == MediaWidth.NO_TAPE:
            return "No tape"
        if self == MediaWidth.MM_3_5:
            return "3.5mm"
        if self.is_known:
            return f"{int(self)}mm"
        return "Unknown"


class Media(OpenIntEnum):
    """Canonical media identifiers (Raster Command Reference media table)."""

    UNKNOWN = 0

    TZE_TAPE_3_5 = 263
    TZE_TAPE_6 = 257
    TZE_TAPE_9 = 258
    TZE_TAPE_12 = 259
    TZE_TAPE_18 = 260
    TZE_TAPE_24 = 261

    HEAT_SHRINK_TUBE_6 = 415
    HEAT_SHRINK_TUBE_9 = 416
    HEAT_SHRINK_TUBE_12 = 417
    HEAT_SHRINK_TUBE_18 = 418
    HEAT_SHRINK_TUBE_24 = 419

    @classmethod
    def _missing_(cls, value):
        # Undeclared ids are user-registered media
        member = super()._missing_(value)
        if member is not None:
            member._name_ = f"CUSTOM_{value}"
        return member


@dataclass(frozen=True)
class MediaInfo:
    """
    Physical geometry of a media, in millimetres.

    Attributes:
        name: Display name
        size: Nominal media width
        print_area: Printable width across the print head
        page_margin: Unprinted band on each side across the print head
        min_margin: Minimum feed margin
        max_margin: Maximum feed margin
        min_length: Minimum printable label length
        max_length: Maximum printable label length
    """

    name: str
    size: float
    print_area: float
    page_margin: float
    min_margin: float = 0.0
    max_margin: float = 0.0
    min_length: float = 0.0
    max_length: float = 0.0

    def page_margin_dots(self, dpi: float = DEFAULT_DPI) -> int:
        return mm_to_dots(self.page_margin, dpi)

    def print_area_dots(self, dpi: float = DEFAULT_DPI) -> int:
        return mm_to_dots(self.print_area, dpi)


UNKNOWN_MEDIA_INFO = MediaInfo(name="Unknown", size=0.0, print_area=0.0, page_margin=0.0)


def _tape(name: str, size: float, print_area: float, page_margin: float) -> MediaInfo:
    # Feed margins (14 and 900 dots) and length limits are common to all TZe/HSe media
    return MediaInfo(
        name=name,
        size=size,
        print_area=print_area,
        page_margin=page_margin,
        min_margin=2.0,
        max_margin=127.1,
        min_length=4.4,
        max_length=1000.0,
    )


# Page margins reproduce the head-width dot table at 180 DPI
BUILTIN_MEDIA_INFO: dict[Media, MediaInfo] = {
    Media.TZE_TAPE_3_5: _tape("3.5mm TZe tape", 3.5, 3.4, 7.35),
    Media.TZE_TAPE_6: _tape("6mm TZe tape", 6.0, 4.55, 6.8),
    Media.TZE_TAPE_9: _tape("9mm TZe tape", 9.0, 7.06, 5.52),
    Media.TZE_TAPE_12: _tape("12mm TZe tape", 12.0, 9.9, 4.1),
    Media.TZE_TAPE_18: _tape("18mm TZe tape", 18.0, 15.85, 1.14),
    Media.TZE_TAPE_24: _tape("24mm TZe tape", 24.0, 18.07, 0.0),
    Media.HEAT_SHRINK_TUBE_6: _tape("6mm Heat-Shrink Tube", 6.0, 3.98, 7.07),
    Media.HEAT_SHRINK_TUBE_9: _tape("9mm Heat-Shrink Tube", 9.0, 6.78, 5.66),
    Media.HEAT_SHRINK_TUBE_12: _tape("12mm Heat-Shrink Tube", 12.0, 9.32, 4.39),
    Media.HEAT_SHRINK_TUBE_18: _tape("18mm Heat-Shrink Tube", 18.0, 14.96, 1.56),
    Media.HEAT_SHRINK_TUBE_24: _tape("24mm Heat-Shrink Tube", 24.0, 18.07, 0.0),
}

_TAPE_BY_WIDTH = {
    MediaWidth.MM_3_5: Media.TZE_TAPE_3_5,
    MediaWidth.MM_6: Media.TZE_TAPE_6,
    MediaWidth.MM_9: Media.TZE_TAPE_9,
    MediaWidth.MM_12: Media.TZE_TAPE_12,
    MediaWidth.MM_18: Media.TZE_TAPE_18,
    MediaWidth.MM_24: Media.TZE_TAPE_24,
}

_TUBE_BY_WIDTH = {
    MediaWidth.MM_6: Media.HEAT_SHRINK_TUBE_6,
    MediaWidth.MM_9: Media.HEAT_SHRINK_TUBE_9,
    MediaWidth.MM_12: Media.HEAT_SHRINK_TUBE_12,
    MediaWidth.MM_18: Media.HEAT_SHRINK_TUBE_18,
    MediaWidth.MM_24: Media.HEAT_SHRINK_TUBE_24,
}

BUILTIN_RECOGNITION: dict[tuple[MediaType, MediaWidth], Media] = {}
for _width, _media in _TAPE_BY_WIDTH.items():
    BUILTIN_RECOGNITION[(MediaType.LAMINATED_TAPE, _width)] = _media
    BUILTIN_RECOGNITION[(MediaType.NON_LAMINATED_TAPE, _width)] = _media
for _width, _media in _TUBE_BY_WIDTH.items():
    BUILTIN_RECOGNITION[(MediaType.HEAT_SHRINK_TUBE, _width)] = _media


def recognize_media(media_type: int, media_width: int) -> Media:
    """Resolve a status reply's media type/width pair using the built-in table."""
    return BUILTIN_RECOGNITION.get((MediaType(media_type), MediaWidth(media_width)), Media.UNKNOWN)


class ReadWriteLock:
    """
    Reader/writer lock: readers share, writers are exclusive.

    Waiting writers block new readers so a steady stream of lookups
    cannot starve a registration. Not re-entrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MediaRegistry:
    """
    Media lookup table with runtime registration.

    Lookups never fail: unknown pairs resolve to Media.UNKNOWN and
    unknown media resolve to UNKNOWN_MEDIA_INFO, whose zero margins the
    raster encoder handles like any other geometry.
    """

    def __init__(self, include_builtin: bool = True):
        self._lock = ReadWriteLock()
        self._info: dict[int, MediaInfo] = {}
        self._recognition: dict[tuple[int, int], Media] = {}
        if include_builtin:
            self._info.update(BUILTIN_MEDIA_INFO)
            self._recognition.update(BUILTIN_RECOGNITION)

    def lookup(self, media_type: int, media_width: int) -> Media:
        """Resolve (media type, media width) to a canonical media id."""
        with self._lock.read():
            return self._recognition.get((int(media_type), int(media_width)), Media.UNKNOWN)

    def info(self, media: int) -> MediaInfo:
        """Return the geometry for a media id, or UNKNOWN_MEDIA_INFO."""
        with self._lock.read():
            return self._info.get(int(media), UNKNOWN_MEDIA_INFO)

    def register(
        self,
        media: Union[Media, int],
        info: MediaInfo,
        media_type: Optional[int] = None,
        media_width: Optional[int] = None,
    ) -> None:
        """
        Insert or replace the geometry for a media id.

        Args:
            media: Canonical or custom media id
            info: Geometry to associate with it
            media_type: Optional status media type that identifies this media
            media_width: Optional status media width (required with media_type)
        """
        if (media_type is None) != (media_width is None):
            raise ValueError("media_type and media_width must be given together")

        media = Media(int(media))
        with self._lock.write():
            self._info[int(media)] = info
            if media_type is not None:
                self._recognition[(int(media_type), int(media_width))] = media

        logger.info("Registered media %d (%s)", int(media), info.name)

    def unregister(self, media: Union[Media, int]) -> bool:
        """
        Remove a media id and any recognition keys pointing at it.

        Returns:
            True if the media was registered
        """
        key = int(media)
        with self._lock.write():
            removed = self._info.pop(key, None) is not None
            for pair in [p for p, m in self._recognition.items() if int(m) == key]:
                del self._recognition[pair]

        if removed:
            logger.info("Unregistered media %d", key)
        return removed

    def media(self) -> list[Media]:
        """Registered media ids in ascending order."""
        with self._lock.read():
            return [Media(key) for key in sorted(self._info)]
