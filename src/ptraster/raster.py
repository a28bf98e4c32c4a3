"""
Raster Encoder for P-touch printers.

Converts an image into raster lines for the raster graphics transfer
command. The print head runs across the tape, so each raster line is
one image column: image row ``y`` lands on head dot ``y``.

Line Format:
    ceil(dots / 8) bytes, MSB first (dot 0 is bit 7 of byte 0).
    A bit is set (ink) when the pixel's 8-bit luminance is above 127.
    Dots inside the page margins are never set.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union, runtime_checkable

from PIL import Image

from .commands import CommandBuilder
from .media import MediaInfo, MediaRegistry
from .status import ModelCode
from .units import DEFAULT_DPI, mm_to_dots

logger = logging.getLogger(__name__)

LUMINANCE_THRESHOLD = 127


@runtime_checkable
class RasterImage(Protocol):
    """Read-only pixel access needed by the encoder."""

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) in pixels."""
        ...

    def luminance(self, x: int, y: int) -> int:
        """8-bit luminance (0-255) of the pixel at (x, y)."""
        ...


class PILRasterImage:
    """
    RasterImage view over a PIL image.

    "1", "L", "LA", "RGB", "RGBA" and "RGBX" images are sampled in place.
    Other modes are converted to "L" once up front.
    """

    DIRECT_MODES = ("1", "L", "LA", "RGB", "RGBA", "RGBX")

    def __init__(self, image: Image.Image):
        if image.mode not in self.DIRECT_MODES:
            image = image.convert("L")
        self.image = image
        self.mode = image.mode
        self._pixels = image.load()

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def luminance(self, x: int, y: int) -> int:
        px = self._pixels[x, y]
        if self.mode == "1":
            return 255 if px else 0
        if self.mode == "L":
            return px
        if self.mode == "LA":
            return px[0] * px[1] // 255
        r, g, b = px[0], px[1], px[2]
        if self.mode == "RGBA":
            # Premultiply so transparent pixels read as dark
            a = px[3]
            r, g, b = r * a // 255, g * a // 255, b * a // 255
        # ITU-R 601 weights in 16.16 fixed point
        return (19595 * r + 38470 * g + 7471 * b + (1 << 15)) >> 16


@dataclass
class RasterEncodeConfig:
    """
    Device parameters for a RasterEncoder.

    Attributes:
        model: Printer model; sets DPI and head width in dots
        media_info: Installed media geometry; its page margin is excluded
            on both sides of the head
    """

    model: ModelCode = ModelCode.PT_P700
    media_info: Optional[MediaInfo] = None

    @classmethod
    def for_media(
        cls, model: ModelCode, media: int, registry: MediaRegistry
    ) -> "RasterEncodeConfig":
        """Build a config using geometry looked up in ``registry``."""
        return cls(model=model, media_info=registry.info(media))


class RasterEncoder:
    """
    Encodes image columns into raster lines.

    The encoder borrows the image and owns one output buffer, which every
    encode call overwrites. Consume (or copy) a returned line before the
    next call.

    ``next_line``/``encode_line`` walk columns from the last to the first
    and stop for good once exhausted; ``transfer`` sends every column from
    the first to the last.
    """

    def __init__(
        self,
        image: Union[RasterImage, Image.Image],
        config: Optional[RasterEncodeConfig] = None,
    ):
        """
        Args:
            image: Image to encode (a PIL image is wrapped in PILRasterImage)
            config: Model and media. Without one, the head is assumed to be
                exactly as tall as the image with no page margins.
        """
        if isinstance(image, Image.Image):
            image = PILRasterImage(image)

        self.image = image
        self.width, self.height = image.size
        self._line = self.width

        self.dots = self.height
        self.dpi = DEFAULT_DPI
        self.margin_left_dots = 0
        self.margin_right_dots = 0
        self.user_margin_left_dots = 0
        self.user_margin_right_dots = 0

        if config is not None:
            self.dots = config.model.total_dots
            self.dpi = config.model.dpi
            if config.media_info is not None:
                margin = config.media_info.page_margin_dots(self.dpi)
                self.margin_left_dots = margin
                self.margin_right_dots = margin

        self._buffer = bytearray((self.dots + 7) // 8)

    def set_margin(self, left: float, right: float) -> None:
        """Extra margins in mm, added to the media page margins."""
        self.user_margin_left_dots = mm_to_dots(left, self.dpi)
        self.user_margin_right_dots = mm_to_dots(right, self.dpi)

    @property
    def printable_window(self) -> tuple[int, int]:
        """Dot range [pmin, pmax) that may carry ink."""
        pmin = self.margin_left_dots + self.user_margin_left_dots
        pmax = self.dots - (self.margin_right_dots + self.user_margin_right_dots)
        return pmin, pmax

    @property
    def raster_number(self) -> int:
        """Number of raster lines transfer() sends."""
        return self.width

    @property
    def exhausted(self) -> bool:
        return self._line <= 0

    def next_line(self) -> bool:
        """Advance to the next column. False once every column was visited."""
        if self._line > 0:
            self._line -= 1
            return True
        return False

    def encode_line(self) -> bytearray:
        """Encode the current column."""
        return self.encode(self._line)

    def encode(self, x: int) -> bytearray:
        """
        Encode image column ``x``.

        Columns outside the image encode as a blank line.

        Returns:
            The shared line buffer
        """
        buf = self._buffer
        buf[:] = bytes(len(buf))

        if x < 0 or x >= self.width:
            return buf

        pmin, pmax = self.printable_window
        start = max(pmin, 0)
        stop = min(pmax, self.dots, self.height)

        sample = self.image.luminance
        for i in range(start, stop):
            if sample(x, i) > LUMINANCE_THRESHOLD:
                buf[i >> 3] |= 0x80 >> (i & 7)

        return buf

    def transfer(self, transport) -> None:
        """
        Send every column as a raster graphics transfer command.

        Stops at the first transport error, leaving the page partially
        sent; initialize the printer before retrying.
        """
        builder = CommandBuilder(transport)
        pmin, pmax = self.printable_window
        logger.debug(
            "Transferring %d raster lines of %d dots (printable %d-%d)",
            self.width, self.dots, pmin, pmax,
        )
        for x in range(self.width):
            builder.raster_graphics_transfer(self.encode(x))
