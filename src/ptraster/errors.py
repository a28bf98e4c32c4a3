"""
Exception hierarchy for the P-touch raster codec.

Parameter validation failures are raised before any byte reaches the
transport. Transport failures (OSError, serial.SerialException) are not
wrapped and propagate as raised.
"""


class PTouchError(Exception):
    """Base exception for all ptraster errors."""

    pass


# --- Command encoding ---


class CommandError(PTouchError, ValueError):
    """A command parameter was rejected before encoding."""

    pass


class InvalidMediaType(CommandError):
    """Media type is not one the printer accepts."""

    pass


class InvalidMediaWidth(CommandError):
    """Media width outside (0, 256]."""

    pass


class InvalidMediaLength(CommandError):
    """Media length outside (0, 256]."""

    pass


class InvalidRasterNumber(CommandError):
    """Raster line count outside (0, 0xFFFFFFFF]."""

    pass


class MarginAmountUnacceptable(CommandError):
    """Margin amount does not fit the 16-bit field."""

    pass


class DataTooLong(CommandError):
    """Raster data does not fit the 16-bit length field."""

    pass


class InvalidRepeatCount(CommandError):
    """Invalidate repeat count is negative."""

    pass


# --- Status decoding ---


class StatusError(PTouchError, ValueError):
    """Status reply could not be decoded."""

    pass


class DataTooShort(StatusError):
    """Status reply shorter than 32 bytes."""

    pass


# --- Transport ---


class ShortReadError(PTouchError, EOFError):
    """Transport closed before the requested number of bytes arrived."""

    def __init__(self, expected: int, received: int):
        super().__init__(f"Expected {expected} bytes, received {received}")
        self.expected = expected
        self.received = received


# --- Printing ---


class ImageError(PTouchError):
    """Error loading or validating an image for printing."""

    pass


class ImageSizeError(ImageError, ValueError):
    """Image dimensions exceed safety limits."""

    pass


class PrintError(PTouchError):
    """Printer is not in a state that allows printing."""

    pass
