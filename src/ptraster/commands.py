"""
P-touch Raster Command Encoder.

Command builders for the raster command language used by Brother
P-touch printers (PT-H500, PT-E500, PT-P700).

``Commands`` holds the pure builders: typed parameters in, exact bytes
out, with all validation done before anything is returned.
``CommandBuilder`` writes those bytes to a transport, one write per
command. Multi-byte fields are little-endian.

Command Reference:
    Invalidate                  00                  (one byte per repetition)
    Initialize                  1B 40
    Status information request  1B 69 53
    Switch dynamic command mode 1B 69 61 n
    Print information command   1B 69 7A n1..n10
    Various mode settings       1B 69 4D n
    Advanced mode settings      1B 69 4B n
    Specify margin amount       1B 69 64 nL nH
    Select compression mode     4D n
    Raster graphics transfer    67 nL nH d1..dn
    Zero raster graphics        5A
    Print                       0C
    Print with feeding          1A
"""

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Union

from .errors import (
    CommandError,
    DataTooLong,
    InvalidMediaLength,
    InvalidMediaType,
    InvalidMediaWidth,
    InvalidRasterNumber,
    InvalidRepeatCount,
    MarginAmountUnacceptable,
)
from .media import MediaType

logger = logging.getLogger(__name__)


# Opcodes
INVALIDATE = b"\x00"
INITIALIZE = b"\x1b\x40"
STATUS_INFORMATION_REQUEST = b"\x1b\x69\x53"
SWITCH_DYNAMIC_COMMAND_MODE = b"\x1b\x69\x61"
PRINT_INFORMATION = b"\x1b\x69\x7a"
VARIOUS_MODE_SETTINGS = b"\x1b\x69\x4d"
ADVANCED_MODE_SETTINGS = b"\x1b\x69\x4b"
SPECIFY_MARGIN_AMOUNT = b"\x1b\x69\x64"
SELECT_COMPRESSION_MODE = b"\x4d"
RASTER_GRAPHICS_TRANSFER = b"\x67"
ZERO_RASTER_GRAPHICS = b"\x5a"
PRINT = b"\x0c"
PRINT_WITH_FEEDING = b"\x1a"

MAX_MEDIA_WIDTH = 256
MAX_MEDIA_LENGTH = 256
MAX_RASTER_NUMBER = 0xFFFFFFFF
MAX_MARGIN_DOTS = 0xFFFF
MAX_RASTER_DATA = 0xFFFF


class DynamicCommandMode(IntEnum):
    """Command modes for switch_dynamic_command_mode."""

    ESCP = 0  # Default mode
    RASTER = 1  # Required before sending raster data
    PTOUCH_TEMPLATE = 2


class PrintInformationFlag(IntFlag):
    """Valid-field flags for the print information command (byte 0)."""

    NONE = 0
    KIND = 0x02
    WIDTH = 0x04
    LENGTH = 0x08
    QUALITY = 0x40  # Not used
    RECOVER = 0x80  # Always on


_MEDIA_FIELDS = PrintInformationFlag.KIND | PrintInformationFlag.WIDTH | PrintInformationFlag.LENGTH


class VariousMode(IntFlag):
    """Flags for various_mode_settings."""

    NONE = 0
    AUTO_CUT = 1 << 6
    MIRROR_PRINTING = 1 << 7


class AdvancedMode(IntFlag):
    """Flags for advanced_mode_settings."""

    # Feeding and cutting are not performed after the last label
    CHAIN_PRINTING = 0
    # Feeding and cutting are performed after the last label
    NO_CHAIN_PRINTING = 1 << 3
    # Labels are not cut when special tape is installed
    SPECIAL_TAPE = 1 << 4
    NO_CUTTING = 1 << 4
    # Expansion buffer is kept between labels; only valid from the second label on
    NO_BUFFER_CLEARING_WHEN_PRINTING = 1 << 7


class CompressionMode(IntEnum):
    """Raster data compression modes."""

    NO_COMPRESSION = 0
    TIFF = 2


@dataclass
class PrintInformation:
    """
    Parameters of the print information command.

    Attributes:
        flags: Which of media_type/media_width/media_length are valid
        media_type: Sent when KIND is set; must be a printable type
        media_width: Media width in mm, (0, 256]
        media_length: Media length in mm, (0, 256]
        raster_number: Number of raster lines in the page, (0, 0xFFFFFFFF]
        starting_page: True for the first page of a job
    """

    flags: PrintInformationFlag = _MEDIA_FIELDS
    media_type: int = MediaType.LAMINATED_TAPE
    media_width: int = 24
    media_length: int = 1
    raster_number: int = 1
    starting_page: bool = True


def _mode_byte(mode: int) -> int:
    value = int(mode)
    if not 0 <= value <= 0xFF:
        raise CommandError(f"Mode value {value:#x} does not fit in one byte")
    return value


class Commands:
    """Pure builders for P-touch raster commands."""

    @staticmethod
    def invalidate(repeat: int) -> bytes:
        """
        Build ``repeat`` invalidate bytes.

        CommandBuilder.invalidate sends these one byte per write.
        """
        if repeat < 0:
            raise InvalidRepeatCount(f"Repeat count must be >= 0, got {repeat}")
        return INVALIDATE * repeat

    @staticmethod
    def initialize() -> bytes:
        """Reset mode settings. Also cancels printing."""
        return INITIALIZE

    @staticmethod
    def status_information_request() -> bytes:
        """Request a 32-byte status reply."""
        return STATUS_INFORMATION_REQUEST

    @staticmethod
    def switch_dynamic_command_mode(mode: DynamicCommandMode) -> bytes:
        """Switch command mode until the printer is turned off."""
        return SWITCH_DYNAMIC_COMMAND_MODE + bytes([_mode_byte(mode)])

    @staticmethod
    def print_information(info: PrintInformation) -> bytes:
        """
        Build the print information command (opcode + 10 bytes).

        Parameter Block:
            0       Flags | RECOVER
            1       Media type (if KIND)
            2       Media width (if WIDTH)
            3       Media length (if LENGTH)
            4-7     Raster number, little-endian (if any media field)
            8       0 = starting page, 1 = other pages
            9       Reserved (0)

        Raises:
            InvalidMediaType: KIND is set and media_type is not printable
            InvalidMediaWidth: media_width outside (0, 256]
            InvalidMediaLength: media_length outside (0, 256]
            InvalidRasterNumber: raster_number outside (0, 0xFFFFFFFF]
        """
        flags = PrintInformationFlag(int(info.flags) & 0xFF)

        if flags & PrintInformationFlag.KIND and not MediaType(int(info.media_type)).is_valid():
            raise InvalidMediaType(f"Invalid media type: {int(info.media_type):#04x}")
        if not 0 < info.media_width <= MAX_MEDIA_WIDTH:
            raise InvalidMediaWidth(f"Invalid media width: {info.media_width}")
        if not 0 < info.media_length <= MAX_MEDIA_LENGTH:
            raise InvalidMediaLength(f"Invalid media length: {info.media_length}")
        if not 0 < info.raster_number <= MAX_RASTER_NUMBER:
            raise InvalidRasterNumber(f"Invalid raster number: {info.raster_number}")

        block = bytearray(10)
        block[0] = flags | PrintInformationFlag.RECOVER
        if flags & PrintInformationFlag.KIND:
            block[1] = int(info.media_type)
        # A width or length of 256 wraps to 0 in the single-byte field
        if flags & PrintInformationFlag.WIDTH:
            block[2] = int(info.media_width) & 0xFF
        if flags & PrintInformationFlag.LENGTH:
            block[3] = int(info.media_length) & 0xFF
        if flags & _MEDIA_FIELDS:
            struct.pack_into("<I", block, 4, info.raster_number)
        block[8] = 0 if info.starting_page else 1
        block[9] = 0

        return PRINT_INFORMATION + bytes(block)

    @staticmethod
    def various_mode_settings(mode: VariousMode) -> bytes:
        return VARIOUS_MODE_SETTINGS + bytes([_mode_byte(mode)])

    @staticmethod
    def advanced_mode_settings(mode: AdvancedMode) -> bytes:
        return ADVANCED_MODE_SETTINGS + bytes([_mode_byte(mode)])

    @staticmethod
    def specify_margin_amount(dots: int) -> bytes:
        """
        Set the feed margin in dots.

        Raises:
            MarginAmountUnacceptable: dots outside [0, 0xFFFF]
        """
        if not 0 <= dots <= MAX_MARGIN_DOTS:
            raise MarginAmountUnacceptable(f"Margin amount unacceptable: {dots} dots")
        return SPECIFY_MARGIN_AMOUNT + struct.pack("<H", dots)

    @staticmethod
    def select_compression_mode(mode: CompressionMode) -> bytes:
        """Select compression for subsequent raster graphics transfers."""
        return SELECT_COMPRESSION_MODE + bytes([_mode_byte(mode)])

    @staticmethod
    def raster_graphics_transfer(data: Union[bytes, bytearray, memoryview]) -> bytes:
        """
        Build a raster line transfer: opcode, 16-bit length, data.

        Raises:
            DataTooLong: More than 0xFFFF bytes of data
        """
        if len(data) > MAX_RASTER_DATA:
            raise DataTooLong(f"Raster data too long: {len(data)} bytes (max {MAX_RASTER_DATA})")
        return RASTER_GRAPHICS_TRANSFER + struct.pack("<H", len(data)) + bytes(data)

    @staticmethod
    def zero_raster_graphics() -> bytes:
        """Fill one raster line with blank data."""
        return ZERO_RASTER_GRAPHICS

    @staticmethod
    def print_page() -> bytes:
        """Print command for the end of every page except the last."""
        return PRINT

    @staticmethod
    def print_with_feeding() -> bytes:
        """Print command for the end of the last page."""
        return PRINT_WITH_FEEDING


def _preview(data: bytes) -> str:
    return data.hex() if len(data) < 50 else data[:50].hex() + "..."


class CommandBuilder:
    """
    Writes raster commands to a transport.

    Each method writes one complete command, or raises before writing if
    a parameter is rejected. Transport errors propagate unchanged; after
    one, send initialize() before retrying.
    """

    def __init__(self, transport):
        """
        Args:
            transport: Object with a blocking ``write(bytes)`` method
        """
        self.transport = transport

    def _send(self, data: bytes) -> None:
        logger.debug("TX %d bytes: %s", len(data), _preview(data))
        self.transport.write(data)

    def invalidate(self, repeat: int) -> None:
        """
        Send ``repeat`` zero bytes, one write per byte.

        Used to flush a receiver that was stopped mid-command; follow with
        initialize() to return to the receiving state.
        """
        if repeat < 0:
            raise InvalidRepeatCount(f"Repeat count must be >= 0, got {repeat}")
        logger.debug("TX invalidate x%d", repeat)
        for _ in range(repeat):
            self.transport.write(INVALIDATE)

    def initialize(self) -> None:
        self._send(Commands.initialize())

    def status_information_request(self) -> None:
        """Request status. The caller reads the 32-byte reply."""
        self._send(Commands.status_information_request())

    def switch_dynamic_command_mode(self, mode: DynamicCommandMode) -> None:
        self._send(Commands.switch_dynamic_command_mode(mode))

    def print_information_command(self, info: PrintInformation) -> None:
        self._send(Commands.print_information(info))

    def various_mode_settings(self, mode: VariousMode) -> None:
        self._send(Commands.various_mode_settings(mode))

    def advanced_mode_settings(self, mode: AdvancedMode) -> None:
        self._send(Commands.advanced_mode_settings(mode))

    def specify_margin_amount(self, dots: int) -> None:
        self._send(Commands.specify_margin_amount(dots))

    def select_compression_mode(self, mode: CompressionMode) -> None:
        self._send(Commands.select_compression_mode(mode))

    def raster_graphics_transfer(self, data: Union[bytes, bytearray, memoryview]) -> None:
        self._send(Commands.raster_graphics_transfer(data))

    def zero_raster_graphics(self) -> None:
        self._send(Commands.zero_raster_graphics())

    def print_page(self) -> None:
        self._send(Commands.print_page())

    def print_with_feeding(self) -> None:
        self._send(Commands.print_with_feeding())
