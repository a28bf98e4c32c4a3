"""
Status Information Decoder for P-touch printers.

The printer answers a status information request (ESC i S) with a fixed
32-byte packet. Only the fields below are decoded; all other bytes are
reserved and ignored.

Packet Structure:
    Offset  Length  Field
    0-3     4       Print head mark, size, fixed values (ignored)
    4       1       Model code
    5-7     3       Reserved
    8-9     2       Error information (little-endian bitmask)
    10      1       Media width (mm)
    11      1       Media type
    12-16   5       Reserved
    17      1       Media length
    18      1       Status type
    19-21   3       Phase type / phase number (ignored)
    22      1       Notification number
    23-31   9       Reserved
"""

import logging
import struct
from dataclasses import dataclass
from enum import IntFlag

from .commands import CommandBuilder
from .errors import DataTooShort
from .media import Media, MediaRegistry, MediaType, MediaWidth, OpenIntEnum, recognize_media
from .transport import Transport
from .units import DEFAULT_DPI

logger = logging.getLogger(__name__)

STATUS_PACKET_SIZE = 32


class ModelCode(OpenIntEnum):
    """Model code byte (status offset 4)."""

    PT_H500 = ord("d")
    PT_E500 = ord("e")
    PT_P700 = ord("g")

    @property
    def display_name(self) -> str:
        return _MODEL_NAMES.get(self, "unknown")

    @property
    def dpi(self) -> float:
        return DEFAULT_DPI

    @property
    def total_dots(self) -> int:
        """Print head width in dots."""
        return 128


_MODEL_NAMES = {
    ModelCode.PT_H500: "PT-H500",
    ModelCode.PT_E500: "PT-E500",
    ModelCode.PT_P700: "PT-P700",
}


class ErrorInformation(IntFlag):
    """Error bitmask (status offsets 8-9). Undeclared bits are kept."""

    NO_ERROR = 0
    NO_MEDIA = 1 << 0
    CUTTER_JAM = 1 << 2
    WEAK_BATTERIES = 1 << 3
    HIGH_VOLTAGE_ADAPTER = 1 << 6
    WRONG_MEDIA = 1 << 8
    COVER_OPEN = 1 << 12
    OVERHEATING = 1 << 13

    @property
    def description(self) -> str:
        return _ERROR_NAMES.get(self, "Unknown")


_ERROR_NAMES = {
    ErrorInformation.NO_ERROR: "No error",
    ErrorInformation.NO_MEDIA: "No media",
    ErrorInformation.CUTTER_JAM: "Cutter jam",
    ErrorInformation.WEAK_BATTERIES: "Weak batteries",
    ErrorInformation.HIGH_VOLTAGE_ADAPTER: "High-voltage adapter",
    ErrorInformation.WRONG_MEDIA: "Wrong media",
    ErrorInformation.COVER_OPEN: "Cover open",
    ErrorInformation.OVERHEATING: "Overheating",
}


class StatusType(OpenIntEnum):
    """Status type byte (status offset 18)."""

    REPLY_TO_STATUS_REQUEST = 0x00
    PRINTING_COMPLETED = 0x01
    ERROR_OCCURRED = 0x02
    EXIT_IF_MODE = 0x03  # Not used
    TURNED_OFF = 0x04
    NOTIFICATION = 0x05
    PHASE_CHANGE = 0x06

    @property
    def description(self) -> str:
        if self in _STATUS_NAMES:
            return _STATUS_NAMES[self]
        if 0x07 <= self <= 0x20:
            return "(Not used)"
        return "(Reserved)"


_STATUS_NAMES = {
    StatusType.REPLY_TO_STATUS_REQUEST: "Reply to status request",
    StatusType.PRINTING_COMPLETED: "Printing completed",
    StatusType.ERROR_OCCURRED: "Error occurred",
    StatusType.EXIT_IF_MODE: "Exit IF mode",
    StatusType.TURNED_OFF: "Turned off",
    StatusType.NOTIFICATION: "Notification",
    StatusType.PHASE_CHANGE: "Phase change",
}


class NotificationNumber(OpenIntEnum):
    """Notification number byte (status offset 22)."""

    NOT_AVAILABLE = 0x00
    COVER_OPEN = 0x01
    COVER_CLOSED = 0x02


@dataclass(frozen=True)
class StatusInformation:
    """Decoded 32-byte status reply. Holds no reference to the source bytes."""

    model: ModelCode
    error_information: ErrorInformation
    media_width: MediaWidth
    media_type: MediaType
    media_length: int
    status_type: StatusType
    notification: NotificationNumber

    @classmethod
    def parse(cls, data: bytes) -> "StatusInformation":
        """
        Parse status reply bytes.

        Args:
            data: Raw reply (at least 32 bytes; anything past 32 is ignored)

        Returns:
            StatusInformation instance

        Raises:
            DataTooShort: If fewer than 32 bytes were supplied
        """
        if len(data) < STATUS_PACKET_SIZE:
            raise DataTooShort(
                f"Status information needs {STATUS_PACKET_SIZE} bytes, got {len(data)}"
            )

        (error_bits,) = struct.unpack_from("<H", data, 8)

        return cls(
            model=ModelCode(data[4]),
            error_information=ErrorInformation(error_bits),
            media_width=MediaWidth(data[10]),
            media_type=MediaType(data[11]),
            media_length=data[17],
            status_type=StatusType(data[18]),
            notification=NotificationNumber(data[22]),
        )

    @property
    def media(self) -> Media:
        """Canonical media from the built-in recognition table."""
        return recognize_media(self.media_type, self.media_width)

    def media_in(self, registry: MediaRegistry) -> Media:
        """Canonical media, including custom media registered on ``registry``."""
        return registry.lookup(self.media_type, self.media_width)

    @property
    def errors(self) -> list[ErrorInformation]:
        """Individual error flags that are set."""
        return [
            flag
            for flag in ErrorInformation
            if flag and self.error_information & flag == flag
        ]

    @property
    def has_errors(self) -> bool:
        return self.error_information != ErrorInformation.NO_ERROR

    def __str__(self) -> str:
        errors = ", ".join(e.description for e in self.errors) or "None"
        return (
            f"StatusInformation(\n"
            f"  model={self.model.display_name},\n"
            f"  errors={errors},\n"
            f"  media_type={self.media_type.description},\n"
            f"  media_width={self.media_width.description},\n"
            f"  media_length={self.media_length},\n"
            f"  status={self.status_type.description},\n"
            f"  notification={self.notification.name}\n"
            f")"
        )


def read_status_information(data: bytes) -> StatusInformation:
    """Decode a 32-byte status reply. See StatusInformation.parse."""
    return StatusInformation.parse(data)


def query_status_information(transport: Transport) -> StatusInformation:
    """
    Request status from the printer and decode the reply.

    Raises:
        OSError: Or the transport's own error type, on write/read failure
        ShortReadError: If the transport closes before 32 bytes arrive
    """
    CommandBuilder(transport).status_information_request()
    reply = transport.read_exact(STATUS_PACKET_SIZE)
    logger.debug("Status reply: %s", reply.hex())
    return StatusInformation.parse(reply)
