"""
Byte transports for P-touch printers.

The codec only needs a blocking duplex stream: ``write`` sends every
byte or raises, ``read_exact`` returns exactly ``size`` bytes or raises.
Two adapters are provided:

- SerialTransport: pyserial port (Bluetooth SPP/RFCOMM, USB-serial)
- FileTransport: character device such as /dev/usb/lp0

Timeouts belong to the transport. There is no retry or reconnection.
"""

import logging
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

import serial

from .errors import ShortReadError

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600


@runtime_checkable
class Transport(Protocol):
    """Minimal duplex byte stream used by the codec."""

    def write(self, data: bytes) -> None:
        ...

    def read_exact(self, size: int) -> bytes:
        ...


class SerialTransport:
    """Transport over a pyserial port."""

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = 5.0,
        write_timeout: float = 5.0,
    ):
        """
        Open a serial port.

        Args:
            port: Device name (e.g. /dev/rfcomm0, /dev/cu.PT-P300BT, COM3)
            baudrate: Line speed; ignored by RFCOMM and USB CDC devices
            timeout: Read timeout in seconds
            write_timeout: Write timeout in seconds

        Raises:
            serial.SerialException: If the port cannot be opened
        """
        self.port = port
        self.serial = serial.Serial(
            port,
            baudrate,
            timeout=timeout,
            write_timeout=write_timeout,
        )
        logger.debug("Opened serial port %s at %d baud", port, baudrate)

    def write(self, data: bytes) -> None:
        written = self.serial.write(data)
        if written is not None and written != len(data):
            raise serial.SerialTimeoutException(
                f"Short write to {self.port}: {written}/{len(data)} bytes"
            )

    def read_exact(self, size: int) -> bytes:
        data = self.serial.read(size)
        if len(data) != size:
            raise ShortReadError(size, len(data))
        return data

    def close(self) -> None:
        if self.serial.is_open:
            self.serial.close()
            logger.debug("Closed serial port %s", self.port)

    def __enter__(self) -> "SerialTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FileTransport:
    """Transport over a character device or any binary file object."""

    def __init__(self, target: Union[str, Path, BinaryIO]):
        """
        Args:
            target: Device path (opened read/write, unbuffered) or an open
                binary file object, which is not closed by this transport
        """
        self._owns_file = isinstance(target, (str, Path))
        if self._owns_file:
            self.file: BinaryIO = open(target, "r+b", buffering=0)
            logger.debug("Opened device %s", target)
        else:
            self.file = target

    def write(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = self.file.write(view)
            if written is None:
                raise BlockingIOError("Device is not ready for writing")
            view = view[written:]

    def read_exact(self, size: int) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            chunk: Optional[bytes] = self.file.read(size - len(buf))
            if not chunk:
                raise ShortReadError(size, len(buf))
            buf.extend(chunk)
        return bytes(buf)

    def close(self) -> None:
        if self._owns_file and not self.file.closed:
            self.file.close()

    def __enter__(self) -> "FileTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_transport(device: str, baudrate: int = DEFAULT_BAUDRATE) -> Union[SerialTransport, FileTransport]:
    """
    Open the transport appropriate for a device path.

    USB printer class devices (/dev/usb/lp*) and regular files are
    opened directly; everything else is treated as a serial port.
    """
    path = Path(device)
    if device.startswith("/dev/usb/") or path.is_file():
        return FileTransport(path)
    return SerialTransport(device, baudrate=baudrate)
