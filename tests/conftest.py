"""
Pytest configuration for ptraster tests.

Provides an in-memory transport and status packet builder.
"""

import pytest

from ptraster.errors import ShortReadError


class RecordingTransport:
    """Transport that records every write call and replays queued replies."""

    def __init__(self, replies=None, fail_after=None):
        self.writes = []
        self.replies = bytearray(b"".join(replies or []))
        self.fail_after = fail_after

    def write(self, data):
        if self.fail_after is not None and len(self.writes) >= self.fail_after:
            raise OSError("write failed")
        self.writes.append(bytes(data))

    def read_exact(self, size):
        if len(self.replies) < size:
            received = len(self.replies)
            self.replies.clear()
            raise ShortReadError(size, received)
        data = bytes(self.replies[:size])
        del self.replies[:size]
        return data

    @property
    def data(self):
        return b"".join(self.writes)


def build_status(
    model=ord("g"),
    errors=0,
    media_width=24,
    media_type=0x01,
    media_length=0,
    status_type=0x00,
    notification=0x00,
):
    """Build a 32-byte status packet with the decoded fields set."""
    packet = bytearray(32)
    packet[0] = 0x80
    packet[1] = 0x20
    packet[2] = ord("B")
    packet[3] = ord("0")
    packet[4] = model
    packet[8] = errors & 0xFF
    packet[9] = (errors >> 8) & 0xFF
    packet[10] = media_width
    packet[11] = media_type
    packet[17] = media_length
    packet[18] = status_type
    packet[22] = notification
    return bytes(packet)


@pytest.fixture
def transport():
    """Provide an empty recording transport."""
    return RecordingTransport()


@pytest.fixture
def status_packet():
    """Provide the status packet builder."""
    return build_status
