"""Tests for status information decoding."""

import pytest

from ptraster.errors import DataTooShort, ShortReadError, StatusError
from ptraster.media import Media, MediaInfo, MediaRegistry, MediaType, MediaWidth
from ptraster.status import (
    ErrorInformation,
    ModelCode,
    NotificationNumber,
    StatusInformation,
    StatusType,
    query_status_information,
    read_status_information,
)

from conftest import RecordingTransport, build_status


class TestReadStatusInformation:
    """Test decoding of the 32-byte status packet."""

    def test_too_short(self):
        with pytest.raises(DataTooShort):
            read_status_information(bytes(31))

    def test_empty(self):
        with pytest.raises(DataTooShort):
            read_status_information(b"")

    def test_too_short_is_status_error(self):
        assert issubclass(DataTooShort, StatusError)
        assert issubclass(DataTooShort, ValueError)

    def test_crafted_packet(self):
        """Every decoded field comes from its documented offset."""
        packet = bytearray(32)
        packet[4] = ord("e")
        packet[8] = 0x01
        packet[9] = 0x11
        packet[10] = 12
        packet[11] = 0x03
        packet[17] = 0x2A
        packet[18] = 0x05
        packet[22] = 0x02

        status = read_status_information(bytes(packet))

        assert status.model == ModelCode.PT_E500
        assert status.error_information == 0x1101
        assert status.media_width == MediaWidth.MM_12
        assert status.media_type == MediaType.NON_LAMINATED_TAPE
        assert status.media_length == 42
        assert status.status_type == StatusType.NOTIFICATION
        assert status.notification == NotificationNumber.COVER_CLOSED

    def test_reserved_bytes_ignored(self):
        """Garbage outside the decoded offsets does not affect the result."""
        clean = build_status()
        noisy = bytearray(b"\xff" * 32)
        for offset in (4, 8, 9, 10, 11, 17, 18, 22):
            noisy[offset] = clean[offset]

        assert read_status_information(bytes(noisy)) == read_status_information(clean)

    def test_extra_bytes_ignored(self):
        status = read_status_information(build_status(media_width=9) + b"\xff" * 8)
        assert status.media_width == MediaWidth.MM_9

    def test_error_bitmask_little_endian(self):
        status = read_status_information(build_status(errors=0x3001))
        assert status.error_information & ErrorInformation.NO_MEDIA
        assert status.error_information & ErrorInformation.COVER_OPEN
        assert status.error_information & ErrorInformation.OVERHEATING
        assert not status.error_information & ErrorInformation.CUTTER_JAM

    def test_parse_is_read_status_information(self):
        packet = build_status()
        assert StatusInformation.parse(packet) == read_status_information(packet)

    def test_status_is_immutable(self):
        status = read_status_information(build_status())
        with pytest.raises(AttributeError):
            status.media_length = 5


class TestUnknownValues:
    """Test that undeclared byte values decode instead of failing."""

    def test_unknown_model(self):
        status = read_status_information(build_status(model=0x7A))
        assert status.model == 0x7A
        assert not status.model.is_known
        assert status.model.display_name == "unknown"
        assert status.model.total_dots == 128

    def test_unknown_media_type(self):
        status = read_status_information(build_status(media_type=0x42))
        assert status.media_type == 0x42
        assert status.media_type.description == "Unknown"
        assert status.media == Media.UNKNOWN

    def test_unknown_error_bits_kept(self):
        status = read_status_information(build_status(errors=0x0002))
        assert int(status.error_information) == 0x0002
        assert status.has_errors

    def test_unknown_status_type(self):
        assert StatusType(0x10).description == "(Not used)"
        assert StatusType(0x21).description == "(Reserved)"


class TestStatusHelpers:
    """Test derived status properties."""

    def test_media_recognition(self):
        status = read_status_information(build_status(media_type=0x11, media_width=18))
        assert status.media == Media.HEAT_SHRINK_TUBE_18

    def test_media_in_registry(self):
        registry = MediaRegistry()
        registry.register(9001, MediaInfo("Acme tape", 12.0, 9.9, 4.1), media_type=0x03, media_width=13)

        status = read_status_information(build_status(media_type=0x03, media_width=13))

        assert status.media == Media.UNKNOWN
        assert status.media_in(registry) == 9001

    def test_errors_list(self):
        status = read_status_information(build_status(errors=0x1004))
        assert status.errors == [ErrorInformation.CUTTER_JAM, ErrorInformation.COVER_OPEN]

    def test_no_errors(self):
        status = read_status_information(build_status())
        assert status.errors == []
        assert not status.has_errors

    def test_str(self):
        text = str(read_status_information(build_status(errors=0x0001)))
        assert "PT-P700" in text
        assert "No media" in text
        assert "24mm" in text


class TestQueryStatusInformation:
    """Test the request/reply round trip over a transport."""

    def test_sends_request_and_decodes(self):
        transport = RecordingTransport(replies=[build_status(media_width=6)])

        status = query_status_information(transport)

        assert transport.writes == [b"\x1b\x69\x53"]
        assert status.media_width == MediaWidth.MM_6
        assert status.media == Media.TZE_TAPE_6

    def test_short_reply(self):
        transport = RecordingTransport(replies=[bytes(20)])
        with pytest.raises(ShortReadError) as exc_info:
            query_status_information(transport)
        assert exc_info.value.expected == 32
        assert exc_info.value.received == 20
