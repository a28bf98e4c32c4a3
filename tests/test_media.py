"""Tests for the media geometry table."""

import threading

import pytest

from ptraster.media import (
    BUILTIN_MEDIA_INFO,
    UNKNOWN_MEDIA_INFO,
    Media,
    MediaInfo,
    MediaRegistry,
    MediaType,
    MediaWidth,
    ReadWriteLock,
    recognize_media,
)

# Head-width margin table at 180 DPI
EXPECTED_MARGIN_DOTS = {
    Media.TZE_TAPE_3_5: 52,
    Media.TZE_TAPE_6: 48,
    Media.TZE_TAPE_9: 39,
    Media.TZE_TAPE_12: 29,
    Media.TZE_TAPE_18: 8,
    Media.TZE_TAPE_24: 0,
    Media.HEAT_SHRINK_TUBE_6: 50,
    Media.HEAT_SHRINK_TUBE_9: 40,
    Media.HEAT_SHRINK_TUBE_12: 31,
    Media.HEAT_SHRINK_TUBE_18: 11,
    Media.HEAT_SHRINK_TUBE_24: 0,
}

EXPECTED_PRINT_AREA_DOTS = {
    Media.TZE_TAPE_3_5: 24,
    Media.TZE_TAPE_6: 32,
    Media.TZE_TAPE_9: 50,
    Media.TZE_TAPE_12: 70,
    Media.TZE_TAPE_18: 112,
    Media.TZE_TAPE_24: 128,
    Media.HEAT_SHRINK_TUBE_6: 28,
    Media.HEAT_SHRINK_TUBE_9: 48,
    Media.HEAT_SHRINK_TUBE_12: 66,
    Media.HEAT_SHRINK_TUBE_18: 106,
    Media.HEAT_SHRINK_TUBE_24: 128,
}


class TestRecognizeMedia:
    """Test (media type, media width) recognition."""

    @pytest.mark.parametrize("media_type", [MediaType.LAMINATED_TAPE, MediaType.NON_LAMINATED_TAPE])
    def test_tape(self, media_type):
        assert recognize_media(media_type, MediaWidth.MM_3_5) == Media.TZE_TAPE_3_5
        assert recognize_media(media_type, MediaWidth.MM_12) == Media.TZE_TAPE_12
        assert recognize_media(media_type, MediaWidth.MM_24) == Media.TZE_TAPE_24

    def test_tube(self):
        assert recognize_media(MediaType.HEAT_SHRINK_TUBE, MediaWidth.MM_6) == Media.HEAT_SHRINK_TUBE_6
        assert recognize_media(MediaType.HEAT_SHRINK_TUBE, MediaWidth.MM_24) == Media.HEAT_SHRINK_TUBE_24

    def test_no_3_5mm_tube(self):
        assert recognize_media(MediaType.HEAT_SHRINK_TUBE, MediaWidth.MM_3_5) == Media.UNKNOWN

    def test_unrecognized(self):
        assert recognize_media(MediaType.NO_MEDIA, MediaWidth.NO_TAPE) == Media.UNKNOWN
        assert recognize_media(MediaType.INCOMPATIBLE_TAPE, MediaWidth.MM_12) == Media.UNKNOWN
        assert recognize_media(0x01, 13) == Media.UNKNOWN

    def test_raw_ints(self):
        assert recognize_media(0x01, 9) == Media.TZE_TAPE_9


class TestBuiltinGeometry:
    """Test the built-in geometry reproduces the dot table."""

    @pytest.mark.parametrize("media,dots", EXPECTED_MARGIN_DOTS.items())
    def test_page_margin_dots(self, media, dots):
        assert BUILTIN_MEDIA_INFO[media].page_margin_dots() == dots

    @pytest.mark.parametrize("media,dots", EXPECTED_PRINT_AREA_DOTS.items())
    def test_print_area_dots(self, media, dots):
        assert BUILTIN_MEDIA_INFO[media].print_area_dots() == dots

    @pytest.mark.parametrize("media", list(EXPECTED_MARGIN_DOTS))
    def test_margins_and_area_fill_head(self, media):
        info = BUILTIN_MEDIA_INFO[media]
        assert 2 * info.page_margin_dots() + info.print_area_dots() == 128

    def test_valid_media_types(self):
        assert MediaType.LAMINATED_TAPE.is_valid()
        assert MediaType.NON_LAMINATED_TAPE.is_valid()
        assert MediaType.HEAT_SHRINK_TUBE.is_valid()
        assert not MediaType.NO_MEDIA.is_valid()
        assert not MediaType.INCOMPATIBLE_TAPE.is_valid()
        assert not MediaType(0x42).is_valid()

    def test_width_descriptions(self):
        assert MediaWidth.MM_3_5.description == "3.5mm"
        assert MediaWidth.MM_18.description == "18mm"
        assert MediaWidth.NO_TAPE.description == "No tape"
        assert MediaWidth(13).description == "Unknown"


class TestMediaRegistry:
    """Test lookup and registration."""

    @pytest.fixture
    def registry(self):
        return MediaRegistry()

    @pytest.fixture
    def custom_info(self):
        return MediaInfo(
            name="Acme 15mm tape",
            size=15.0,
            print_area=12.0,
            page_margin=3.0,
            min_margin=2.0,
            max_margin=100.0,
            min_length=5.0,
            max_length=500.0,
        )

    def test_builtin_lookup(self, registry):
        assert registry.lookup(MediaType.LAMINATED_TAPE, MediaWidth.MM_18) == Media.TZE_TAPE_18
        assert registry.info(Media.TZE_TAPE_18) == BUILTIN_MEDIA_INFO[Media.TZE_TAPE_18]

    def test_unknown_lookup_returns_sentinel(self, registry):
        assert registry.lookup(0x42, 42) == Media.UNKNOWN
        assert registry.info(Media.UNKNOWN) is UNKNOWN_MEDIA_INFO
        assert registry.info(12345) is UNKNOWN_MEDIA_INFO

    def test_unknown_sentinel_has_zero_margin(self):
        assert UNKNOWN_MEDIA_INFO.page_margin_dots() == 0

    def test_register_roundtrip(self, registry, custom_info):
        registry.register(9001, custom_info)
        assert registry.info(9001) is custom_info
        assert registry.info(Media(9001)) is custom_info

    def test_register_replaces(self, registry, custom_info):
        registry.register(Media.TZE_TAPE_12, custom_info)
        assert registry.info(Media.TZE_TAPE_12) is custom_info

    def test_register_with_recognition_key(self, registry, custom_info):
        registry.register(9001, custom_info, media_type=MediaType.LAMINATED_TAPE, media_width=15)
        assert registry.lookup(MediaType.LAMINATED_TAPE, 15) == 9001
        assert registry.lookup(0x01, 15).name == "CUSTOM_9001"

    def test_register_requires_type_and_width_together(self, registry, custom_info):
        with pytest.raises(ValueError):
            registry.register(9001, custom_info, media_type=0x01)

    def test_unregister(self, registry, custom_info):
        registry.register(9001, custom_info, media_type=0x01, media_width=15)

        assert registry.unregister(9001) is True
        assert registry.info(9001) is UNKNOWN_MEDIA_INFO
        assert registry.lookup(0x01, 15) == Media.UNKNOWN
        assert registry.unregister(9001) is False

    def test_media_list(self, registry, custom_info):
        registry.register(9001, custom_info)
        media = registry.media()
        assert media[0] == Media.TZE_TAPE_6
        assert media[-1] == 9001
        assert len(media) == len(BUILTIN_MEDIA_INFO) + 1

    def test_empty_registry(self):
        registry = MediaRegistry(include_builtin=False)
        assert registry.media() == []
        assert registry.lookup(0x01, 24) == Media.UNKNOWN

    def test_registries_are_independent(self, custom_info):
        first = MediaRegistry()
        second = MediaRegistry()
        first.register(9001, custom_info)
        assert second.info(9001) is UNKNOWN_MEDIA_INFO

    def test_concurrent_lookups_and_registrations(self, registry):
        """Readers and writers interleave without errors or torn state."""
        errors = []

        def reader():
            try:
                for _ in range(500):
                    registry.lookup(0x01, 24)
                    registry.info(Media.TZE_TAPE_24)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        def writer(base):
            try:
                for i in range(50):
                    info = MediaInfo(f"custom {base + i}", 10.0, 8.0, 1.0)
                    registry.register(base + i, info, media_type=0x01, media_width=100 + i)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        threads += [threading.Thread(target=writer, args=(1000 * n,)) for n in (1, 2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(registry.media()) == len(BUILTIN_MEDIA_INFO) + 100


class TestReadWriteLock:
    """Test reader/writer exclusion."""

    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=5)

        def read():
            with lock.read():
                inside.wait()

        threads = [threading.Thread(target=read) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert not inside.broken

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []
        writer_in = threading.Event()
        release = threading.Event()

        def write():
            with lock.write():
                writer_in.set()
                release.wait(5)
                events.append("write done")

        def read():
            with lock.read():
                events.append("read")

        w = threading.Thread(target=write)
        w.start()
        writer_in.wait(5)
        r = threading.Thread(target=read)
        r.start()
        r.join(timeout=0.1)
        release.set()
        w.join(timeout=5)
        r.join(timeout=5)

        assert events == ["write done", "read"]
