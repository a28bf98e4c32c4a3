"""
High-Level P-touch Printer Interface.

Drives a complete print job over a transport: reset, status check,
raster mode, print information, mode settings, raster transfer and the
final print command.
"""

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence, Union

from PIL import Image

from .commands import (
    AdvancedMode,
    CommandBuilder,
    CompressionMode,
    DynamicCommandMode,
    PrintInformation,
    PrintInformationFlag,
    VariousMode,
)
from .errors import ImageError, ImageSizeError, PrintError
from .image import create_test_pattern, fit_to_media, media_window
from .media import Media, MediaInfo, MediaRegistry, MediaType, MediaWidth
from .raster import RasterEncodeConfig, RasterEncoder
from .status import ModelCode, StatusInformation, query_status_information

logger = logging.getLogger(__name__)

# Image size limits to prevent memory exhaustion from malicious/malformed images
MAX_IMAGE_DIMENSION = 10000  # Maximum width or height in pixels
MAX_IMAGE_PIXELS = 10_000_000  # Maximum total pixels (10 megapixels)

ImageSource = Union[str, Path, bytes, Image.Image]


@dataclass
class _Job:
    """Printer state resolved at the start of a job."""

    status: Optional[StatusInformation]
    model: ModelCode
    info: MediaInfo


class PTouchPrinter:
    """
    High-level interface to a P-touch printer in raster mode.

    Images are printed column by column: image width is label length,
    image height runs across the 128-dot head. Bright pixels (luminance
    above 127) are printed. With ``fit=True`` each image is scaled onto
    the printable rows of the installed media; otherwise image row y
    prints on head dot y and rows inside the page margins are blank.
    """

    # Zero bytes sent before initialize to flush a half-received command
    DEFAULT_INVALIDATE_BYTES = 100

    # Minimum feed margin (2mm at 180 DPI)
    DEFAULT_FEED_MARGIN_DOTS = 14

    def __init__(self, transport, registry: Optional[MediaRegistry] = None):
        """
        Args:
            transport: Byte transport with ``write`` and ``read_exact``
            registry: Media table; a registry with the built-in media by default
        """
        self.transport = transport
        self.registry = registry if registry is not None else MediaRegistry()
        self.commands = CommandBuilder(transport)

    def reset(self, invalidate_bytes: int = DEFAULT_INVALIDATE_BYTES) -> None:
        """Flush the receiver and initialize mode settings."""
        self.commands.invalidate(invalidate_bytes)
        self.commands.initialize()

    def get_status(self) -> StatusInformation:
        """Query and decode printer status."""
        return query_status_information(self.transport)

    def load_image(self, image: ImageSource) -> Image.Image:
        """
        Load and validate an image for printing.

        Args:
            image: Image source (path, bytes, or PIL Image)

        Returns:
            PIL Image object

        Raises:
            ImageError: If image cannot be loaded or is invalid or empty
            ImageSizeError: If image dimensions exceed safety limits
        """
        try:
            if isinstance(image, (str, Path)):
                path = Path(image)
                if not path.exists():
                    raise ImageError(f"Image file not found: {path}")
                img = Image.open(path)
            elif isinstance(image, bytes):
                img = Image.open(BytesIO(image))
            elif isinstance(image, Image.Image):
                img = image
            else:
                raise ImageError(f"Unsupported image type: {type(image)}")
        except ImageError:
            raise
        except Exception as e:
            raise ImageError(f"Failed to load image: {e}") from e

        if img.width == 0 or img.height == 0:
            raise ImageError(f"Image is empty ({img.width}x{img.height})")

        if img.width > MAX_IMAGE_DIMENSION or img.height > MAX_IMAGE_DIMENSION:
            raise ImageSizeError(
                f"Image dimensions ({img.width}x{img.height}) exceed maximum "
                f"({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"
            )
        if img.width * img.height > MAX_IMAGE_PIXELS:
            raise ImageSizeError(
                f"Image pixel count ({img.width * img.height:,}) exceeds "
                f"maximum ({MAX_IMAGE_PIXELS:,})"
            )

        return img

    def print_image(self, image: ImageSource, **options) -> Optional[StatusInformation]:
        """Print a single page. See print_images for options."""
        return self.print_images([image], **options)

    def print_images(
        self,
        images: Sequence[ImageSource],
        media: Optional[Union[Media, int]] = None,
        margin: tuple[float, float] = (0.0, 0.0),
        feed_margin_dots: int = DEFAULT_FEED_MARGIN_DOTS,
        auto_cut: bool = True,
        mirror: bool = False,
        chain: bool = False,
        check_status: bool = True,
        fit: bool = False,
    ) -> Optional[StatusInformation]:
        """
        Print one page per image.

        Args:
            images: Image sources, one page each
            media: Installed media; detected from status when omitted
            margin: Extra (left, right) margins across the head in mm
            feed_margin_dots: Feed margin before and after each page
            auto_cut: Cut after each page
            mirror: Mirror printing
            chain: Leave the last page uncut and unfed
            check_status: Query status first and refuse to print on errors.
                Requires a transport that can read; ``media`` is required
                when disabled.
            fit: Scale each image across the media's printable rows.
                Without it, image row y prints on head dot y.

        Returns:
            The status read before printing, or None if not checked

        Raises:
            PrintError: Printer reports an error or no usable media
            ImageError: An image cannot be loaded
            CommandError: A command parameter is out of range
        """
        if not images:
            raise ValueError("No images to print")

        pages = [self.load_image(image) for image in images]

        job = self._start_job(media, check_status)
        if fit:
            pages = [fit_to_media(page, job.info, job.model.total_dots, job.model.dpi) for page in pages]

        self._print_pages(
            job, pages,
            margin=margin,
            feed_margin_dots=feed_margin_dots,
            auto_cut=auto_cut,
            mirror=mirror,
            chain=chain,
        )
        return job.status

    def print_test_pattern(
        self,
        length: int = 256,
        media: Optional[Union[Media, int]] = None,
        check_status: bool = True,
        **options,
    ) -> Optional[StatusInformation]:
        """
        Print a border/diagonals pattern sized to the installed media.

        Args:
            length: Pattern length in raster lines
            media, check_status: As for print_images
            **options: margin, feed_margin_dots, auto_cut, mirror, chain

        Returns:
            The status read before printing, or None if not checked
        """
        if length <= 0:
            raise ValueError(f"Pattern length must be positive, got {length}")

        job = self._start_job(media, check_status)
        _, rows = media_window(job.info, job.model.total_dots, job.model.dpi)
        pattern = create_test_pattern(width=length, height=rows)
        page = fit_to_media(pattern, job.info, job.model.total_dots, job.model.dpi)

        self._print_pages(job, [page], **options)
        return job.status

    def _start_job(self, media: Optional[Union[Media, int]], check_status: bool) -> _Job:
        """Reset, check status and resolve the media to print on."""
        self.reset()

        status: Optional[StatusInformation] = None
        model = ModelCode.PT_P700
        if check_status:
            status = self.get_status()
            logger.debug("Printer status: %s", status)
            if status.has_errors:
                errors = ", ".join(e.description for e in status.errors)
                raise PrintError(f"Printer reports errors: {errors}")
            if status.media_width == MediaWidth.NO_TAPE:
                raise PrintError("No tape installed")
            model = status.model
            if media is None:
                media = status.media_in(self.registry)
        elif media is None:
            raise PrintError("Media must be given when status is not checked")

        info = self.registry.info(media)
        if media == Media.UNKNOWN:
            logger.warning("Unknown media, printing without page margins")
        return _Job(status=status, model=model, info=info)

    def _print_pages(
        self,
        job: _Job,
        pages: Sequence[Image.Image],
        margin: tuple[float, float] = (0.0, 0.0),
        feed_margin_dots: int = DEFAULT_FEED_MARGIN_DOTS,
        auto_cut: bool = True,
        mirror: bool = False,
        chain: bool = False,
    ) -> None:
        logger.info("Printing %d page(s) on %s", len(pages), job.info.name)

        config = RasterEncodeConfig(model=job.model, media_info=job.info)

        self.commands.switch_dynamic_command_mode(DynamicCommandMode.RASTER)

        for index, page in enumerate(pages):
            encoder = RasterEncoder(page, config)
            encoder.set_margin(*margin)

            self.commands.print_information_command(
                self._print_information(job.status, job.info, encoder.raster_number, index == 0)
            )

            various = VariousMode.NONE
            if auto_cut:
                various |= VariousMode.AUTO_CUT
            if mirror:
                various |= VariousMode.MIRROR_PRINTING
            self.commands.various_mode_settings(various)

            advanced = AdvancedMode.CHAIN_PRINTING if chain else AdvancedMode.NO_CHAIN_PRINTING
            self.commands.advanced_mode_settings(advanced)

            self.commands.specify_margin_amount(feed_margin_dots)
            self.commands.select_compression_mode(CompressionMode.NO_COMPRESSION)

            encoder.transfer(self.transport)

            if index == len(pages) - 1:
                self.commands.print_with_feeding()
            else:
                self.commands.print_page()

    @staticmethod
    def _print_information(
        status: Optional[StatusInformation],
        info: MediaInfo,
        raster_number: int,
        starting_page: bool,
    ) -> PrintInformation:
        if status is None:
            # 3.5mm tape is reported as 4
            return PrintInformation(
                flags=PrintInformationFlag.WIDTH,
                media_width=int(info.size + 0.5),
                raster_number=raster_number,
                starting_page=starting_page,
            )

        flags = PrintInformationFlag.WIDTH
        if MediaType(status.media_type).is_valid():
            flags |= PrintInformationFlag.KIND
        # Continuous tape reports length 0; the field is only sent for die-cut media
        media_length = status.media_length
        if media_length:
            flags |= PrintInformationFlag.LENGTH
        else:
            media_length = 1

        return PrintInformation(
            flags=flags,
            media_type=status.media_type,
            media_width=status.media_width,
            media_length=media_length,
            raster_number=raster_number,
            starting_page=starting_page,
        )
