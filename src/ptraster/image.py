"""
Image preparation for P-touch raster printing.

The raster encoder prints bright pixels and maps image rows onto head
dots, so a typical black-on-white label image has to be inverted and
placed inside the media's printable rows before printing.
"""

from typing import Optional

from PIL import Image, ImageDraw, ImageOps

from .media import MediaInfo
from .units import DEFAULT_DPI

# Print head height of every supported model
HEAD_DOTS = 128


def media_window(
    media_info: MediaInfo, total_dots: int = HEAD_DOTS, dpi: float = DEFAULT_DPI
) -> tuple[int, int]:
    """
    Head rows the media can carry ink on.

    Returns:
        (first row, number of rows). Media without geometry (unknown
        media) gets the whole head.
    """
    margin = media_info.page_margin_dots(dpi)
    rows = min(media_info.print_area_dots(dpi), total_dots - margin)
    if rows <= 0:
        return 0, total_dots
    return margin, rows


def prepare_image(
    image: Image.Image,
    height: Optional[int] = HEAD_DOTS,
    rotate: bool = False,
    invert: bool = True,
    threshold: int = 128,
) -> Image.Image:
    """
    Prepare an image for the raster encoder.

    Args:
        image: Source image
        height: Target height in pixels (dots across the head), or None
            to keep the size and let fit_to_media place it later
        rotate: Rotate 90 degrees first (portrait artwork)
        invert: Invert so dark artwork becomes ink
        threshold: Grayscale threshold for black/white conversion (0-255)

    Returns:
        Processed "L" image containing only 0 and 255
    """
    if image.mode != "L":
        image = image.convert("L")

    if rotate:
        image = image.rotate(90, expand=True)

    # Resize to the head height while maintaining aspect ratio
    if height is not None and image.height != height:
        ratio = height / image.height
        new_width = max(1, int(image.width * ratio))
        image = image.resize((new_width, height), Image.Resampling.LANCZOS)

    image = image.point(lambda x: 0 if x < threshold else 255)

    if invert:
        image = ImageOps.invert(image)

    return image


def fit_to_media(
    image: Image.Image,
    media_info: MediaInfo,
    total_dots: int = HEAD_DOTS,
    dpi: float = DEFAULT_DPI,
) -> Image.Image:
    """
    Scale an image across the media's printable rows.

    The image keeps its aspect ratio and is pasted at the page margin on
    a blank canvas as tall as the head, so its first row lands on the
    first printable dot.

    Args:
        image: Image in printer polarity (bright = ink)
        media_info: Installed media geometry
        total_dots: Print head height in dots
        dpi: Head resolution

    Returns:
        "L" image ``total_dots`` high
    """
    top, rows = media_window(media_info, total_dots, dpi)

    if image.mode != "L":
        image = image.convert("L")

    if image.height != rows:
        new_width = max(1, int(image.width * rows / image.height))
        image = image.resize((new_width, rows), Image.Resampling.LANCZOS)

    canvas = Image.new("L", (image.width, total_dots), color=0)
    canvas.paste(image, (0, top))
    return canvas


def create_test_pattern(width: int = 256, height: int = HEAD_DOTS) -> Image.Image:
    """
    Create a test pattern in printer polarity (white = ink).

    A border, both diagonals and a tick every 16 columns.
    """
    img = Image.new("L", (width, height), color=0)
    draw = ImageDraw.Draw(img)

    draw.rectangle([0, 0, width - 1, height - 1], outline=255)
    draw.line([(0, 0), (width - 1, height - 1)], fill=255)
    draw.line([(0, height - 1), (width - 1, 0)], fill=255)

    for x in range(16, width, 16):
        draw.line([(x, 0), (x, min(7, height - 1))], fill=255)

    return img
