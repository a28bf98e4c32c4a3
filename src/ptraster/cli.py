"""
Command-Line Interface for P-touch raster printing.

Usage:
    ptraster status -d DEVICE      - Show printer status
    ptraster print IMAGE -d DEVICE - Print an image
    ptraster test -d DEVICE        - Print a test pattern
    ptraster media list            - List known media
    ptraster media add ID ...      - Register custom media
    ptraster media remove ID       - Remove custom media
"""

import logging
import sys
from typing import Optional

import click
import serial
from PIL import Image

from .config import (
    CustomMedia,
    load_cached_device,
    register_custom_media,
    remove_custom_media,
    save_custom_media,
    save_device,
)
from .errors import ImageError, PrintError, PTouchError
from .image import prepare_image
from .media import Media, MediaInfo, MediaRegistry
from .printer import PTouchPrinter
from .transport import DEFAULT_BAUDRATE, open_transport

logger = logging.getLogger(__name__)


def build_registry() -> MediaRegistry:
    """Built-in media plus custom media from the user config."""
    registry = MediaRegistry()
    count = register_custom_media(registry)
    if count:
        logger.debug("Loaded %d custom media", count)
    return registry


def resolve_device(device: Optional[str], baudrate: Optional[int]) -> tuple[str, int]:
    """Use the given device, or fall back to the last one that worked.

    Raises:
        click.UsageError: If no device is given and none is cached
    """
    if device is not None:
        return device, baudrate or DEFAULT_BAUDRATE

    cached = load_cached_device()
    if cached is None:
        raise click.UsageError("No device given and no cached device (use --device)")
    click.echo(f"Using cached device: {cached.device}")
    return cached.device, baudrate or cached.baudrate


def device_options(func):
    """Shared --device/--baudrate options."""
    func = click.option(
        "--baudrate",
        "-b",
        type=int,
        default=None,
        help=f"Serial line speed (default {DEFAULT_BAUDRATE})",
    )(func)
    func = click.option(
        "--device",
        "-d",
        default=None,
        help="Serial port or device node (if omitted, uses the last device)",
    )(func)
    return func


def _run_job(device, baudrate, job):
    """Open the device and run ``job(printer)``, reporting errors and exiting 1."""
    device, baudrate = resolve_device(device, baudrate)
    registry = build_registry()

    try:
        with open_transport(device, baudrate) as transport:
            status = job(PTouchPrinter(transport, registry))
    except (OSError, serial.SerialException) as e:
        click.echo(f"Device error: {e}", err=True)
        sys.exit(1)
    except ImageError as e:
        click.echo(f"Image error: {e}", err=True)
        sys.exit(1)
    except PrintError as e:
        click.echo(f"Print error: {e}", err=True)
        sys.exit(1)
    except PTouchError as e:
        click.echo(f"Printer error: {e}", err=True)
        sys.exit(1)

    save_device(device, baudrate)
    if status is not None:
        click.echo(f"Media: {registry.info(status.media_in(registry)).name}")
    click.echo("Print complete!")


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.pass_context
def main(ctx, debug):
    """P-touch raster printer CLI."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@device_options
def status(device, baudrate):
    """Query and show printer status."""
    device, baudrate = resolve_device(device, baudrate)
    registry = build_registry()

    try:
        with open_transport(device, baudrate) as transport:
            printer = PTouchPrinter(transport, registry)
            printer.reset()
            info = printer.get_status()
    except (OSError, serial.SerialException) as e:
        click.echo(f"Device error: {e}", err=True)
        sys.exit(1)
    except PTouchError as e:
        click.echo(f"Printer error: {e}", err=True)
        sys.exit(1)

    save_device(device, baudrate)

    media = info.media_in(registry)
    click.echo(f"Model:        {info.model.display_name}")
    click.echo(f"Status:       {info.status_type.description}")
    click.echo(f"Media type:   {info.media_type.description}")
    click.echo(f"Media width:  {info.media_width.description}")
    click.echo(f"Media:        {registry.info(media).name} ({int(media)})")
    if info.has_errors:
        click.echo("Errors:       " + ", ".join(e.description for e in info.errors))
    else:
        click.echo("Errors:       None")


@main.command("print")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@device_options
@click.option("--media", "-m", type=int, default=None, help="Media id (default: detect from status)")
@click.option("--margin-left", type=float, default=0.0, help="Extra left margin in mm")
@click.option("--margin-right", type=float, default=0.0, help="Extra right margin in mm")
@click.option("--feed", type=click.IntRange(0, 0xFFFF), default=PTouchPrinter.DEFAULT_FEED_MARGIN_DOTS,
              help="Feed margin in dots")
@click.option("--rotate", is_flag=True, help="Rotate image 90 degrees")
@click.option("--invert/--no-invert", default=True,
              help="Print dark pixels (default) or bright pixels")
@click.option("--no-cut", is_flag=True, help="Disable auto cut")
@click.option("--mirror", is_flag=True, help="Mirror printing")
@click.option("--no-status", is_flag=True, help="Skip the status check (write-only devices)")
def print_image(image, device, baudrate, media, margin_left, margin_right, feed,
                rotate, invert, no_cut, mirror, no_status):
    """Print an image file.

    The image is scaled across the printable width of the installed
    tape; its width becomes the label length.
    """
    try:
        with Image.open(image) as src:
            page = prepare_image(src, height=None, rotate=rotate, invert=invert)
    except OSError as e:
        click.echo(f"Image error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Printing {image}...")
    _run_job(
        device,
        baudrate,
        lambda printer: printer.print_image(
            page,
            fit=True,
            media=media,
            margin=(margin_left, margin_right),
            feed_margin_dots=feed,
            auto_cut=not no_cut,
            mirror=mirror,
            check_status=not no_status,
        ),
    )


@main.command()
@device_options
@click.option("--length", type=click.IntRange(16, 2000), default=256, help="Pattern length in dots")
def test(device, baudrate, length):
    """Print a test pattern sized to the installed tape."""
    click.echo("Printing test pattern...")
    _run_job(device, baudrate, lambda printer: printer.print_test_pattern(length))


@main.group()
def media():
    """Manage the media table."""


@media.command("list")
def media_list():
    """List built-in and custom media."""
    registry = build_registry()
    click.echo(f"{'ID':>5}  {'Name':<24} {'Size':>6} {'Area':>6} {'Margin':>6}")
    for item in registry.media():
        info = registry.info(item)
        click.echo(
            f"{int(item):>5}  {info.name:<24} {info.size:>6.2f} "
            f"{info.print_area:>6.2f} {info.page_margin:>6.2f}"
        )


@media.command("add")
@click.argument("media_id", type=click.IntRange(1, None))
@click.option("--name", required=True, help="Display name")
@click.option("--size", type=float, required=True, help="Nominal width in mm")
@click.option("--print-area", type=float, required=True, help="Printable width in mm")
@click.option("--page-margin", type=float, required=True, help="Margin on each side in mm")
@click.option("--type", "media_type", type=click.IntRange(0, 0xFF), default=None,
              help="Status media type byte that identifies this media")
@click.option("--width", "media_width", type=click.IntRange(0, 0xFF), default=None,
              help="Status media width byte that identifies this media")
def media_add(media_id, name, size, print_area, page_margin, media_type, media_width):
    """Register custom media in the user config."""
    if (media_type is None) != (media_width is None):
        raise click.UsageError("--type and --width must be given together")
    if Media(media_id).is_known:
        raise click.UsageError(f"Media id {media_id} is a built-in media")

    entry = CustomMedia(
        media=media_id,
        info=MediaInfo(name=name, size=size, print_area=print_area, page_margin=page_margin),
        media_type=media_type,
        media_width=media_width,
    )
    save_custom_media(entry)
    click.echo(f"Saved media {media_id} ({name})")


@media.command("remove")
@click.argument("media_id", type=int)
def media_remove(media_id):
    """Remove custom media from the user config."""
    if remove_custom_media(media_id):
        click.echo(f"Removed media {media_id}")
    else:
        click.echo(f"No custom media with id {media_id}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
