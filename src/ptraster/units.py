"""
Millimetre / dot conversion.

All P-touch geometry is specified in millimetres, while the print head
addresses dots. Conversion truncates toward zero, so a margin never
grows past the value it was specified with.
"""

MILLIMETRES_PER_INCH = 25.4

# Every supported model prints at 180 DPI
DEFAULT_DPI = 180.0


def mm_to_dots(mm: float, dpi: float = DEFAULT_DPI) -> int:
    """Convert millimetres to whole dots (truncating)."""
    return int(mm / MILLIMETRES_PER_INCH * dpi)


def dots_to_mm(dots: int, dpi: float = DEFAULT_DPI) -> float:
    """Convert dots to millimetres."""
    return dots / dpi * MILLIMETRES_PER_INCH
