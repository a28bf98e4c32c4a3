"""Brother P-touch raster command codec."""

__version__ = "0.1.0"

from .commands import (
    AdvancedMode,
    CommandBuilder,
    Commands,
    CompressionMode,
    DynamicCommandMode,
    PrintInformation,
    PrintInformationFlag,
    VariousMode,
)
from .errors import (
    CommandError,
    DataTooLong,
    DataTooShort,
    ImageError,
    ImageSizeError,
    InvalidMediaLength,
    InvalidMediaType,
    InvalidMediaWidth,
    InvalidRasterNumber,
    InvalidRepeatCount,
    MarginAmountUnacceptable,
    PrintError,
    PTouchError,
    ShortReadError,
    StatusError,
)
from .media import (
    UNKNOWN_MEDIA_INFO,
    Media,
    MediaInfo,
    MediaRegistry,
    MediaType,
    MediaWidth,
    recognize_media,
)
from .printer import PTouchPrinter
from .raster import PILRasterImage, RasterEncodeConfig, RasterEncoder, RasterImage
from .status import (
    ErrorInformation,
    ModelCode,
    NotificationNumber,
    StatusInformation,
    StatusType,
    query_status_information,
    read_status_information,
)
from .transport import FileTransport, SerialTransport, Transport, open_transport
from .units import dots_to_mm, mm_to_dots

__all__ = [
    "AdvancedMode",
    "CommandBuilder",
    "Commands",
    "CompressionMode",
    "DynamicCommandMode",
    "PrintInformation",
    "PrintInformationFlag",
    "VariousMode",
    "CommandError",
    "DataTooLong",
    "DataTooShort",
    "ImageError",
    "ImageSizeError",
    "InvalidMediaLength",
    "InvalidMediaType",
    "InvalidMediaWidth",
    "InvalidRasterNumber",
    "InvalidRepeatCount",
    "MarginAmountUnacceptable",
    "PrintError",
    "PTouchError",
    "ShortReadError",
    "StatusError",
    "UNKNOWN_MEDIA_INFO",
    "Media",
    "MediaInfo",
    "MediaRegistry",
    "MediaType",
    "MediaWidth",
    "recognize_media",
    "PTouchPrinter",
    "PILRasterImage",
    "RasterEncodeConfig",
    "RasterEncoder",
    "RasterImage",
    "ErrorInformation",
    "ModelCode",
    "NotificationNumber",
    "StatusInformation",
    "StatusType",
    "query_status_information",
    "read_status_information",
    "FileTransport",
    "SerialTransport",
    "Transport",
    "open_transport",
    "dots_to_mm",
    "mm_to_dots",
]
