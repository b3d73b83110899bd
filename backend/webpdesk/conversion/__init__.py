from .codec import CodecError, PillowWebPCodec
from .gallery import list_gallery
from .models import BatchSummary, ConversionInput, ConversionResult, GalleryEntry, MetadataSidecar
from .profile import ConverterSettings, EncodeProfile, resolve
from .service import ConversionService, get_conversion_service, summarize
from .sidecar import FileSidecarStore

__all__ = [
    "BatchSummary",
    "CodecError",
    "ConversionInput",
    "ConversionResult",
    "ConversionService",
    "ConverterSettings",
    "EncodeProfile",
    "FileSidecarStore",
    "GalleryEntry",
    "MetadataSidecar",
    "PillowWebPCodec",
    "get_conversion_service",
    "list_gallery",
    "resolve",
    "summarize",
]
