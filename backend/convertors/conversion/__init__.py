from .errors import ConversionError
from .models import BatchResult, ConversionOutcome, StagedUpload
from .service import ConversionService, get_conversion_service, parse_formats

__all__ = [
    "BatchResult",
    "ConversionError",
    "ConversionOutcome",
    "ConversionService",
    "StagedUpload",
    "get_conversion_service",
    "parse_formats",
]
