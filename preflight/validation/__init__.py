from .metadata import PdfParseError, extract_metadata
from .models import (
    Binding,
    ErrorCode,
    FileType,
    FixMethod,
    OrderOptions,
    PageSize,
    ValidationOptions,
    ValidationResult,
    WarningCode,
)
from .orchestrator import PdfValidator

__all__ = [
    "Binding",
    "ErrorCode",
    "FileType",
    "FixMethod",
    "OrderOptions",
    "PageSize",
    "PdfParseError",
    "PdfValidator",
    "ValidationOptions",
    "ValidationResult",
    "WarningCode",
    "extract_metadata",
]
