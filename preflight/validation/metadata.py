"""
Page geometry extraction.

Parses the page tree with pypdf and converts MediaBox dimensions from
points to millimetres. This is the only stage whose failure is fatal.
"""

import logging
from dataclasses import dataclass
from io import BytesIO

from pypdf import PdfReader

from .models import ErrorCode, PageSize

logger = logging.getLogger(__name__)

PT_TO_MM = 0.352778

# Some producers prepend junk before the header; readers accept it
HEADER_SEARCH_BYTES = 1024

# Formats customers commonly upload instead of a PDF
OTHER_FORMATS = (
    (b"\x89PNG\r\n\x1a\n", "PNG"),
    (b"\xff\xd8\xff", "JPEG"),
    (b"GIF8", "GIF"),
    (b"II*\x00", "TIFF"),
    (b"MM\x00*", "TIFF"),
    (b"PK\x03\x04", "ZIP"),
    (b"%!PS", "PostScript"),
)


class PdfParseError(Exception):
    """Raised when the byte stream is not a usable PDF document."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.FILE_CORRUPTED):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class DocumentGeometry:
    page_sizes: tuple[PageSize, ...]

    @property
    def page_count(self) -> int:
        return len(self.page_sizes)

    @property
    def first_page_size(self) -> PageSize:
        return self.page_sizes[0]


def extract_metadata(data: bytes, pt_to_mm: float = PT_TO_MM) -> DocumentGeometry:
    """
    Extract page count and per-page sizes.

    Args:
        data: Raw PDF bytes
        pt_to_mm: Points to millimetres factor

    Returns:
        DocumentGeometry with one PageSize (mm) per page

    Raises:
        PdfParseError: empty input, missing header, or unreadable page tree
    """
    if not data:
        raise PdfParseError("No data provided", ErrorCode.UNSUPPORTED_FORMAT)

    for magic, file_format in OTHER_FORMATS:
        if data.startswith(magic):
            raise PdfParseError(f"Unsupported file format: {file_format}", ErrorCode.UNSUPPORTED_FORMAT)

    if b"%PDF" not in data[:HEADER_SEARCH_BYTES]:
        raise PdfParseError("File does not appear to be a PDF")

    try:
        reader = PdfReader(BytesIO(data))
        sizes = []
        for page in reader.pages:
            box = page.mediabox
            width = float(box.width) * pt_to_mm
            height = float(box.height) * pt_to_mm
            if page.rotation % 180 == 90:
                width, height = height, width
            sizes.append(PageSize(width=abs(width), height=abs(height)))
    except Exception as e:
        raise PdfParseError(f"Invalid PDF: {e}") from e

    if not sizes:
        raise PdfParseError("PDF contains no pages")

    logger.debug(f"Extracted {len(sizes)} page(s), first page {sizes[0].width:.1f}x{sizes[0].height:.1f}mm")
    return DocumentGeometry(page_sizes=tuple(sizes))
