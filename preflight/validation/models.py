"""
Value objects for PDF preflight validation.

Every object here is created once per validate() call and never mutated
afterwards. Detectors return StageResult partials which the orchestrator
merges into a single ValidationResult.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


class FileType(Enum):
    COVER = "cover"
    CONTENT = "content"
    POST_PROCESS = "post_process"


class Binding(Enum):
    PERFECT = "perfect"
    SADDLE = "saddle"
    SPRING = "spring"


class ErrorCode(Enum):
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    FILE_CORRUPTED = "FILE_CORRUPTED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    PAGE_COUNT_INVALID = "PAGE_COUNT_INVALID"
    PAGE_COUNT_EXCEEDED = "PAGE_COUNT_EXCEEDED"
    SIZE_MISMATCH = "SIZE_MISMATCH"
    SPINE_SIZE_MISMATCH = "SPINE_SIZE_MISMATCH"
    SADDLE_STITCH_INVALID = "SADDLE_STITCH_INVALID"
    POST_PROCESS_CMYK = "POST_PROCESS_CMYK"


class WarningCode(Enum):
    PAGE_COUNT_MISMATCH = "PAGE_COUNT_MISMATCH"
    BLEED_MISSING = "BLEED_MISSING"
    RESOLUTION_LOW = "RESOLUTION_LOW"
    LANDSCAPE_PAGE = "LANDSCAPE_PAGE"
    CENTER_OBJECT_CHECK = "CENTER_OBJECT_CHECK"
    MIXED_PDF = "MIXED_PDF"
    CMYK_STRUCTURE_DETECTED = "CMYK_STRUCTURE_DETECTED"
    TRANSPARENCY_DETECTED = "TRANSPARENCY_DETECTED"
    OVERPRINT_DETECTED = "OVERPRINT_DETECTED"


class FixMethod(Enum):
    ADD_BLANK_PAGES = "addBlankPages"
    EXTEND_BLEED = "extendBleed"
    ADJUST_SPINE = "adjustSpine"
    RESIZE_WITH_PADDING = "resizeWithPadding"


class ColorMode(Enum):
    RGB = "RGB"
    CMYK = "CMYK"


class Confidence(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SpreadType(Enum):
    SINGLE = "single"
    SPREAD = "spread"
    MIXED = "mixed"


@dataclass(frozen=True)
class PageSize:
    """Page dimensions in millimetres."""

    width: float
    height: float

    def to_dict(self) -> dict:
        return {"width": round(self.width, 2), "height": round(self.height, 2)}


@dataclass(frozen=True)
class OrderOptions:
    size: PageSize
    pages: int
    binding: Binding = Binding.PERFECT
    bleed: float = 0.0
    paper_thickness: Optional[float] = None


@dataclass(frozen=True)
class ValidationOptions:
    file_type: FileType
    order_options: OrderOptions
    max_file_size: Optional[int] = None
    max_pages: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ValidationOptions":
        """
        Build options from the camelCase wire shape.

        Raises:
            ValueError: on missing keys or values outside the closed enums
        """
        try:
            order = data["orderOptions"]
            size = order["size"]
            thickness = order.get("paperThickness")
            max_file_size = data.get("maxFileSize")
            max_pages = data.get("maxPages")
            return cls(
                file_type=FileType(data["fileType"]),
                order_options=OrderOptions(
                    size=PageSize(float(size["width"]), float(size["height"])),
                    pages=int(order["pages"]),
                    binding=Binding(order.get("binding", "perfect")),
                    bleed=float(order.get("bleed", 0)),
                    paper_thickness=float(thickness) if thickness is not None else None,
                ),
                max_file_size=int(max_file_size) if max_file_size is not None else None,
                max_pages=int(max_pages) if max_pages is not None else None,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Invalid validation options: {e}") from e


@dataclass(frozen=True)
class SpreadInfo:
    is_spread: bool = False
    score: int = 0
    confidence: Confidence = Confidence.LOW
    detected_type: SpreadType = SpreadType.SINGLE

    def to_dict(self) -> dict:
        return {
            "isSpread": self.is_spread,
            "score": self.score,
            "confidence": self.confidence.value,
            "detectedType": self.detected_type.value,
        }


@dataclass(frozen=True)
class PdfMetadata:
    page_count: int = 0
    page_size: PageSize = PageSize(0.0, 0.0)
    has_bleed: bool = False
    bleed_size: Optional[float] = None
    spine_size: Optional[float] = None
    color_mode: ColorMode = ColorMode.RGB
    resolution: Optional[float] = None
    image_count: int = 0
    spread_info: Optional[SpreadInfo] = None
    has_spot_colors: bool = False
    spot_colors: tuple[str, ...] = ()
    has_transparency: bool = False
    has_overprint: bool = False

    def to_dict(self) -> dict:
        return {
            "pageCount": self.page_count,
            "pageSize": self.page_size.to_dict(),
            "hasBleed": self.has_bleed,
            "bleedSize": self.bleed_size,
            "spineSize": self.spine_size,
            "colorMode": self.color_mode.value,
            "resolution": self.resolution,
            "imageCount": self.image_count,
            "spreadInfo": self.spread_info.to_dict() if self.spread_info else None,
            "hasSpotColors": self.has_spot_colors,
            "spotColors": list(self.spot_colors),
            "hasTransparency": self.has_transparency,
            "hasOverprint": self.has_overprint,
        }


@dataclass(frozen=True)
class ValidationError:
    code: ErrorCode
    message: str
    details: dict = field(default_factory=dict)
    auto_fixable: bool = False
    fix_method: Optional[FixMethod] = None

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "autoFixable": self.auto_fixable,
            "fixMethod": self.fix_method.value if self.fix_method else None,
        }


@dataclass(frozen=True)
class ValidationWarning:
    code: WarningCode
    message: str
    details: dict = field(default_factory=dict)
    auto_fixable: bool = False
    fix_method: Optional[FixMethod] = None

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "autoFixable": self.auto_fixable,
            "fixMethod": self.fix_method.value if self.fix_method else None,
        }


@dataclass(frozen=True)
class StageResult:
    """Partial result returned by a single detector stage."""

    errors: tuple[ValidationError, ...] = ()
    warnings: tuple[ValidationWarning, ...] = ()
    metadata_patch: dict[str, Any] = field(default_factory=dict)
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[ValidationError, ...]
    warnings: tuple[ValidationWarning, ...]
    metadata: PdfMetadata
    notes: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def from_stages(cls, stages: list[StageResult], base: PdfMetadata) -> "ValidationResult":
        """Merge stage partials in order: concatenate issues, apply patches."""
        errors: list[ValidationError] = []
        warnings: list[ValidationWarning] = []
        notes: list[str] = []
        patch: dict[str, Any] = {}

        for stage in stages:
            errors.extend(stage.errors)
            warnings.extend(stage.warnings)
            notes.extend(stage.notes)
            patch.update(stage.metadata_patch)

        return cls(
            errors=tuple(errors),
            warnings=tuple(warnings),
            metadata=replace(base, **patch),
            notes=tuple(notes),
        )

    def to_dict(self) -> dict:
        """Convert to the JSON contract consumed by the job status reporter."""
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "metadata": self.metadata.to_dict(),
            "notes": list(self.notes),
        }
