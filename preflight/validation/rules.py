"""
Order rule checks.

Pure functions over extracted geometry and the order options. Each check
returns its own StageResult; none of them perform I/O.
"""

import math

from preflight.config import ValidationConfig

from .models import (
    Binding,
    ErrorCode,
    FileType,
    FixMethod,
    PageSize,
    StageResult,
    ValidationError,
    ValidationOptions,
    ValidationWarning,
    WarningCode,
)
from .spread import expected_spread_size, matches_spread_size

COVER_PAGE_COUNTS = (1, 2, 4)

# Absorbs float noise from the points -> mm conversion
EPSILON_MM = 1e-6


def within_tolerance(actual: float, expected: float, tolerance: float) -> bool:
    """Inclusive tolerance check: exactly `tolerance` off still matches."""
    return abs(actual - expected) <= tolerance + EPSILON_MM


def check_file_size(size: int, options: ValidationOptions, config: ValidationConfig) -> StageResult:
    limit = options.max_file_size if options.max_file_size is not None else config.max_file_size
    if size <= limit:
        return StageResult()

    return StageResult(errors=(ValidationError(
        code=ErrorCode.FILE_TOO_LARGE,
        message=f"File size {size / (1024 * 1024):.1f}MB exceeds limit of {limit / (1024 * 1024):.1f}MB",
        details={"actual": size, "limit": limit},
    ),))


def check_page_count(page_count: int, options: ValidationOptions, config: ValidationConfig) -> StageResult:
    """
    Check page count against file type and binding.

    Cover files must have 1, 2 or 4 pages. Content files for perfect and
    saddle binding need a multiple of 4; saddle stitch is capped.
    """
    errors = []
    warnings = []
    order = options.order_options

    if options.file_type == FileType.COVER:
        if page_count not in COVER_PAGE_COUNTS:
            errors.append(ValidationError(
                code=ErrorCode.PAGE_COUNT_INVALID,
                message=f"Cover PDF must have 1, 2 or 4 pages, found {page_count}",
                details={"expected": list(COVER_PAGE_COUNTS), "actual": page_count},
            ))

    elif options.file_type == FileType.CONTENT:
        if order.binding in (Binding.PERFECT, Binding.SADDLE) and page_count % 4 != 0:
            suggested = math.ceil(page_count / 4) * 4
            errors.append(ValidationError(
                code=ErrorCode.PAGE_COUNT_INVALID,
                message=(
                    f"Content pages must be a multiple of 4 for {order.binding.value} binding, "
                    f"found {page_count}"
                ),
                details={
                    "actual": page_count,
                    "suggested": suggested,
                    "blankPagesNeeded": suggested - page_count,
                    "binding": order.binding.value,
                },
                auto_fixable=True,
                fix_method=FixMethod.ADD_BLANK_PAGES,
            ))

        if order.binding == Binding.SADDLE and page_count > config.saddle_stitch_max_pages:
            errors.append(ValidationError(
                code=ErrorCode.PAGE_COUNT_EXCEEDED,
                message=(
                    f"Saddle stitch binding supports at most {config.saddle_stitch_max_pages} pages, "
                    f"found {page_count}"
                ),
                details={"max": config.saddle_stitch_max_pages, "actual": page_count},
            ))

        if page_count != order.pages:
            fixable = page_count < order.pages
            warnings.append(ValidationWarning(
                code=WarningCode.PAGE_COUNT_MISMATCH,
                message=f"Expected {order.pages} pages, found {page_count}",
                details={"expected": order.pages, "actual": page_count},
                auto_fixable=fixable,
                fix_method=FixMethod.ADD_BLANK_PAGES if fixable else None,
            ))

    exceeded = any(e.code == ErrorCode.PAGE_COUNT_EXCEEDED for e in errors)
    if options.max_pages is not None and page_count > options.max_pages and not exceeded:
        errors.append(ValidationError(
            code=ErrorCode.PAGE_COUNT_EXCEEDED,
            message=f"PDF has {page_count} pages, maximum allowed is {options.max_pages}",
            details={"max": options.max_pages, "actual": page_count},
        ))

    return StageResult(errors=tuple(errors), warnings=tuple(warnings))


def is_wrap_around_cover(options: ValidationOptions) -> bool:
    """A cover ordered with paper thickness is one sheet: back, spine and front."""
    return options.file_type == FileType.COVER and options.order_options.paper_thickness is not None


def check_size(size: PageSize, options: ValidationOptions, config: ValidationConfig) -> StageResult:
    """
    Match the page against the trim size with and without bleed.

    Wrap-around covers are matched on height only; their width belongs to
    the spine check.
    """
    order = options.order_options
    tolerance = config.size_tolerance_mm
    bleed = order.bleed
    wrap_around = is_wrap_around_cover(options)

    trim_width, trim_height = order.size.width, order.size.height
    bleed_width, bleed_height = trim_width + bleed * 2, trim_height + bleed * 2

    matches_trim = (
        (wrap_around or within_tolerance(size.width, trim_width, tolerance))
        and within_tolerance(size.height, trim_height, tolerance)
    )
    matches_bleed = (
        (wrap_around or within_tolerance(size.width, bleed_width, tolerance))
        and within_tolerance(size.height, bleed_height, tolerance)
    )

    errors = []
    warnings = []
    patch = {}

    if bleed > 0 and matches_bleed:
        patch = {"has_bleed": True, "bleed_size": bleed}
    elif not matches_trim and not matches_bleed:
        if wrap_around:
            message = (
                f"Cover height mismatch. Expected {trim_height:g}mm "
                f"(or {bleed_height:g}mm with bleed), found {size.height:.1f}mm"
            )
        else:
            message = (
                f"Page size mismatch. Expected {trim_width:g}x{trim_height:g}mm "
                f"(or {bleed_width:g}x{bleed_height:g}mm with bleed), "
                f"found {size.width:.1f}x{size.height:.1f}mm"
            )
        errors.append(ValidationError(
            code=ErrorCode.SIZE_MISMATCH,
            message=message,
            details={
                "expected": {"width": trim_width, "height": trim_height},
                "expectedWithBleed": {"width": bleed_width, "height": bleed_height},
                "actual": size.to_dict(),
                "wrapAround": wrap_around,
            },
            auto_fixable=True,
            fix_method=FixMethod.RESIZE_WITH_PADDING,
        ))

    if bleed > 0 and not patch:
        warnings.append(ValidationWarning(
            code=WarningCode.BLEED_MISSING,
            message=f"Bleed of {bleed:g}mm is required but not found",
            details={"expected": bleed},
            auto_fixable=True,
            fix_method=FixMethod.EXTEND_BLEED,
        ))

    return StageResult(errors=tuple(errors), warnings=tuple(warnings), metadata_patch=patch)


def check_spine(width: float, options: ValidationOptions, config: ValidationConfig) -> StageResult:
    """
    Check a wrap-around cover's total width against the computed spine.

    Skipped unless the file is a cover and a paper thickness was ordered.
    """
    if not is_wrap_around_cover(options):
        return StageResult()

    order = options.order_options
    expected_spine = order.paper_thickness * (order.pages / 2)
    expected_width = order.size.width * 2 + expected_spine + order.bleed * 2
    patch = {"spine_size": round(expected_spine, 3)}

    if within_tolerance(width, expected_width, config.spine_tolerance_mm):
        return StageResult(metadata_patch=patch)

    return StageResult(
        errors=(ValidationError(
            code=ErrorCode.SPINE_SIZE_MISMATCH,
            message=(
                f"Cover width {width:.1f}mm does not match expected {expected_width:.1f}mm "
                f"(spine {expected_spine:.2f}mm)"
            ),
            details={
                "expectedSpine": round(expected_spine, 3),
                "expected": round(expected_width, 3),
                "actual": round(width, 3),
                "difference": round(width - expected_width, 3),
            },
            auto_fixable=True,
            fix_method=FixMethod.ADJUST_SPINE,
        ),),
        metadata_patch=patch,
    )


def check_orientation(page_sizes: tuple[PageSize, ...], options: ValidationOptions) -> StageResult:
    """Flag landscape pages that are not two-page spreads of a portrait order."""
    if is_wrap_around_cover(options):
        return StageResult()

    order = options.order_options
    portrait_order = order.size.width <= order.size.height
    spread = expected_spread_size(order.size)

    landscape_pages = [
        index
        for index, size in enumerate(page_sizes, start=1)
        if size.width > size.height
        and not (portrait_order and matches_spread_size(size, spread, order.bleed))
    ]

    if not landscape_pages:
        return StageResult()

    return StageResult(warnings=(ValidationWarning(
        code=WarningCode.LANDSCAPE_PAGE,
        message=f"{len(landscape_pages)} landscape page(s) detected, first on page {landscape_pages[0]}",
        details={"page": landscape_pages[0], "pages": landscape_pages},
    ),))


def check_saddle_stitch(page_count: int, options: ValidationOptions) -> StageResult:
    if options.file_type != FileType.CONTENT or options.order_options.binding != Binding.SADDLE:
        return StageResult()

    errors = []
    if page_count % 4 != 0:
        suggested = math.ceil(page_count / 4) * 4
        errors.append(ValidationError(
            code=ErrorCode.SADDLE_STITCH_INVALID,
            message=f"Saddle stitch requires a multiple of 4 pages, found {page_count}",
            details={"actual": page_count, "suggested": suggested},
            auto_fixable=True,
            fix_method=FixMethod.ADD_BLANK_PAGES,
        ))

    warnings = (ValidationWarning(
        code=WarningCode.CENTER_OBJECT_CHECK,
        message="Saddle stitch: check that no important objects cross the center fold",
        details={"binding": Binding.SADDLE.value},
    ),)

    return StageResult(errors=tuple(errors), warnings=warnings)
