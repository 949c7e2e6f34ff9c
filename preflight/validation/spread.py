"""
Spread (two-page layout) detection.

No single geometric signal reliably tells a spread from a single page, so
the detector adds up weighted signals into a 0-100 score. The weights and
tolerances are business calibration; keep them as they are.
"""

import logging
import statistics
from dataclasses import dataclass

from preflight.config import ValidationConfig

from .models import (
    Confidence,
    PageSize,
    SpreadInfo,
    SpreadType,
    StageResult,
    ValidationOptions,
    ValidationWarning,
    WarningCode,
)

logger = logging.getLogger(__name__)

# Score weights
SIZE_MATCH_ALL_WEIGHT = 60
SIZE_MATCH_MOST_WEIGHT = 50
HEIGHT_MATCH_WEIGHT = 20
ASPECT_RATIO_WEIGHT = 15
CONSISTENCY_WEIGHT = 10
MAX_SCORE = 100

MOST_PAGES_RATIO = 0.9
SPREAD_ASPECT_RATIO = 1.25
CONSISTENT_WIDTH_STDDEV_MM = 1.0
MIXED_WIDTH_STDDEV_MM = 10.0

# An ordered width this much wider than its height is already a spread width
ALREADY_SPREAD_RATIO = 1.2

HIGH_CONFIDENCE_SCORE = 80
MEDIUM_CONFIDENCE_SCORE = 60


@dataclass(frozen=True)
class SpreadSignals:
    """Geometric evidence for a spread layout."""

    size_match_ratio: float
    all_heights_match: bool
    mean_aspect_ratio: float
    width_stddev: float


def expected_spread_size(order_size: PageSize) -> PageSize:
    if order_size.width > order_size.height * ALREADY_SPREAD_RATIO:
        return order_size
    return PageSize(width=order_size.width * 2, height=order_size.height)


def spread_tolerances(bleed: float) -> tuple[float, float]:
    """(width, height) tolerances in mm for spread size matching."""
    return bleed * 4 + 2, bleed * 2 + 2


def matches_spread_size(size: PageSize, expected: PageSize, bleed: float) -> bool:
    width_tol, height_tol = spread_tolerances(bleed)
    return (
        abs(size.width - expected.width) <= width_tol
        and abs(size.height - expected.height) <= height_tol
    )


def compute_signals(page_sizes: tuple[PageSize, ...], order_size: PageSize, bleed: float) -> SpreadSignals:
    expected = expected_spread_size(order_size)
    _, height_tol = spread_tolerances(bleed)

    matched = sum(1 for size in page_sizes if matches_spread_size(size, expected, bleed))
    widths = [size.width for size in page_sizes]
    ratios = [size.width / size.height for size in page_sizes if size.height > 0]

    return SpreadSignals(
        size_match_ratio=matched / len(page_sizes),
        all_heights_match=all(abs(size.height - expected.height) <= height_tol for size in page_sizes),
        mean_aspect_ratio=statistics.fmean(ratios) if ratios else 0.0,
        width_stddev=statistics.pstdev(widths) if len(widths) > 1 else 0.0,
    )


def score_spread(signals: SpreadSignals) -> int:
    """Additive score over the four signals, capped at 100."""
    score = 0

    if signals.size_match_ratio >= 1.0:
        score += SIZE_MATCH_ALL_WEIGHT
    elif signals.size_match_ratio >= MOST_PAGES_RATIO:
        score += SIZE_MATCH_MOST_WEIGHT

    if signals.all_heights_match:
        score += HEIGHT_MATCH_WEIGHT

    if signals.mean_aspect_ratio > SPREAD_ASPECT_RATIO:
        score += ASPECT_RATIO_WEIGHT

    if signals.width_stddev < CONSISTENT_WIDTH_STDDEV_MM:
        score += CONSISTENCY_WEIGHT

    return min(score, MAX_SCORE)


def classify(score: int, signals: SpreadSignals, threshold: int) -> SpreadInfo:
    is_spread = score >= threshold

    if score >= HIGH_CONFIDENCE_SCORE:
        confidence = Confidence.HIGH
    elif score >= MEDIUM_CONFIDENCE_SCORE:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW

    if signals.width_stddev > MIXED_WIDTH_STDDEV_MM:
        detected_type = SpreadType.MIXED
    elif is_spread:
        detected_type = SpreadType.SPREAD
    else:
        detected_type = SpreadType.SINGLE

    return SpreadInfo(
        is_spread=is_spread,
        score=score,
        confidence=confidence,
        detected_type=detected_type,
    )


def group_pages(page_sizes: tuple[PageSize, ...], order_size: PageSize, bleed: float) -> list[dict]:
    """Split pages into consecutive runs of single and spread pages."""
    expected = expected_spread_size(order_size)
    groups: list[dict] = []

    for index, size in enumerate(page_sizes, start=1):
        page_type = "spread" if matches_spread_size(size, expected, bleed) else "single"
        if groups and groups[-1]["type"] == page_type:
            groups[-1]["endPage"] = index
            continue
        groups.append({
            "startPage": index,
            "endPage": index,
            "type": page_type,
            "widthMm": round(size.width, 1),
            "heightMm": round(size.height, 1),
        })

    return groups


def detect_spread(
    page_sizes: tuple[PageSize, ...],
    options: ValidationOptions,
    config: ValidationConfig
) -> StageResult:
    """
    Score the document's pages as spreads and flag mixed layouts.

    The mixed check is diagnostic and runs whatever the score.
    """
    order = options.order_options
    signals = compute_signals(page_sizes, order.size, order.bleed)
    score = score_spread(signals)
    info = classify(score, signals, config.spread_score_threshold)

    logger.debug(f"Spread score {score} ({info.confidence.value}), signals={signals}")

    warnings = []
    if info.detected_type == SpreadType.MIXED:
        warnings.append(ValidationWarning(
            code=WarningCode.MIXED_PDF,
            message="PDF mixes page sizes (e.g. single cover pages with spread content pages)",
            details={
                "widthStdDev": round(signals.width_stddev, 2),
                "pageGroups": group_pages(page_sizes, order.size, order.bleed),
            },
        ))

    return StageResult(warnings=tuple(warnings), metadata_patch={"spread_info": info})
