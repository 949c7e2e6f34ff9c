"""Tests for spread detection scoring."""

import pytest

from preflight.config import ValidationConfig
from preflight.validation.models import (
    Confidence,
    FileType,
    OrderOptions,
    PageSize,
    SpreadType,
    ValidationOptions,
)
from preflight.validation.spread import (
    SpreadSignals,
    classify,
    compute_signals,
    detect_spread,
    expected_spread_size,
    group_pages,
    score_spread,
)

A4 = PageSize(210, 297)


def content_options(bleed: float = 0.0, size: PageSize = A4) -> ValidationOptions:
    return ValidationOptions(
        file_type=FileType.CONTENT,
        order_options=OrderOptions(size=size, pages=8, bleed=bleed),
    )


class TestExpectedSize:
    def test_portrait_order_doubles_width(self):
        assert expected_spread_size(A4) == PageSize(420, 297)

    def test_wide_order_is_already_a_spread(self):
        wide = PageSize(420, 297)
        assert expected_spread_size(wide) == wide


class TestScore:
    def test_full_spread_caps_at_100(self):
        """All four signals firing adds to more than 100."""
        signals = SpreadSignals(1.0, True, 1.41, 0.0)
        assert score_spread(signals) == 100

    def test_most_pages_weight(self):
        signals = SpreadSignals(0.9, False, 1.0, 50.0)
        assert score_spread(signals) == 50

    def test_no_signals(self):
        assert score_spread(SpreadSignals(0.0, False, 0.7, 50.0)) == 0

    @pytest.mark.parametrize("field,weaker", [
        ("size_match_ratio", 0.5),
        ("all_heights_match", False),
        ("mean_aspect_ratio", 1.0),
        ("width_stddev", 20.0),
    ])
    def test_weakening_a_signal_never_raises_score(self, field, weaker):
        strong = SpreadSignals(1.0, True, 1.41, 0.0)
        weak = SpreadSignals(**{**strong.__dict__, field: weaker})
        assert score_spread(weak) <= score_spread(strong)


class TestClassify:
    def test_threshold_is_inclusive(self):
        signals = SpreadSignals(1.0, True, 1.0, 5.0)
        info = classify(70, signals, threshold=70)
        assert info.is_spread
        assert info.confidence == Confidence.MEDIUM
        assert info.detected_type == SpreadType.SPREAD

    def test_below_threshold(self):
        info = classify(69, SpreadSignals(0.0, True, 1.0, 0.0), threshold=70)
        assert not info.is_spread
        assert info.detected_type == SpreadType.SINGLE

    def test_high_confidence(self):
        info = classify(80, SpreadSignals(1.0, True, 1.41, 0.0), threshold=70)
        assert info.confidence == Confidence.HIGH

    def test_wide_width_spread_is_mixed(self):
        info = classify(75, SpreadSignals(0.9, True, 1.3, 11.0), threshold=70)
        assert info.detected_type == SpreadType.MIXED


class TestDetectSpread:
    def test_a4_spreads(self):
        """Four 420x297mm pages on an A4 order are a high-confidence spread."""
        pages = (PageSize(420, 297),) * 4
        result = detect_spread(pages, content_options(), ValidationConfig())

        info = result.metadata_patch["spread_info"]
        assert info.is_spread
        assert info.score >= 95
        assert info.confidence == Confidence.HIGH
        assert not result.warnings

    def test_single_pages(self):
        pages = (A4,) * 8
        info = detect_spread(pages, content_options(), ValidationConfig()).metadata_patch["spread_info"]
        assert not info.is_spread
        assert info.detected_type == SpreadType.SINGLE

    def test_configurable_threshold(self):
        """Raising the threshold above the score turns a spread into single."""
        pages = (PageSize(420, 297),) * 4
        config = ValidationConfig(spread_score_threshold=101)
        info = detect_spread(pages, content_options(), config).metadata_patch["spread_info"]
        assert not info.is_spread

    def test_mixed_cover_and_spreads(self):
        """A single cover page followed by spreads is flagged as mixed."""
        pages = (PageSize(216, 303),) + (PageSize(432, 303),) * 5
        result = detect_spread(pages, content_options(bleed=3), ValidationConfig())

        assert [w.code.value for w in result.warnings] == ["MIXED_PDF"]
        groups = result.warnings[0].details["pageGroups"]
        assert groups[0]["type"] == "single"
        assert groups[0]["startPage"] == 1 and groups[0]["endPage"] == 1
        assert groups[1]["type"] == "spread"
        assert groups[1]["startPage"] == 2 and groups[1]["endPage"] == 6
        assert result.metadata_patch["spread_info"].detected_type == SpreadType.MIXED

    def test_bleed_widens_tolerance(self):
        signals = compute_signals((PageSize(432, 303),), A4, bleed=3)
        assert signals.size_match_ratio == 1.0
        assert signals.all_heights_match

        signals = compute_signals((PageSize(432, 303),), A4, bleed=0)
        assert signals.size_match_ratio == 0.0


class TestGroupPages:
    def test_consecutive_runs(self):
        pages = (A4, PageSize(420, 297), PageSize(420, 297), A4)
        groups = group_pages(pages, A4, bleed=0)
        assert [(g["startPage"], g["endPage"], g["type"]) for g in groups] == [
            (1, 1, "single"),
            (2, 3, "spread"),
            (4, 4, "single"),
        ]
