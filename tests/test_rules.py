"""Tests for order rule checks."""

import pytest

from preflight.config import ValidationConfig
from preflight.validation.models import (
    Binding,
    ErrorCode,
    FileType,
    FixMethod,
    OrderOptions,
    PageSize,
    ValidationOptions,
    WarningCode,
)
from preflight.validation.rules import (
    check_file_size,
    check_orientation,
    check_page_count,
    check_saddle_stitch,
    check_size,
    check_spine,
    within_tolerance,
)

A4 = PageSize(210, 297)
CONFIG = ValidationConfig()


def make_options(
    file_type: FileType = FileType.CONTENT,
    pages: int = 8,
    binding: Binding = Binding.PERFECT,
    bleed: float = 0.0,
    size: PageSize = A4,
    **kwargs
) -> ValidationOptions:
    order_keys = {"paper_thickness"}
    order_kwargs = {k: v for k, v in kwargs.items() if k in order_keys}
    option_kwargs = {k: v for k, v in kwargs.items() if k not in order_keys}
    return ValidationOptions(
        file_type=file_type,
        order_options=OrderOptions(size=size, pages=pages, binding=binding, bleed=bleed, **order_kwargs),
        **option_kwargs
    )


def codes(issues) -> list[str]:
    return [issue.code.value for issue in issues]


class TestFileSize:
    def test_within_default_limit(self):
        """Files under the configured limit pass."""
        result = check_file_size(1024, make_options(), CONFIG)
        assert not result.errors

    def test_per_call_limit_overrides_config(self):
        """maxFileSize on the options replaces the config limit."""
        result = check_file_size(101, make_options(max_file_size=100), CONFIG)
        assert codes(result.errors) == ["FILE_TOO_LARGE"]
        assert result.errors[0].details == {"actual": 101, "limit": 100}

    def test_exact_limit_passes(self):
        result = check_file_size(100, make_options(max_file_size=100), CONFIG)
        assert not result.errors

    def test_zero_limit_is_enforced(self):
        """A per-call limit of 0 is a real limit, not a fallback to the config."""
        result = check_file_size(1, make_options(max_file_size=0), CONFIG)
        assert codes(result.errors) == ["FILE_TOO_LARGE"]
        assert result.errors[0].details["limit"] == 0


class TestPageCount:
    @pytest.mark.parametrize("pages", [1, 2, 4])
    def test_cover_valid_counts(self, pages):
        """Covers may have 1, 2 or 4 pages."""
        result = check_page_count(pages, make_options(FileType.COVER), CONFIG)
        assert not result.errors

    def test_cover_three_pages_invalid(self):
        result = check_page_count(3, make_options(FileType.COVER), CONFIG)
        assert codes(result.errors) == ["PAGE_COUNT_INVALID"]
        assert not result.errors[0].auto_fixable

    def test_content_perfect_not_multiple_of_four(self):
        """3 pages perfect bound: suggest 4, one blank page, fixable."""
        result = check_page_count(3, make_options(pages=4), CONFIG)

        assert codes(result.errors) == ["PAGE_COUNT_INVALID"]
        error = result.errors[0]
        assert error.details["suggested"] == 4
        assert error.details["blankPagesNeeded"] == 1
        assert error.auto_fixable
        assert error.fix_method == FixMethod.ADD_BLANK_PAGES

    @pytest.mark.parametrize("pages,suggested", [(5, 8), (9, 12), (13, 16), (30, 32)])
    def test_suggested_rounds_up_to_multiple_of_four(self, pages, suggested):
        result = check_page_count(pages, make_options(pages=suggested), CONFIG)
        assert result.errors[0].details["suggested"] == suggested

    def test_spring_binding_has_no_multiple_rule(self):
        result = check_page_count(7, make_options(pages=7, binding=Binding.SPRING), CONFIG)
        assert not result.errors

    def test_saddle_65_pages_both_errors(self):
        """65 pages saddle stitched is both invalid and exceeded."""
        result = check_page_count(65, make_options(pages=65, binding=Binding.SADDLE), CONFIG)
        assert set(codes(result.errors)) == {"PAGE_COUNT_INVALID", "PAGE_COUNT_EXCEEDED"}

    def test_saddle_64_pages_ok(self):
        result = check_page_count(64, make_options(pages=64, binding=Binding.SADDLE), CONFIG)
        assert not result.errors

    def test_fewer_pages_than_ordered_is_fixable_warning(self):
        result = check_page_count(8, make_options(pages=12), CONFIG)
        assert not result.errors
        assert codes(result.warnings) == ["PAGE_COUNT_MISMATCH"]
        assert result.warnings[0].auto_fixable
        assert result.warnings[0].fix_method == FixMethod.ADD_BLANK_PAGES

    def test_more_pages_than_ordered_not_fixable(self):
        result = check_page_count(12, make_options(pages=8), CONFIG)
        assert codes(result.warnings) == ["PAGE_COUNT_MISMATCH"]
        assert not result.warnings[0].auto_fixable

    def test_max_pages_option(self):
        result = check_page_count(8, make_options(pages=8, max_pages=4), CONFIG)
        assert codes(result.errors) == ["PAGE_COUNT_EXCEEDED"]

    def test_max_pages_not_duplicated_for_saddle(self):
        """Only one PAGE_COUNT_EXCEEDED even when both limits are hit."""
        options = make_options(pages=68, binding=Binding.SADDLE, max_pages=10)
        result = check_page_count(68, options, CONFIG)
        assert codes(result.errors).count("PAGE_COUNT_EXCEEDED") == 1

    def test_post_process_has_no_page_rules(self):
        result = check_page_count(3, make_options(FileType.POST_PROCESS, pages=8), CONFIG)
        assert not result.errors
        assert not result.warnings


class TestSize:
    def test_exact_trim_without_bleed(self):
        result = check_size(A4, make_options(), CONFIG)
        assert not result.errors
        assert not result.warnings
        assert result.metadata_patch == {}

    def test_tolerance_is_inclusive(self):
        """Exactly 1mm off still matches."""
        result = check_size(PageSize(211, 297), make_options(), CONFIG)
        assert not result.errors

    def test_just_outside_tolerance(self):
        result = check_size(PageSize(211.5, 297), make_options(), CONFIG)
        assert codes(result.errors) == ["SIZE_MISMATCH"]
        assert result.errors[0].fix_method == FixMethod.RESIZE_WITH_PADDING

    def test_bleed_size_sets_metadata(self):
        result = check_size(PageSize(216, 303), make_options(bleed=3), CONFIG)
        assert not result.errors
        assert not result.warnings
        assert result.metadata_patch == {"has_bleed": True, "bleed_size": 3}

    def test_trim_size_when_bleed_ordered(self):
        """Trim size with bleed required: size ok, bleed missing."""
        result = check_size(A4, make_options(bleed=3), CONFIG)
        assert not result.errors
        assert codes(result.warnings) == ["BLEED_MISSING"]
        assert result.warnings[0].fix_method == FixMethod.EXTEND_BLEED

    def test_wrong_size_with_bleed_reports_both(self):
        result = check_size(PageSize(148, 210), make_options(bleed=3), CONFIG)
        assert codes(result.errors) == ["SIZE_MISMATCH"]
        assert codes(result.warnings) == ["BLEED_MISSING"]

    def test_within_tolerance_helper(self):
        assert within_tolerance(10.0, 9.0, 1.0)
        assert not within_tolerance(10.01, 9.0, 1.0)

    def test_wrap_around_cover_matched_on_height(self):
        """Cover width includes the spine, so only the height is compared."""
        options = make_options(FileType.COVER, pages=100, bleed=3, paper_thickness=0.1)
        result = check_size(PageSize(431.5, 303), options, CONFIG)
        assert not result.errors
        assert not result.warnings
        assert result.metadata_patch == {"has_bleed": True, "bleed_size": 3}

    def test_wrap_around_cover_wrong_height(self):
        options = make_options(FileType.COVER, pages=100, bleed=3, paper_thickness=0.1)
        result = check_size(PageSize(431.5, 280), options, CONFIG)
        assert codes(result.errors) == ["SIZE_MISMATCH"]
        assert result.errors[0].details["wrapAround"] is True
        assert "height" in result.errors[0].message

    def test_wrap_around_cover_trim_height_misses_bleed(self):
        options = make_options(FileType.COVER, pages=100, bleed=3, paper_thickness=0.1)
        result = check_size(PageSize(425.5, 297), options, CONFIG)
        assert not result.errors
        assert codes(result.warnings) == ["BLEED_MISSING"]

    def test_cover_without_thickness_checks_width(self):
        """Without paper thickness a cover is a single page of trim size."""
        options = make_options(FileType.COVER, pages=100, bleed=3)
        result = check_size(PageSize(431.5, 303), options, CONFIG)
        assert codes(result.errors) == ["SIZE_MISMATCH"]
        assert result.errors[0].details["wrapAround"] is False


class TestSpine:
    def cover_options(self, **kwargs):
        return make_options(FileType.COVER, pages=100, bleed=3, paper_thickness=0.1, **kwargs)

    def test_width_within_tolerance(self):
        """Spine 5mm, expected width 431mm: 431.5mm passes."""
        result = check_spine(431.5, self.cover_options(), CONFIG)
        assert not result.errors
        assert result.metadata_patch["spine_size"] == 5

    def test_width_without_spine_fails(self):
        result = check_spine(420, self.cover_options(), CONFIG)
        assert codes(result.errors) == ["SPINE_SIZE_MISMATCH"]
        error = result.errors[0]
        assert error.details["expected"] == 431
        assert error.details["expectedSpine"] == 5
        assert error.auto_fixable
        assert error.fix_method == FixMethod.ADJUST_SPINE

    def test_tolerance_boundary(self):
        assert not check_spine(433, self.cover_options(), CONFIG).errors
        assert check_spine(433.5, self.cover_options(), CONFIG).errors

    def test_skipped_without_thickness(self):
        options = make_options(FileType.COVER, pages=100)
        result = check_spine(999, options, CONFIG)
        assert not result.errors
        assert result.metadata_patch == {}

    def test_skipped_for_content(self):
        options = make_options(FileType.CONTENT, pages=100, paper_thickness=0.1)
        assert check_spine(999, options, CONFIG).errors == ()


class TestOrientation:
    def test_portrait_pages_ok(self):
        result = check_orientation((A4, A4), make_options())
        assert not result.warnings

    def test_landscape_page_on_portrait_order(self):
        """A 297x210 page on an A4 order is flagged on page 1."""
        result = check_orientation((PageSize(297, 210),), make_options())
        assert codes(result.warnings) == ["LANDSCAPE_PAGE"]
        assert result.warnings[0].details["page"] == 1

    def test_reports_first_landscape_page(self):
        pages = (A4, A4, PageSize(297, 210), PageSize(297, 210))
        result = check_orientation(pages, make_options())
        assert result.warnings[0].details == {"page": 3, "pages": [3, 4]}

    def test_spread_pages_not_flagged(self):
        """Two-page spreads of a portrait order are landscape by nature."""
        result = check_orientation((PageSize(420, 297),) * 4, make_options())
        assert not result.warnings

    def test_wrap_around_cover_not_flagged(self):
        """A thick spine makes the cover wider than a spread; it is still not landscape."""
        options = make_options(FileType.COVER, pages=400, bleed=3, paper_thickness=0.1)
        result = check_orientation((PageSize(446, 303),), options)
        assert not result.warnings


class TestSaddleStitch:
    def test_center_object_check_always_added(self):
        result = check_saddle_stitch(16, make_options(pages=16, binding=Binding.SADDLE))
        assert not result.errors
        assert codes(result.warnings) == ["CENTER_OBJECT_CHECK"]

    def test_invalid_count(self):
        result = check_saddle_stitch(10, make_options(pages=12, binding=Binding.SADDLE))
        assert codes(result.errors) == ["SADDLE_STITCH_INVALID"]
        assert result.errors[0].auto_fixable
        assert result.errors[0].details["suggested"] == 12

    def test_not_applied_to_perfect_binding(self):
        result = check_saddle_stitch(10, make_options(pages=12))
        assert not result.errors
        assert not result.warnings

    def test_not_applied_to_cover(self):
        result = check_saddle_stitch(3, make_options(FileType.COVER, binding=Binding.SADDLE))
        assert not result.warnings


class TestErrorCodes:
    def test_closed_enumerations(self):
        """The wire codes are fixed; new codes need a contract change."""
        assert len(ErrorCode) == 9
        assert len(WarningCode) == 9
