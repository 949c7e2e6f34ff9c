"""
Validation orchestrator.

Sequences every stage for one file and merges their partial results:

    file size gate -> parse -> page count -> size/bleed -> spine (cover)
    -> orientation -> saddle stitch -> spread -> structural color scan
    -> color mode -> (spot color | transparency | resolution)

Only the file size gate and the parse stage short-circuit. After parsing
every stage runs, so one call reports the complete defect list.
"""

import asyncio
import logging
from typing import Callable, Optional

from preflight.config import ValidationConfig
from preflight.probes import InkCoverageProbe, NullInkCoverageProbe

from .auxiliary import run_auxiliary_detectors
from .color import color_stage, detect_color_mode, scan_color_structure
from .metadata import PdfParseError, extract_metadata
from .models import (
    PdfMetadata,
    StageResult,
    ValidationError,
    ValidationOptions,
    ValidationResult,
)
from .rules import (
    check_file_size,
    check_orientation,
    check_page_count,
    check_saddle_stitch,
    check_size,
    check_spine,
)
from .spread import detect_spread

logger = logging.getLogger(__name__)


def _run_stage(name: str, stage: Callable[..., StageResult], *args) -> StageResult:
    """Run a synchronous stage; an unexpected failure becomes a note."""
    try:
        return stage(*args)
    except Exception as e:
        logger.exception(f"[STAGE_FAILED] {name}: {e}")
        return StageResult(notes=(f"{name} check skipped: {e}",))


class PdfValidator:
    """
    Validates print-ready PDFs against an order.

    One instance may serve many concurrent validate() calls. All per-call
    state lives inside validate(). Shared between calls: the immutable config,
    the probe, the host-supplied limiter capping external tool invocations,
    and a separate limiter for in-process detector threads.
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        probe: Optional[InkCoverageProbe] = None,
        limiter: Optional[asyncio.Semaphore] = None
    ):
        self.config = config or ValidationConfig()
        self.probe = probe or NullInkCoverageProbe()
        self._limiter = limiter or asyncio.Semaphore(self.config.gs_concurrency)
        # In-process pypdf detectors do not count against the external tool cap
        self._detector_limiter = asyncio.Semaphore(self.config.detector_concurrency)

    async def validate(self, data: bytes, options: ValidationOptions) -> ValidationResult:
        """
        Validate PDF bytes against the order options.

        Always returns a complete ValidationResult; tool failures are
        downgraded to notes and low-confidence results.
        """
        config = self.config
        logger.info(
            f"[VALIDATION] {options.file_type.value} file, {len(data)} bytes, "
            f"binding={options.order_options.binding.value}"
        )

        size_gate = check_file_size(len(data), options, config)
        if size_gate.errors:
            logger.warning(f"[VALIDATION] Rejected: {size_gate.errors[0].message}")
            return ValidationResult.from_stages([size_gate], PdfMetadata())

        try:
            geometry = await asyncio.to_thread(extract_metadata, data, config.pt_to_mm)
        except PdfParseError as e:
            logger.warning(f"[VALIDATION] Rejected: {e}")
            error = ValidationError(code=e.code, message=str(e))
            return ValidationResult.from_stages([StageResult(errors=(error,))], PdfMetadata())

        page_count = geometry.page_count
        first_page = geometry.first_page_size
        base = PdfMetadata(page_count=page_count, page_size=first_page)

        stages = [
            _run_stage("page count", check_page_count, page_count, options, config),
            _run_stage("size", check_size, first_page, options, config),
            _run_stage("spine", check_spine, first_page.width, options, config),
            _run_stage("orientation", check_orientation, geometry.page_sizes, options),
            _run_stage("saddle stitch", check_saddle_stitch, page_count, options),
            _run_stage("spread", detect_spread, geometry.page_sizes, options, config),
        ]

        structure = await asyncio.to_thread(scan_color_structure, data)
        color = await detect_color_mode(data, structure, self.probe, config, self._limiter)
        stages.append(color_stage(color, options))

        stages.extend(await run_auxiliary_detectors(data, config, self._detector_limiter))

        result = ValidationResult.from_stages(stages, base)
        logger.info(
            f"[VALIDATION] {'PASS' if result.is_valid else 'FAIL'}: "
            f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)"
        )
        return result
