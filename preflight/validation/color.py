"""
Two-stage color mode detection.

Stage 1 scans the raw bytes for color space signatures. It is cheap, never
fails and never starts a process. Stage 2 asks the ink coverage probe to
confirm or refute CMYK usage, and only runs when stage 1 suspects CMYK.

Outcomes:
- no CMYK signature          -> RGB,  medium confidence, probe not called
- probe unavailable          -> CMYK, low confidence (structural only)
- file above large threshold -> CMYK, low confidence (structural only)
- probe ran                  -> probe verdict, high confidence
- probe failed or timed out  -> CMYK, low confidence
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

from preflight.config import ValidationConfig
from preflight.probes import InkCoverageError, InkCoverageProbe, InkCoverageResult

from .models import (
    ColorMode,
    Confidence,
    ErrorCode,
    FileType,
    StageResult,
    ValidationError,
    ValidationOptions,
    ValidationWarning,
    WarningCode,
)

logger = logging.getLogger(__name__)

ICC_FOUR_COMPONENTS = re.compile(r"/N\s+4\b")
CMYK_IMAGE = re.compile(
    r"/Subtype\s*/Image[^>]*?/ColorSpace\s*/DeviceCMYK"
    r"|/ColorSpace\s*/DeviceCMYK[^>]*?/Subtype\s*/Image"
    r"|/CS\s*/CMYK\b"
)

SIG_DEVICE_CMYK = "DeviceCMYK"
SIG_ICC_CMYK = "ICCBased_CMYK"
SIG_CMYK_IMAGE = "CMYK_Image"
SIG_SEPARATION = "Separation"
SIG_DEVICE_N = "DeviceN"

PROCESS_CMYK_SIGNATURES = (SIG_DEVICE_CMYK, SIG_ICC_CMYK, SIG_CMYK_IMAGE)


@dataclass(frozen=True)
class CmykStructure:
    has_cmyk_signature: bool
    suspected_cmyk: bool
    signatures: tuple[str, ...]


@dataclass(frozen=True)
class ColorModeResult:
    color_mode: ColorMode
    confidence: Confidence
    structure: CmykStructure
    ink_coverage: Optional[InkCoverageResult] = None
    notes: tuple[str, ...] = ()


def scan_color_structure(data: bytes) -> CmykStructure:
    """Search the raw PDF text for CMYK and spot color space signatures."""
    text = data.decode("latin-1")
    signatures = []

    if "/DeviceCMYK" in text:
        signatures.append(SIG_DEVICE_CMYK)
    if "/ICCBased" in text and ICC_FOUR_COMPONENTS.search(text):
        signatures.append(SIG_ICC_CMYK)
    if CMYK_IMAGE.search(text):
        signatures.append(SIG_CMYK_IMAGE)
    if "/Separation" in text:
        signatures.append(SIG_SEPARATION)
    if "/DeviceN" in text:
        signatures.append(SIG_DEVICE_N)

    return CmykStructure(
        has_cmyk_signature=bool(signatures),
        suspected_cmyk=any(sig in PROCESS_CMYK_SIGNATURES for sig in signatures),
        signatures=tuple(signatures),
    )


async def detect_color_mode(
    data: bytes,
    structure: CmykStructure,
    probe: InkCoverageProbe,
    config: ValidationConfig,
    limiter: asyncio.Semaphore
) -> ColorModeResult:
    """
    Decide the color mode, confirming suspected CMYK with the probe.

    Never raises for probe failures; cancellation still propagates.
    """
    if not structure.suspected_cmyk:
        return ColorModeResult(ColorMode.RGB, Confidence.MEDIUM, structure)

    def structural_only(reason: str) -> ColorModeResult:
        return ColorModeResult(
            ColorMode.CMYK,
            Confidence.LOW,
            structure,
            notes=(f"Color mode estimated from PDF structure only: {reason}",),
        )

    try:
        available = await probe.is_available()
    except Exception as e:
        logger.error(f"Ink coverage availability check failed: {e}")
        available = False

    if not available:
        return structural_only("ink coverage tool unavailable")

    if len(data) > config.large_file_threshold:
        logger.info(f"Skipping ink coverage for large file ({len(data)} bytes)")
        return structural_only("file exceeds large-file threshold")

    try:
        async with limiter:
            coverage = await probe.measure(data, config.gs_max_pages, config.gs_timeout_sec)
    except InkCoverageError as e:
        logger.warning(f"[{e.code}] Ink coverage failed: {e}")
        return structural_only(str(e))
    except Exception as e:
        logger.error(f"Ink coverage probe raised unexpectedly: {e}")
        return structural_only(f"ink coverage error: {e}")

    mode = ColorMode.CMYK if coverage.total_cmyk_usage else ColorMode.RGB
    logger.info(f"Ink coverage verdict: {coverage.color_mode} over {len(coverage.pages)} page(s)")
    return ColorModeResult(mode, Confidence.HIGH, structure, ink_coverage=coverage)


def color_stage(result: ColorModeResult, options: ValidationOptions) -> StageResult:
    """Turn a color mode decision into issues and a metadata patch."""
    errors = []
    warnings = []
    details = {
        "confidence": result.confidence.value,
        "signatures": list(result.structure.signatures),
    }
    if result.ink_coverage is not None:
        details["inkCoverage"] = [p.to_dict() for p in result.ink_coverage.pages]

    if result.color_mode == ColorMode.CMYK:
        if options.file_type == FileType.POST_PROCESS:
            errors.append(ValidationError(
                code=ErrorCode.POST_PROCESS_CMYK,
                message="Post-processing files must use spot colors only, CMYK detected",
                details=details,
            ))
        elif result.confidence == Confidence.LOW:
            warnings.append(ValidationWarning(
                code=WarningCode.CMYK_STRUCTURE_DETECTED,
                message="CMYK color space found in PDF structure but usage not confirmed",
                details=details,
            ))

    return StageResult(
        errors=tuple(errors),
        warnings=tuple(warnings),
        metadata_patch={"color_mode": result.color_mode},
        notes=result.notes,
    )
