"""
Auxiliary print-quality detectors.

- Spot colors: /Separation and /DeviceN ink names
- Transparency and overprint: ExtGState entries per page
- Image resolution: effective DPI of every placed raster image

The detectors are independent of each other. The async wrappers run each
one in a worker thread with a timeout; a failure becomes a note on the
result and never fails validation.
"""

import asyncio
import logging
import math
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Optional

from pypdf import PdfReader
from pypdf.generic import ArrayObject, DictionaryObject

from preflight.config import ValidationConfig

from .models import StageResult, ValidationWarning, WarningCode

logger = logging.getLogger(__name__)

# Process and system colorant names that are not spot inks
NON_SPOT_NAMES = {"All", "None", "Cyan", "Magenta", "Yellow", "Black"}

PDF_NAME = r"[^\s/\[\]<>(){}%]+"
SEPARATION_RE = re.compile(rf"/Separation\s*/({PDF_NAME})")
DEVICE_N_RE = re.compile(rf"/DeviceN\s*\[((?:\s*/{PDF_NAME})+)\s*\]")
NAME_RE = re.compile(rf"/({PDF_NAME})")
HEX_ESCAPE_RE = re.compile(r"#([0-9A-Fa-f]{2})")

TRANSPARENT_BLEND_MODES = {"/Normal", "/Compatible"}

IDENTITY = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)
POINTS_PER_INCH = 72.0
MM_PER_POINT = 0.352778

# Cap on per-image entries echoed into warning details
MAX_REPORTED_IMAGES = 20


def decode_pdf_name(name: str) -> str:
    """Decode #XX escapes in a PDF name (e.g. PANTONE#20Red -> PANTONE Red)."""
    raw = HEX_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), name).encode("latin-1")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def _resolve(obj):
    return obj.get_object() if obj is not None else None


def _resource_dict(page, key: str) -> dict:
    resources = _resolve(page.get("/Resources"))
    if not isinstance(resources, DictionaryObject):
        return {}
    value = _resolve(resources.get(key))
    return value if isinstance(value, DictionaryObject) else {}


# ---------------------------------------------------------------------------
# Spot colors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpotColorResult:
    names: tuple[str, ...]
    pages: tuple[dict, ...] = ()

    @property
    def has_spot_colors(self) -> bool:
        return bool(self.names)


def _names_from_color_space(space) -> list[str]:
    space = _resolve(space)
    if not isinstance(space, ArrayObject) or len(space) < 2:
        return []

    family = str(space[0])
    if family == "/Separation":
        return [str(space[1]).lstrip("/")]
    if family == "/DeviceN":
        colorants = _resolve(space[1])
        if isinstance(colorants, ArrayObject):
            return [str(c).lstrip("/") for c in colorants]
    return []


def _keep_spot(name: str, seen: set, names: list) -> None:
    if name and name not in NON_SPOT_NAMES and name not in seen:
        seen.add(name)
        names.append(name)


def detect_spot_colors(data: bytes) -> SpotColorResult:
    """Collect spot ink names from raw bytes and per-page color spaces."""
    text = data.decode("latin-1")
    names: list[str] = []
    seen: set = set()

    for match in SEPARATION_RE.finditer(text):
        _keep_spot(decode_pdf_name(match.group(1)), seen, names)
    for match in DEVICE_N_RE.finditer(text):
        for name in NAME_RE.findall(match.group(1)):
            _keep_spot(decode_pdf_name(name), seen, names)

    # Page attribution; also finds names hidden in compressed object streams
    pages = []
    reader = PdfReader(BytesIO(data))
    for index, page in enumerate(reader.pages, start=1):
        page_names: list[str] = []
        page_seen: set = set()
        for space in _resource_dict(page, "/ColorSpace").values():
            for name in _names_from_color_space(space):
                _keep_spot(name, page_seen, page_names)
        if page_names:
            pages.append({"page": index, "colors": page_names})
            for name in page_names:
                _keep_spot(name, seen, names)

    return SpotColorResult(names=tuple(names), pages=tuple(pages))


def spot_color_stage(result: SpotColorResult) -> StageResult:
    notes = ()
    if result.pages:
        by_page = "; ".join(f"page {p['page']}: {', '.join(p['colors'])}" for p in result.pages)
        notes = (f"Spot colors by page: {by_page}",)

    return StageResult(
        metadata_patch={
            "has_spot_colors": result.has_spot_colors,
            "spot_colors": result.names,
        },
        notes=notes,
    )


# ---------------------------------------------------------------------------
# Transparency and overprint
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransparencyResult:
    pages: tuple[dict, ...]

    @property
    def has_transparency(self) -> bool:
        return any(p["transparency"] for p in self.pages)

    @property
    def has_overprint(self) -> bool:
        return any(p["overprint"] for p in self.pages)


def _is_transparent_state(state: DictionaryObject) -> bool:
    blend = _resolve(state.get("/BM"))
    if blend is not None:
        modes = [str(m) for m in blend] if isinstance(blend, ArrayObject) else [str(blend)]
        if any(mode not in TRANSPARENT_BLEND_MODES for mode in modes):
            return True

    for key in ("/CA", "/ca"):
        alpha = _resolve(state.get(key))
        if alpha is not None and float(alpha) < 1.0:
            return True

    soft_mask = _resolve(state.get("/SMask"))
    return soft_mask is not None and str(soft_mask) != "/None"


def _is_overprint_state(state: DictionaryObject) -> bool:
    for key in ("/OP", "/op"):
        flag = _resolve(state.get(key))
        if flag is not None and bool(getattr(flag, "value", flag)):
            return True
    return False


def detect_transparency_and_overprint(data: bytes) -> TransparencyResult:
    """Inspect each page's graphics state dictionaries."""
    reader = PdfReader(BytesIO(data))
    pages = []

    for index, page in enumerate(reader.pages, start=1):
        transparency = False
        overprint = False
        for state in _resource_dict(page, "/ExtGState").values():
            state = _resolve(state)
            if not isinstance(state, DictionaryObject):
                continue
            transparency = transparency or _is_transparent_state(state)
            overprint = overprint or _is_overprint_state(state)
        pages.append({"page": index, "transparency": transparency, "overprint": overprint})

    return TransparencyResult(pages=tuple(pages))


def transparency_stage(result: TransparencyResult) -> StageResult:
    warnings = []

    if result.has_transparency:
        pages = [p["page"] for p in result.pages if p["transparency"]]
        warnings.append(ValidationWarning(
            code=WarningCode.TRANSPARENCY_DETECTED,
            message=f"Transparency detected on {len(pages)} page(s); flatten before output if required",
            details={"pages": pages},
        ))

    if result.has_overprint:
        pages = [p["page"] for p in result.pages if p["overprint"]]
        warnings.append(ValidationWarning(
            code=WarningCode.OVERPRINT_DETECTED,
            message=f"Overprint detected on {len(pages)} page(s); check separations",
            details={"pages": pages},
        ))

    return StageResult(
        warnings=tuple(warnings),
        metadata_patch={
            "has_transparency": result.has_transparency,
            "has_overprint": result.has_overprint,
        },
    )


# ---------------------------------------------------------------------------
# Image resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImageInfo:
    index: int
    page: int
    pixel_width: int
    pixel_height: int
    display_width_mm: float
    display_height_mm: float
    effective_dpi_x: float
    effective_dpi_y: float

    @property
    def min_effective_dpi(self) -> float:
        return min(self.effective_dpi_x, self.effective_dpi_y)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "page": self.page,
            "pixelWidth": self.pixel_width,
            "pixelHeight": self.pixel_height,
            "displayWidthMm": round(self.display_width_mm, 1),
            "displayHeightMm": round(self.display_height_mm, 1),
            "effectiveDpi": round(self.min_effective_dpi, 1),
        }


@dataclass(frozen=True)
class ImageResolutionResult:
    images: tuple[ImageInfo, ...]
    min_dpi: float

    @property
    def image_count(self) -> int:
        return len(self.images)

    @property
    def low_res_images(self) -> tuple[ImageInfo, ...]:
        return tuple(i for i in self.images if i.min_effective_dpi < self.min_dpi)

    @property
    def min_resolution(self) -> Optional[float]:
        if not self.images:
            return None
        return min(i.min_effective_dpi for i in self.images)


def _multiply(m: tuple, ctm: tuple) -> tuple:
    """Concatenate matrix m onto the current transformation matrix."""
    a, b, c, d, e, f = m
    ca, cb, cc, cd, ce, cf = ctm
    return (
        a * ca + b * cc,
        a * cb + b * cd,
        c * ca + d * cc,
        c * cb + d * cd,
        e * ca + f * cc + ce,
        e * cb + f * cd + cf,
    )


def _effective_dpi(pixels: int, display_points: float) -> float:
    if display_points <= 0:
        return 0.0
    return pixels / (display_points / POINTS_PER_INCH)


def detect_image_resolution(data: bytes, min_dpi: float) -> ImageResolutionResult:
    """
    Compute effective DPI for every image placement.

    Walks each page's content stream tracking the CTM through q/Q/cm and
    measures the unit square an image is painted into at each Do.
    Images inside form XObjects are not followed.
    """
    reader = PdfReader(BytesIO(data))
    images: list[ImageInfo] = []

    for page_number, page in enumerate(reader.pages, start=1):
        xobjects = _resource_dict(page, "/XObject")
        page_images = {}
        for name, xobject in xobjects.items():
            xobject = _resolve(xobject)
            if isinstance(xobject, DictionaryObject) and xobject.get("/Subtype") == "/Image":
                page_images[str(name)] = xobject
        if not page_images:
            continue

        contents = page.get_contents()
        if contents is None:
            continue

        ctm = IDENTITY
        stack = []
        for operands, operator in contents.operations:
            if operator == b"q":
                stack.append(ctm)
            elif operator == b"Q":
                ctm = stack.pop() if stack else IDENTITY
            elif operator == b"cm" and len(operands) == 6:
                ctm = _multiply(tuple(float(v) for v in operands), ctm)
            elif operator == b"Do" and operands and str(operands[0]) in page_images:
                image = page_images[str(operands[0])]
                width_pt = math.hypot(ctm[0], ctm[1])
                height_pt = math.hypot(ctm[2], ctm[3])
                pixel_width = int(_resolve(image.get("/Width")) or 0)
                pixel_height = int(_resolve(image.get("/Height")) or 0)
                images.append(ImageInfo(
                    index=len(images),
                    page=page_number,
                    pixel_width=pixel_width,
                    pixel_height=pixel_height,
                    display_width_mm=width_pt * MM_PER_POINT,
                    display_height_mm=height_pt * MM_PER_POINT,
                    effective_dpi_x=_effective_dpi(pixel_width, width_pt),
                    effective_dpi_y=_effective_dpi(pixel_height, height_pt),
                ))

    return ImageResolutionResult(images=tuple(images), min_dpi=min_dpi)


def resolution_stage(result: ImageResolutionResult, recommended_dpi: float) -> StageResult:
    warnings = []
    notes = []
    min_resolution = result.min_resolution

    low_res = result.low_res_images
    if low_res:
        warnings.append(ValidationWarning(
            code=WarningCode.RESOLUTION_LOW,
            message=(
                f"{len(low_res)} image(s) below {result.min_dpi:g} DPI "
                f"(lowest {min_resolution:.0f} DPI, {recommended_dpi:g} DPI recommended)"
            ),
            details={
                "minResolution": round(min_resolution, 1),
                "threshold": result.min_dpi,
                "recommended": recommended_dpi,
                "images": [i.to_dict() for i in low_res[:MAX_REPORTED_IMAGES]],
            },
        ))

    below_recommended = [
        i for i in result.images
        if result.min_dpi <= i.min_effective_dpi < recommended_dpi
    ]
    if below_recommended:
        notes.append(f"{len(below_recommended)} image(s) below the recommended {recommended_dpi:g} DPI")

    return StageResult(
        warnings=tuple(warnings),
        metadata_patch={
            "resolution": round(min_resolution, 1) if min_resolution is not None else None,
            "image_count": result.image_count,
        },
        notes=tuple(notes),
    )


# ---------------------------------------------------------------------------
# Async runners
# ---------------------------------------------------------------------------

async def run_detector(
    name: str,
    detector: Callable,
    to_stage: Callable,
    limiter: asyncio.Semaphore,
    timeout_sec: float,
    *args
) -> StageResult:
    """
    Run a blocking detector off the event loop and convert its result.

    The limiter slot is held until the worker thread returns, even after a
    timeout, so the limit bounds threads actually running. Failures and
    timeouts degrade to a note; cancellation propagates.
    """
    await limiter.acquire()
    task = asyncio.ensure_future(asyncio.to_thread(detector, *args))

    def _finished(done: asyncio.Future) -> None:
        limiter.release()
        if not done.cancelled():
            done.exception()

    task.add_done_callback(_finished)

    try:
        result = await asyncio.wait_for(asyncio.shield(task), timeout=timeout_sec)
    except asyncio.TimeoutError:
        logger.warning(f"[DETECTOR_TIMEOUT] {name} exceeded {timeout_sec}s")
        return StageResult(notes=(f"{name} detection skipped: timed out after {timeout_sec:g}s",))
    except Exception as e:
        logger.warning(f"[DETECTOR_FAILED] {name}: {e}")
        return StageResult(notes=(f"{name} detection skipped: {e}",))

    return to_stage(result)


async def run_auxiliary_detectors(
    data: bytes,
    config: ValidationConfig,
    limiter: asyncio.Semaphore
) -> list[StageResult]:
    """Fan out the three detectors and return their partials in fixed order."""
    timeout = config.detector_timeout_sec
    return list(await asyncio.gather(
        run_detector(
            "spot color", detect_spot_colors, spot_color_stage,
            limiter, timeout, data,
        ),
        run_detector(
            "transparency", detect_transparency_and_overprint, transparency_stage,
            limiter, timeout, data,
        ),
        run_detector(
            "resolution", detect_image_resolution,
            lambda result: resolution_stage(result, config.recommended_dpi),
            limiter, timeout, data, config.min_acceptable_dpi,
        ),
    ))
