"""
Ghostscript ink coverage probe.

Requires: Ghostscript binary on PATH (or GHOSTSCRIPT_PATH)
Uses the inkcov device, which renders each page and reports the fraction
of page area covered by each process ink.

Resource rules:
- Every invocation carries a hard timeout
- On timeout or cancellation the subprocess is killed and reaped
- Availability is probed once per probe instance via `gs --version`
"""

import asyncio
import logging
import os
import re
import tempfile
from typing import Optional

from .base import InkCoveragePage, InkCoverageProbe, InkCoverageResult
from .errors import InkCoverageError, ToolErrorType, classify_tool_error, is_unavailable_error

logger = logging.getLogger(__name__)

# " 0.12345  0.00000  0.04321  0.20000 CMYK OK"
INKCOV_LINE = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+CMYK\s+OK",
    re.MULTILINE,
)

VERSION_TIMEOUT_SEC = 5.0


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill a running subprocess and wait for it to exit."""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()


async def run_ghostscript(gs_path: str, args: list[str], timeout_sec: float) -> str:
    """
    Run Ghostscript and return its stdout.

    Raises:
        InkCoverageError: binary missing, timeout, or non-zero exit
        asyncio.CancelledError: re-raised after the subprocess is killed
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            gs_path,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise InkCoverageError(
            f"Failed to start Ghostscript: {e}",
            classify_tool_error(e),
        ) from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_sec)
    except asyncio.TimeoutError as e:
        await _kill(proc)
        raise InkCoverageError(
            f"Ghostscript timed out after {timeout_sec}s",
            ToolErrorType.TIMEOUT,
        ) from e
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise InkCoverageError(
            f"Ghostscript exited with code {proc.returncode}: {message}",
            ToolErrorType.FAILED,
        )

    return stdout.decode("utf-8", errors="replace")


def parse_inkcov_output(output: str) -> tuple[InkCoveragePage, ...]:
    """Parse inkcov device output, one line per rendered page."""
    pages = []
    for index, match in enumerate(INKCOV_LINE.finditer(output), start=1):
        cyan, magenta, yellow, black = (float(v) for v in match.groups())
        pages.append(InkCoveragePage(
            page=index,
            cyan=cyan,
            magenta=magenta,
            yellow=yellow,
            black=black,
        ))
    return tuple(pages)


class GhostscriptProbe(InkCoverageProbe):
    """
    Ink coverage via `gs -sDEVICE=inkcov`.

    Config options:
        gs_path: Ghostscript executable (default: gs)
    """

    name = "ghostscript"

    def __init__(self, gs_path: str = "gs"):
        self.gs_path = gs_path
        self.version: Optional[str] = None
        self._available: Optional[bool] = None
        self._lock = asyncio.Lock()

    async def is_available(self) -> bool:
        async with self._lock:
            if self._available is None:
                try:
                    output = await run_ghostscript(self.gs_path, ["--version"], VERSION_TIMEOUT_SEC)
                    self.version = output.strip()
                    self._available = True
                    logger.info(f"Ghostscript {self.version} available at {self.gs_path}")
                except InkCoverageError as e:
                    if is_unavailable_error(e):
                        logger.warning(f"[GS_UNAVAILABLE] {e}")
                    else:
                        logger.warning(f"[{e.code}] Ghostscript version check failed: {e}")
                    self._available = False
            return self._available

    async def measure(self, data: bytes, max_pages: int, timeout_sec: float) -> InkCoverageResult:
        # Ghostscript requires a file path, so we write to temp file
        with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as f:
            f.write(data)
            temp_path = f.name

        try:
            args = [
                "-q",
                "-dNOPAUSE",
                "-dBATCH",
                "-dSAFER",
                "-sDEVICE=inkcov",
                "-dFirstPage=1",
                f"-dLastPage={max_pages}",
                "-sOutputFile=-",
                temp_path,
            ]
            output = await run_ghostscript(self.gs_path, args, timeout_sec)
        finally:
            os.unlink(temp_path)

        pages = parse_inkcov_output(output)
        if not pages:
            raise InkCoverageError("Ghostscript produced no ink coverage lines", ToolErrorType.FAILED)

        logger.debug(f"inkcov measured {len(pages)} page(s)")
        return InkCoverageResult(pages=pages)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.gs_path,
            "version": self.version,
            "available": self._available,
        }
