import asyncio
import logging
from typing import Optional

from .base import InkCoverageProbe, InkCoverageResult
from .errors import InkCoverageError, ToolErrorType

logger = logging.getLogger(__name__)


class NullInkCoverageProbe(InkCoverageProbe):
    """Probe used when no ink coverage tool is installed."""

    name = "null"

    async def is_available(self) -> bool:
        return False

    async def measure(self, data: bytes, max_pages: int, timeout_sec: float) -> InkCoverageResult:
        raise InkCoverageError("No ink coverage tool configured", ToolErrorType.UNAVAILABLE)


class MockInkCoverageProbe(InkCoverageProbe):
    """Mock probe for testing without Ghostscript."""

    name = "mock"

    def __init__(
        self,
        result: Optional[InkCoverageResult] = None,
        available: bool = True,
        error: Optional[Exception] = None,
        delay: float = 0.0
    ):
        self._result = result if result is not None else InkCoverageResult(pages=())
        self._available = available
        self._error = error
        self._delay = delay
        self.calls = 0

    async def is_available(self) -> bool:
        return self._available

    async def measure(self, data: bytes, max_pages: int, timeout_sec: float) -> InkCoverageResult:
        self.calls += 1
        # Simulate tool run time; the caller's timeout applies
        if self._delay:
            try:
                await asyncio.wait_for(asyncio.sleep(self._delay), timeout=timeout_sec)
            except asyncio.TimeoutError as e:
                raise InkCoverageError(
                    f"Mock probe timed out after {timeout_sec}s",
                    ToolErrorType.TIMEOUT,
                ) from e

        if self._error is not None:
            raise self._error

        logger.info(f"[MOCK] Ink coverage for {len(data)} bytes")
        return self._result
