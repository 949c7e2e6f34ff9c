from abc import ABC, abstractmethod
from dataclasses import dataclass

# Fraction of page area below which an ink channel counts as unused
INK_USAGE_THRESHOLD = 0.001


@dataclass(frozen=True)
class InkCoveragePage:
    page: int
    cyan: float
    magenta: float
    yellow: float
    black: float

    @property
    def has_cmy_usage(self) -> bool:
        """True when any chromatic process ink is used (K excluded)."""
        return max(self.cyan, self.magenta, self.yellow) > INK_USAGE_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "cyan": self.cyan,
            "magenta": self.magenta,
            "yellow": self.yellow,
            "black": self.black,
            "hasCmykUsage": self.has_cmy_usage,
        }


@dataclass(frozen=True)
class InkCoverageResult:
    pages: tuple[InkCoveragePage, ...]

    @property
    def total_cmyk_usage(self) -> bool:
        return any(p.has_cmy_usage for p in self.pages)

    @property
    def color_mode(self) -> str:
        if self.total_cmyk_usage:
            return "CMYK"
        if any(p.black > INK_USAGE_THRESHOLD for p in self.pages):
            return "GRAY"
        return "RGB"


class InkCoverageProbe(ABC):
    """Abstract capability for measuring per-page process ink coverage."""

    name: str = "probe"

    @abstractmethod
    async def is_available(self) -> bool:
        """Check whether the probe can run at all."""
        pass

    @abstractmethod
    async def measure(self, data: bytes, max_pages: int, timeout_sec: float) -> InkCoverageResult:
        """
        Measure ink coverage for the first max_pages pages.

        Raises:
            InkCoverageError: tool missing, timed out, or failed for this call
        """
        pass

    def to_dict(self) -> dict:
        return {"name": self.name}
