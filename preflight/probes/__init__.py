from .base import InkCoveragePage, InkCoverageProbe, InkCoverageResult
from .errors import InkCoverageError, ToolErrorType
from .ghostscript import GhostscriptProbe
from .mock import MockInkCoverageProbe, NullInkCoverageProbe

__all__ = [
    "InkCoveragePage",
    "InkCoverageProbe",
    "InkCoverageResult",
    "InkCoverageError",
    "ToolErrorType",
    "GhostscriptProbe",
    "MockInkCoverageProbe",
    "NullInkCoverageProbe",
]
