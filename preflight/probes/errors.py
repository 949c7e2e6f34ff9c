"""
Error classification for external tool invocations.

Every failure of an external tool is treated as "tool unavailable for this
call" by the validator; the classification only decides how it is logged
and whether the tool is worth probing again.
"""

import errno
from enum import Enum, auto


class ToolErrorType(Enum):
    """Classification of external tool errors."""

    UNAVAILABLE = auto()  # Binary missing or not executable
    TIMEOUT = auto()  # Killed after exceeding the hard timeout
    FAILED = auto()  # Ran but exited non-zero or produced unparseable output
    UNKNOWN = auto()


# errno values raised when the binary itself cannot be started
UNAVAILABLE_ERRNO = {
    errno.ENOENT,
    errno.EACCES,
    errno.ENOEXEC,
    errno.EPERM,
}

UNAVAILABLE_MESSAGES = (
    "no such file",
    "not found",
    "permission denied",
    "exec format error",
    "failed to start",
)

TIMEOUT_MESSAGES = (
    "timed out",
    "timeout",
)


class InkCoverageError(Exception):
    """Raised when an ink coverage probe cannot produce a result."""

    def __init__(self, message: str, error_type: ToolErrorType = ToolErrorType.UNKNOWN):
        super().__init__(message)
        self.error_type = error_type

    @property
    def code(self) -> str:
        return f"GS_{self.error_type.name}"


def classify_tool_error(exception: BaseException) -> ToolErrorType:
    """
    Classify why an external tool invocation failed.

    Args:
        exception: The exception raised while starting or running the tool

    Returns:
        ToolErrorType for logging and availability decisions
    """
    if isinstance(exception, InkCoverageError):
        return exception.error_type

    if isinstance(exception, TimeoutError):
        return ToolErrorType.TIMEOUT

    if isinstance(exception, OSError):
        if exception.errno in UNAVAILABLE_ERRNO:
            return ToolErrorType.UNAVAILABLE

    error_msg = str(exception).lower()
    if any(phrase in error_msg for phrase in TIMEOUT_MESSAGES):
        return ToolErrorType.TIMEOUT
    if any(phrase in error_msg for phrase in UNAVAILABLE_MESSAGES):
        return ToolErrorType.UNAVAILABLE

    # Some callers wrap the original OSError
    if exception.__cause__:
        cause_result = classify_tool_error(exception.__cause__)
        if cause_result != ToolErrorType.UNKNOWN:
            return cause_result

    return ToolErrorType.UNKNOWN


def is_unavailable_error(exception: BaseException) -> bool:
    """Check if the tool binary itself is missing or unusable."""
    return classify_tool_error(exception) == ToolErrorType.UNAVAILABLE
