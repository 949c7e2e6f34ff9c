"""
Dependency injection for API routes.

These are set up during app initialization.
"""

from typing import Optional

from preflight.validation import PdfValidator

# Global instance (set during app init)
_validator: Optional[PdfValidator] = None


def init_dependencies(validator: PdfValidator):
    """Initialize global dependencies."""
    global _validator
    _validator = validator


def get_validator() -> PdfValidator:
    """Get validator instance."""
    if _validator is None:
        raise RuntimeError("Validator not initialized")
    return _validator
