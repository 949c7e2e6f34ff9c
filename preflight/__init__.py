"""Pre-press validation for print-ready PDF files."""

__version__ = "1.0.0"
