"""
Startup checks and validation.

Run before starting the server to catch configuration issues early.
"""

import logging
import shutil
import socket
import sys
from typing import Optional

from preflight.config import ValidationConfig

logger = logging.getLogger(__name__)


def check_port_available(host: str, port: int) -> tuple[bool, Optional[str]]:
    """
    Check if a port is available for binding.

    Returns:
        (True, None) if available
        (False, error_message) if not
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True, None
    except socket.error as e:
        if e.errno == 10048 or e.errno == 98:  # Windows / Linux "address in use"
            return False, f"Port {port} is already in use. Another service may be running on this port."
        elif e.errno == 10049 or e.errno == 99:  # Can't assign address
            return False, f"Cannot bind to {host}:{port}. Check if the host address is valid."
        elif e.errno == 10013 or e.errno == 13:  # Permission denied
            return False, f"Permission denied for port {port}. Ports below 1024 require admin/root privileges."
        else:
            return False, f"Cannot bind to {host}:{port}: {e}"
    finally:
        sock.close()


def validate_config(config: dict, validation: ValidationConfig) -> tuple[list[str], list[str]]:
    """
    Validate configuration.

    Returns:
        (errors, warnings) message lists, both empty if all good
    """
    errors = []
    warnings = []

    server = config.get("server", {})
    port = server.get("port", 5002)

    if not isinstance(port, int) or port < 1 or port > 65535:
        errors.append(f"Invalid port: {port}. Must be between 1 and 65535.")
    elif port < 1024:
        warnings.append(f"Port {port} is a privileged port. Consider using a port >= 1024.")

    if validation.max_file_size <= 0:
        errors.append(f"max_file_size must be positive, got {validation.max_file_size}")
    if validation.large_file_threshold > validation.max_file_size:
        warnings.append(
            "large_file_threshold exceeds max_file_size; ink coverage will run on every accepted file."
        )
    if validation.min_acceptable_dpi > validation.recommended_dpi:
        errors.append(
            f"min_acceptable_dpi ({validation.min_acceptable_dpi}) must not exceed "
            f"recommended_dpi ({validation.recommended_dpi})"
        )
    if not 0 <= validation.spread_score_threshold <= 100:
        errors.append(f"spread_score_threshold must be 0-100, got {validation.spread_score_threshold}")
    if validation.gs_timeout_sec <= 0:
        errors.append(f"ghostscript timeout must be positive, got {validation.gs_timeout_sec}")
    if validation.gs_concurrency < 1:
        errors.append(f"ghostscript concurrency must be at least 1, got {validation.gs_concurrency}")
    if validation.detector_concurrency < 1:
        errors.append(f"detector_concurrency must be at least 1, got {validation.detector_concurrency}")

    return errors, warnings


def check_dependencies(gs_path: str = "gs") -> dict[str, bool]:
    """
    Check which optional tools are available.

    Returns:
        Dict of dependency name -> is_available
    """
    return {
        "ghostscript": shutil.which(gs_path) is not None,
    }


def run_startup_checks(config: dict, validation: ValidationConfig) -> None:
    """
    Run all startup checks. Exits with error if critical issues found.

    Args:
        config: Loaded configuration dict
        validation: Thresholds built from the same config
    """
    logger.info("Running startup checks...")

    server = config.get("server", {})
    host = server.get("host", "0.0.0.0")
    port = server.get("port", 5002)

    errors, warnings = validate_config(config, validation)

    if not errors:
        available, port_error = check_port_available(host, port)
        if not available:
            errors.append(port_error)

    deps = check_dependencies(validation.gs_path)
    missing_deps = [name for name, available in deps.items() if not available]
    if missing_deps:
        warnings.append(
            f"Optional tools not found: {', '.join(missing_deps)}. "
            "Color mode will be estimated from PDF structure only."
        )

    # Report warnings
    for warning in warnings:
        logger.warning(f"  ⚠ {warning}")

    # Report errors and exit if any
    if errors:
        logger.error("Startup checks failed:")
        for error in errors:
            logger.error(f"  ✗ {error}")
        logger.error("")
        logger.error("Fix these issues and try again.")
        sys.exit(1)

    if warnings:
        logger.info(f"Startup checks passed with {len(warnings)} warning(s)")
    else:
        logger.info("Startup checks passed ✓")


def print_startup_banner(config: dict, validation: ValidationConfig) -> None:
    """Print a startup banner with useful info."""
    server = config.get("server", {})
    port = server.get("port", 5002)

    print("")
    print("=" * 50)
    print("  PDF Preflight Service")
    print("=" * 50)
    print("")
    print(f"  Local URL:    http://localhost:{port}")
    print(f"  API Docs:     http://localhost:{port}/docs")
    print("")
    print("  Limits:")
    print(f"    Max file size:     {validation.max_file_size // (1024 * 1024)} MB")
    print(f"    Ink coverage:      {validation.gs_path} ({validation.gs_timeout_sec}s, "
          f"{validation.gs_max_pages} pages, x{validation.gs_concurrency})")
    print(f"    Min / rec. DPI:    {validation.min_acceptable_dpi} / {validation.recommended_dpi}")
    print("")
    print("  Endpoints:")
    print("    POST /v1/validate  - Validate PDF (multipart: file, options)")
    print("    GET  /v1/health    - Health check")
    print("")
    print("=" * 50)
    print("")
