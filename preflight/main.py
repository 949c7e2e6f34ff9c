"""
PDF Preflight Service entry point.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import uvicorn

from preflight.api.server import create_app
from preflight.config import ValidationConfig, get_server_config, load_config
from preflight.probes import GhostscriptProbe
from preflight.startup import print_startup_banner, run_startup_checks
from preflight.validation import PdfValidator, ValidationOptions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_validator(validation: ValidationConfig) -> PdfValidator:
    """Wire the validator with the Ghostscript probe and a shared limiter."""
    return PdfValidator(
        config=validation,
        probe=GhostscriptProbe(validation.gs_path),
        limiter=asyncio.Semaphore(validation.gs_concurrency),
    )


def check_file(validator: PdfValidator, path: str, options_json: str) -> int:
    """Validate a single file and print the result as JSON. Returns exit code."""
    try:
        options = ValidationOptions.from_dict(json.loads(options_json))
    except (json.JSONDecodeError, ValueError) as e:
        logger.error(f"Invalid --options: {e}")
        return 2

    try:
        data = Path(path).read_bytes()
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        return 2

    result = asyncio.run(validator.validate(data, options))
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.is_valid else 1


def main():
    parser = argparse.ArgumentParser(description="PDF Preflight Service")
    parser.add_argument(
        "-c", "--config",
        help="Path to config file (default: config/default.yaml)"
    )
    parser.add_argument(
        "--host",
        help="Override host from config"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Override port from config"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        help="Skip startup checks (not recommended)"
    )
    parser.add_argument(
        "--check",
        metavar="FILE",
        help="Validate a single PDF, print the result and exit"
    )
    parser.add_argument(
        "--options",
        metavar="JSON",
        help="Validation options as JSON (required with --check)"
    )
    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
        validation = ValidationConfig.from_dict(config)
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        sys.exit(1)

    if args.check:
        if not args.options:
            parser.error("--options is required with --check")
        sys.exit(check_file(build_validator(validation), args.check, args.options))

    # Apply CLI overrides before validation
    if args.host:
        config.setdefault("server", {})["host"] = args.host
    if args.port:
        config.setdefault("server", {})["port"] = args.port
    if args.debug:
        config.setdefault("server", {})["debug"] = True

    # Run startup checks
    if not args.skip_checks:
        run_startup_checks(config, validation)

    # Get server config
    server_config = get_server_config(config)

    # Create app
    app = create_app(
        validator=build_validator(validation),
        cors_origins=server_config.get("cors_origins"),
        debug=server_config.get("debug", False)
    )

    # Print startup banner
    print_startup_banner(config, validation)

    # Run server
    try:
        uvicorn.run(
            app,
            host=server_config["host"],
            port=server_config["port"],
            log_level="debug" if server_config.get("debug") else "info"
        )
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
