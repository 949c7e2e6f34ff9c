"""
Configuration loading and validation thresholds.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class ValidationConfig:
    """
    Process-wide validation thresholds.

    Built once at startup and injected into the validator. Tests build
    their own instances instead of mutating shared state.
    """

    # File size limits (bytes)
    max_file_size: int = 100 * MB
    large_file_threshold: int = 50 * MB

    # Page count rules
    saddle_stitch_max_pages: int = 64

    # Size tolerances (mm)
    size_tolerance_mm: float = 1.0
    spine_tolerance_mm: float = 2.0
    pt_to_mm: float = 0.352778

    # Spread detection
    spread_score_threshold: int = 70

    # Image resolution (DPI)
    recommended_dpi: int = 300
    min_acceptable_dpi: int = 150

    # Ghostscript
    gs_path: str = "gs"
    gs_timeout_sec: float = 5.0
    gs_max_pages: int = 50
    gs_concurrency: int = 2

    # In-process auxiliary detectors (spot color, transparency, resolution)
    detector_timeout_sec: float = 30.0
    detector_concurrency: int = 2

    @classmethod
    def from_dict(cls, config: dict) -> "ValidationConfig":
        """Create from config dictionary."""
        validation = config.get("validation", {}) or {}
        gs = config.get("ghostscript", {}) or {}
        defaults = cls()

        return cls(
            max_file_size=int(validation.get("max_file_size", defaults.max_file_size)),
            large_file_threshold=int(validation.get("large_file_threshold", defaults.large_file_threshold)),
            saddle_stitch_max_pages=int(validation.get("saddle_stitch_max_pages", defaults.saddle_stitch_max_pages)),
            size_tolerance_mm=float(validation.get("size_tolerance_mm", defaults.size_tolerance_mm)),
            spine_tolerance_mm=float(validation.get("spine_tolerance_mm", defaults.spine_tolerance_mm)),
            spread_score_threshold=int(validation.get("spread_score_threshold", defaults.spread_score_threshold)),
            recommended_dpi=int(validation.get("recommended_dpi", defaults.recommended_dpi)),
            min_acceptable_dpi=int(validation.get("min_acceptable_dpi", defaults.min_acceptable_dpi)),
            gs_path=os.environ.get("GHOSTSCRIPT_PATH") or gs.get("path", defaults.gs_path),
            gs_timeout_sec=float(gs.get("timeout_sec", defaults.gs_timeout_sec)),
            gs_max_pages=int(gs.get("max_pages", defaults.gs_max_pages)),
            gs_concurrency=int(gs.get("concurrency", defaults.gs_concurrency)),
            detector_timeout_sec=float(validation.get("detector_timeout_sec", defaults.detector_timeout_sec)),
            detector_concurrency=int(validation.get("detector_concurrency", defaults.detector_concurrency)),
        )

    def to_dict(self) -> dict:
        return {
            "max_file_size": self.max_file_size,
            "large_file_threshold": self.large_file_threshold,
            "saddle_stitch_max_pages": self.saddle_stitch_max_pages,
            "size_tolerance_mm": self.size_tolerance_mm,
            "spine_tolerance_mm": self.spine_tolerance_mm,
            "spread_score_threshold": self.spread_score_threshold,
            "recommended_dpi": self.recommended_dpi,
            "min_acceptable_dpi": self.min_acceptable_dpi,
            "gs_timeout_sec": self.gs_timeout_sec,
            "gs_max_pages": self.gs_max_pages,
            "gs_concurrency": self.gs_concurrency,
            "detector_timeout_sec": self.detector_timeout_sec,
            "detector_concurrency": self.detector_concurrency,
        }


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from YAML file.

    Looks for config in order:
    1. Explicit path if provided
    2. CONFIG_FILE environment variable
    3. ./config/local.yaml
    4. ./config/default.yaml
    """
    search_paths = []

    if config_path:
        search_paths.append(Path(config_path))

    if env_path := os.environ.get("CONFIG_FILE"):
        search_paths.append(Path(env_path))

    # Default paths relative to project root
    project_root = Path(__file__).parent.parent
    search_paths.extend([
        project_root / "config" / "local.yaml",
        project_root / "config" / "default.yaml",
    ])

    for path in search_paths:
        if path.exists():
            logger.info(f"Loading config from {path}")
            with open(path) as f:
                return yaml.safe_load(f) or {}

    logger.warning("No config file found, using defaults")
    return {}


def get_server_config(config: dict) -> dict:
    """Extract server configuration."""
    server = config.get("server", {})
    return {
        "host": server.get("host", "0.0.0.0"),
        "port": server.get("port", 5002),
        "debug": server.get("debug", False),
        "cors_origins": server.get("cors_origins", None),
    }
