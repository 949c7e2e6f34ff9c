"""Tests for configuration loading and startup checks."""

from dataclasses import FrozenInstanceError

import pytest

from preflight.config import ValidationConfig, get_server_config, load_config
from preflight.startup import validate_config


class TestValidationConfig:
    def test_defaults(self):
        config = ValidationConfig()
        assert config.max_file_size == 100 * 1024 * 1024
        assert config.large_file_threshold == 50 * 1024 * 1024
        assert config.gs_timeout_sec == 5.0
        assert config.gs_max_pages == 50
        assert config.gs_concurrency == 2
        assert config.spread_score_threshold == 70

    def test_from_empty_dict(self, monkeypatch):
        monkeypatch.delenv("GHOSTSCRIPT_PATH", raising=False)
        assert ValidationConfig.from_dict({}) == ValidationConfig()

    def test_from_dict(self, monkeypatch):
        monkeypatch.delenv("GHOSTSCRIPT_PATH", raising=False)
        config = ValidationConfig.from_dict({
            "validation": {"max_file_size": 1000, "recommended_dpi": 240},
            "ghostscript": {"path": "/opt/gs/bin/gs", "timeout_sec": 2, "concurrency": 4},
        })
        assert config.max_file_size == 1000
        assert config.recommended_dpi == 240
        assert config.gs_path == "/opt/gs/bin/gs"
        assert config.gs_timeout_sec == 2.0
        assert config.gs_concurrency == 4

    def test_env_overrides_gs_path(self, monkeypatch):
        monkeypatch.setenv("GHOSTSCRIPT_PATH", "/usr/local/bin/gs")
        config = ValidationConfig.from_dict({"ghostscript": {"path": "gs"}})
        assert config.gs_path == "/usr/local/bin/gs"

    def test_detector_concurrency(self):
        config = ValidationConfig.from_dict({"validation": {"detector_concurrency": "3"}})
        assert config.detector_concurrency == 3
        assert config.to_dict()["detector_concurrency"] == 3
        assert ValidationConfig().detector_concurrency == 2

    def test_frozen(self):
        config = ValidationConfig()
        with pytest.raises(FrozenInstanceError):
            config.max_file_size = 1


class TestLoadConfig:
    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("server:\n  port: 6000\nvalidation:\n  spread_score_threshold: 80\n")

        config = load_config(str(path))
        assert config["server"]["port"] == 6000
        assert ValidationConfig.from_dict(config).spread_score_threshold == 80

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_server_defaults(self):
        server = get_server_config({})
        assert server["host"] == "0.0.0.0"
        assert server["port"] == 5002
        assert server["cors_origins"] is None


class TestStartupValidation:
    def test_default_config_is_valid(self):
        errors, warnings = validate_config({}, ValidationConfig())
        assert errors == []
        assert warnings == []

    def test_invalid_port(self):
        errors, _ = validate_config({"server": {"port": 70000}}, ValidationConfig())
        assert any("Invalid port" in e for e in errors)

    def test_min_dpi_above_recommended(self):
        config = ValidationConfig(recommended_dpi=150, min_acceptable_dpi=300)
        errors, _ = validate_config({}, config)
        assert any("min_acceptable_dpi" in e for e in errors)

    def test_zero_concurrency(self):
        errors, _ = validate_config({}, ValidationConfig(gs_concurrency=0))
        assert any("concurrency" in e for e in errors)

    def test_zero_detector_concurrency(self):
        errors, _ = validate_config({}, ValidationConfig(detector_concurrency=0))
        assert any("detector_concurrency" in e for e in errors)

    def test_large_threshold_warning(self):
        config = ValidationConfig(max_file_size=10, large_file_threshold=20)
        errors, warnings = validate_config({}, config)
        assert errors == []
        assert warnings
