"""
Tests for configuration loading.

Covers:
  - Defaults and the shipped default.yaml agreeing
  - Environment overrides and the explicit-threshold flag
  - Validation failures surfacing as ConfigurationError
"""

from __future__ import annotations

from pathlib import Path

import pytest

from verdictos.config import DEFAULT_MIN_COVERAGE, VerdictConfig, load_config
from verdictos.errors import ConfigurationError

DEFAULT_YAML = Path(__file__).parents[2] / "config" / "default.yaml"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("VERDICTOS_MIN_COVERAGE", "VERDICTOS_STRICT", "VERDICTOS_LOG_LEVEL", "VERDICTOS_LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_default_yaml_matches_model_defaults(self):
        assert load_config(DEFAULT_YAML) == VerdictConfig()

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config.coverage.effective_min_coverage == DEFAULT_MIN_COVERAGE
        assert not config.coverage.threshold_explicit

    def test_yaml_threshold_is_explicit(self, tmp_path):
        path = tmp_path / "verdictos.yaml"
        path.write_text("coverage:\n  min_coverage: 0.75\n")
        config = load_config(path)
        assert config.coverage.min_coverage == 0.75
        assert config.coverage.threshold_explicit

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "verdictos.yaml"
        path.write_text("coverage:\n  min_coverage: 0.75\nlogging:\n  level: INFO\n")
        monkeypatch.setenv("VERDICTOS_MIN_COVERAGE", "0.5")
        monkeypatch.setenv("VERDICTOS_STRICT", "yes")
        monkeypatch.setenv("VERDICTOS_LOG_LEVEL", "DEBUG")
        config = load_config(path)
        assert config.coverage.min_coverage == 0.5
        assert config.coverage.strict
        assert config.logging.level == "DEBUG"


class TestValidation:
    def test_weights_must_sum_to_one(self, tmp_path):
        path = tmp_path / "verdictos.yaml"
        path.write_text("confidence:\n  weights:\n    promise_strength: 0.9\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_threshold_out_of_range(self, monkeypatch):
        monkeypatch.setenv("VERDICTOS_MIN_COVERAGE", "1.5")
        with pytest.raises(ConfigurationError) as excinfo:
            load_config()
        assert excinfo.value.exit_code == 64

    def test_thresholds_must_be_ordered(self, tmp_path):
        path = tmp_path / "verdictos.yaml"
        path.write_text("confidence:\n  thresholds:\n    high: 0.5\n    medium: 0.7\n")
        with pytest.raises(ConfigurationError):
            load_config(path)
