"""
VerdictOS -- Configuration System

All configuration is Pydantic-validated and loaded from:
1. default.yaml (defaults)
2. Environment variables (overrides)

Truth locks (the contradiction penalty, the non-determinism cap, the
complete-evidence requirement for CONFIRMED) are deliberately absent here:
they are module constants in the confidence system and cannot be tuned.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from verdictos.errors import ConfigurationError

DEFAULT_MIN_COVERAGE = 0.9

# ─── Sub-configs ──────────────────────────────────────────────────


class CoverageConfig(BaseModel):
    # None means "not supplied": the default threshold applies and the
    # decision engine treats the run as using the default.
    min_coverage: float | None = Field(default=None, ge=0.0, le=1.0)
    # Strict mode treats an INCOMPLETE coverage status as failing
    strict: bool = False
    legal_skip_reasons: list[str] = Field(
        default_factory=lambda: [
            "auth_required",
            "infra_failure",
            "out_of_scope",
            "external_navigation",
            "safety_policy",
        ]
    )

    @property
    def effective_min_coverage(self) -> float:
        return DEFAULT_MIN_COVERAGE if self.min_coverage is None else self.min_coverage

    @property
    def threshold_explicit(self) -> bool:
        return self.min_coverage is not None


class ClassifierConfig(BaseModel):
    feedback_gap_threshold_ms: float = 1500.0
    keyboard_trap_min_steps: int = 6
    keyboard_trap_max_unique: int = 3
    keyboard_trap_min_repeats: int = 2
    supported_state_stores: list[str] = Field(
        default_factory=lambda: [
            "redux",
            "zustand",
            "vuex",
            "pinia",
            "mobx",
            "react-context",
        ]
    )


class ConfidenceWeights(BaseModel):
    promise_strength: float = 0.25
    observation_strength: float = 0.30
    correlation_quality: float = 0.20
    guardrails: float = 0.15
    evidence_completeness: float = 0.10

    @model_validator(mode="after")
    def _sum_to_one(self) -> ConfidenceWeights:
        total = (
            self.promise_strength
            + self.observation_strength
            + self.correlation_quality
            + self.guardrails
            + self.evidence_completeness
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"confidence weights must sum to 1.0, got {total:.4f}")
        return self


class ConfidenceBaseScores(BaseModel):
    # Promise strength
    promise_proven: float = 1.0
    promise_observed: float = 0.8
    promise_unknown: float = 0.3
    # Observation strength
    url_changed: float = 0.3
    dom_changed: float = 0.2
    ui_feedback_confirmed: float = 0.2
    console_errors: float = 0.2
    network_failure: float = 0.3
    network_success: float = 0.1
    # Correlation quality (added to a 0.5 base)
    timing_aligned: float = 0.1
    route_matched: float = 0.2
    request_matched: float = 0.2
    trace_linked: float = 0.1
    # Evidence completeness
    screenshots: float = 0.3
    traces: float = 0.2
    signals: float = 0.3
    snippets: float = 0.2


class ConfidenceThresholds(BaseModel):
    high: float = 0.8
    medium: float = 0.6
    low: float = 0.3

    @model_validator(mode="after")
    def _ordered(self) -> ConfidenceThresholds:
        if not (1.0 >= self.high >= self.medium >= self.low >= 0.0):
            raise ValueError("confidence thresholds must satisfy 1 >= high >= medium >= low >= 0")
        return self


class ConfidenceConfig(BaseModel):
    weights: ConfidenceWeights = Field(default_factory=ConfidenceWeights)
    base_scores: ConfidenceBaseScores = Field(default_factory=ConfidenceBaseScores)
    thresholds: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"


# ─── Root Configuration ──────────────────────────────────────────


class VerdictConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="VERDICTOS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: str | Path | None = None) -> VerdictConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.

    Raises ConfigurationError when the merged result fails validation.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    env: dict[str, Any] = {}
    if min_coverage := os.environ.get("VERDICTOS_MIN_COVERAGE"):
        env.setdefault("coverage", {})["min_coverage"] = min_coverage
    if strict := os.environ.get("VERDICTOS_STRICT"):
        env.setdefault("coverage", {})["strict"] = strict.lower() in ("true", "1", "yes")
    if log_level := os.environ.get("VERDICTOS_LOG_LEVEL"):
        env.setdefault("logging", {})["level"] = log_level
    if log_format := os.environ.get("VERDICTOS_LOG_FORMAT"):
        env.setdefault("logging", {})["format"] = log_format

    try:
        return VerdictConfig(**_deep_merge(raw, env))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
