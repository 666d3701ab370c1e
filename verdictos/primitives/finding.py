"""
VerdictOS -- Finding Primitives

A Finding is a claim that something went wrong, backed by a flat map of
named observations. A finding with no evidence cannot be constructed.
Downstream stages (causes, confidence, signals) never mutate a finding:
they return enriched copies.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator, model_validator

from verdictos.errors import EvidenceLawError
from verdictos.primitives.common import (
    ConfidenceLevel,
    ExpectationProof,
    FrozenModel,
)
from verdictos.primitives.trace import Interaction

# ─── Enums ────────────────────────────────────────────────────────


class FindingOutcome(enum.StrEnum):
    SILENT_FAILURE = "SILENT_FAILURE"  # Effect expected, none (or the wrong one) observed
    UNMET_EXPECTATION = "UNMET_EXPECTATION"  # Runtime-derived expectation not met
    COVERAGE_GAP = "COVERAGE_GAP"  # Could not be evaluated


class FindingStatus(enum.StrEnum):
    """Truth status of a finding. Each status owns a fixed score range."""

    CONFIRMED = "CONFIRMED"
    SUSPECTED = "SUSPECTED"
    INFORMATIONAL = "INFORMATIONAL"
    IGNORED = "IGNORED"


# ─── Enrichment records ──────────────────────────────────────────


class Cause(FrozenModel):
    """A likely, never certain, explanation for a finding."""

    id: str
    title: str
    statement: str
    evidence_refs: list[str] = Field(default_factory=list)
    confidence: ConfidenceLevel

    @field_validator("confidence")
    @classmethod
    def _never_high(cls, v: ConfidenceLevel) -> ConfidenceLevel:
        if v not in (ConfidenceLevel.LOW, ConfidenceLevel.MEDIUM):
            raise ValueError(f"cause confidence must be LOW or MEDIUM, got {v}")
        return v


class FindingConfidence(FrozenModel):
    score: float = Field(ge=0.0, le=1.0)
    level: ConfidenceLevel
    status: FindingStatus
    reasons: list[str] = Field(default_factory=list)


class SignalGrouping(FrozenModel):
    group_by_route: str = "*"
    group_by_failure_type: str = "unknown"
    group_by_feature: str = "unknown"


class FindingSignals(FrozenModel):
    impact: str  # LOW | MEDIUM | HIGH
    user_risk: str  # BLOCKS | CONFUSES | DEGRADES
    ownership: str  # FRONTEND | BACKEND | INTEGRATION | ACCESSIBILITY | PERFORMANCE
    grouping: SignalGrouping = Field(default_factory=SignalGrouping)


# ─── Finding ──────────────────────────────────────────────────────


class Finding(FrozenModel):
    id: str
    type: str
    outcome: FindingOutcome
    reason: str = ""
    evidence: dict[str, Any]
    interaction: Interaction = Field(default_factory=Interaction)
    trace_index: int | None = None
    expectation_id: str | None = None
    proof: ExpectationProof = ExpectationProof.UNPROVEN
    url: str = ""
    confidence: FindingConfidence | None = None
    causes: list[Cause] = Field(default_factory=list)
    signals: FindingSignals | None = None

    @model_validator(mode="after")
    def _evidence_required(self) -> Finding:
        if not self.evidence:
            raise EvidenceLawError(f"Finding {self.id!r} has no supporting evidence")
        return self


class ScopeMarker(FrozenModel):
    """Record that a trace lies outside the pre-auth analysis boundary."""

    type: str
    confidence: float = Field(ge=0.0, le=1.0)
    trace_index: int
    reason: str
    evidence: dict[str, Any] = Field(default_factory=dict)


def finding_id(trace_index: int | None, finding_type: str, n: int) -> str:
    """Deterministic id: position in the run, type, and per-type sequence."""
    position = "run" if trace_index is None else str(trace_index)
    return f"finding-{position}-{finding_type}-{n}"
