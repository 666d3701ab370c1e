"""
VerdictOS -- Confidence Types

Reason codes, pillar scores and the full assessment record produced by the
confidence engine. The assessment is richer than the `FindingConfidence`
attached to a finding: it keeps the pillars, the evidence package and every
invariant correction so a report can explain the score.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field

from verdictos.primitives.common import ConfidenceLevel, FrozenModel
from verdictos.primitives.finding import FindingConfidence, FindingStatus


class ConfidenceReason(enum.StrEnum):
    # Promise strength
    PROMISE_PROVEN = "PROMISE_PROVEN"
    PROMISE_OBSERVED = "PROMISE_OBSERVED"
    PROMISE_UNKNOWN = "PROMISE_UNKNOWN"

    # Observation strength
    OBS_URL_CHANGED = "OBS_URL_CHANGED"
    OBS_DOM_CHANGED = "OBS_DOM_CHANGED"
    OBS_UI_FEEDBACK_CONFIRMED = "OBS_UI_FEEDBACK_CONFIRMED"
    OBS_CONSOLE_ERRORS = "OBS_CONSOLE_ERRORS"
    OBS_NETWORK_FAILURE = "OBS_NETWORK_FAILURE"
    OBS_NETWORK_SUCCESS = "OBS_NETWORK_SUCCESS"
    OBS_NO_SIGNALS = "OBS_NO_SIGNALS"

    # Correlation quality
    CORR_TIMING_ALIGNED = "CORR_TIMING_ALIGNED"
    CORR_ROUTE_MATCHED = "CORR_ROUTE_MATCHED"
    CORR_REQUEST_MATCHED = "CORR_REQUEST_MATCHED"
    CORR_TRACE_LINKED = "CORR_TRACE_LINKED"
    CORR_WEAK_CORRELATION = "CORR_WEAK_CORRELATION"

    # Guardrails and contradictions
    GUARD_ANALYTICS_FILTERED = "GUARD_ANALYTICS_FILTERED"
    GUARD_SHALLOW_ROUTING = "GUARD_SHALLOW_ROUTING"
    GUARD_NETWORK_SUCCESS_NO_UI = "GUARD_NETWORK_SUCCESS_NO_UI"
    GUARD_UI_FEEDBACK_PRESENT = "GUARD_UI_FEEDBACK_PRESENT"
    GUARD_CONTRADICTION_DETECTED = "GUARD_CONTRADICTION_DETECTED"

    # Evidence completeness
    EVIDENCE_SCREENSHOTS = "EVIDENCE_SCREENSHOTS"
    EVIDENCE_TRACES = "EVIDENCE_TRACES"
    EVIDENCE_SIGNALS = "EVIDENCE_SIGNALS"
    EVIDENCE_SNIPPETS = "EVIDENCE_SNIPPETS"
    EVIDENCE_INCOMPLETE = "EVIDENCE_INCOMPLETE"

    # Truth locks
    TRUTH_LOCK_CONTRADICTION = "TRUTH_LOCK_CONTRADICTION"
    TRUTH_LOCK_NON_DETERMINISTIC_CAP = "TRUTH_LOCK_NON_DETERMINISTIC_CAP"
    TRUTH_LOCK_EVIDENCE_INCOMPLETE = "TRUTH_LOCK_EVIDENCE_INCOMPLETE"


class DeterminismVerdict(enum.StrEnum):
    DETERMINISTIC = "DETERMINISTIC"
    NON_DETERMINISTIC = "NON_DETERMINISTIC"


class VerificationStatus(enum.StrEnum):
    VERIFIED = "VERIFIED"
    VERIFIED_WITH_ERRORS = "VERIFIED_WITH_ERRORS"  # Expectation met, but the trace also produced findings


class InvariantCode(enum.StrEnum):
    CONFIRMED_BELOW_MIN = "INV_CONFIRMED_BELOW_MIN"
    SUSPECTED_ABOVE_MAX = "INV_SUSPECTED_ABOVE_MAX"
    SUSPECTED_BELOW_MIN = "INV_SUSPECTED_BELOW_MIN"
    INFORMATIONAL_ABOVE_MAX = "INV_INFORMATIONAL_ABOVE_MAX"
    INFORMATIONAL_BELOW_MIN = "INV_INFORMATIONAL_BELOW_MIN"
    IGNORED_NON_ZERO = "INV_IGNORED_NON_ZERO"
    UNPROVEN_EXPECTATION_ABOVE_MAX = "INV_UNPROVEN_EXPECTATION_ABOVE_MAX"
    VERIFIED_WITH_ERRORS_ABOVE_MAX = "INV_VERIFIED_WITH_ERRORS_ABOVE_MAX"


class InvariantViolation(FrozenModel):
    code: InvariantCode
    message: str
    original_score: float
    corrected_score: float
    original_status: FindingStatus
    corrected_status: FindingStatus


class PillarScores(FrozenModel):
    promise_strength: float = 0.0
    observation_strength: float = 0.0
    correlation_quality: float = 0.0
    guardrails: float = 1.0
    evidence_completeness: float = 0.0


class EvidencePackage(FrozenModel):
    """
    What a CONFIRMED finding must be able to show: the trigger that made the
    promise, the page before and after, the interaction, and the network and
    UI sensors.
    """

    trigger_source: str | None = None
    before_url: str = ""
    after_url: str = ""
    before_screenshot: str = ""
    after_screenshot: str = ""
    interaction_type: str = ""
    network: dict[str, Any] = Field(default_factory=dict)
    ui_signals: dict[str, Any] = Field(default_factory=dict)
    missing_evidence: list[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_evidence


class ConfidenceAssessment(FrozenModel):
    score: float = Field(ge=0.0, le=1.0)
    level: ConfidenceLevel
    status: FindingStatus
    requested_status: FindingStatus
    pillars: PillarScores
    reasons: list[ConfidenceReason] = Field(default_factory=list)
    invariant_violations: list[InvariantViolation] = Field(default_factory=list)
    evidence_package: EvidencePackage

    def to_finding_confidence(self) -> FindingConfidence:
        return FindingConfidence(
            score=self.score,
            level=self.level,
            status=self.status,
            reasons=[str(r) for r in self.reasons] + [str(v.code) for v in self.invariant_violations],
        )
