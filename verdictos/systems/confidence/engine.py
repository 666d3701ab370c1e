"""
VerdictOS -- Confidence & Truth-Lock Engine

Five pillars, weighted into one score:

  A. Promise strength        how firmly the expected behavior is established
  B. Observation strength    how much the sensors actually saw
  C. Correlation quality     how well the observation lines up with the promise
  D. Guardrails              contradictions; this pillar only ever subtracts
  E. Evidence completeness   screenshots, trace ids, signals, source snippets

Weights, base scores and level thresholds come from ConfidenceConfig. The
truth locks below are module constants and cannot be configured away:

  - a contradiction (guardrails < 0.5) costs 0.3
  - a non-deterministic run never scores above 0.6
  - CONFIRMED requires a complete evidence package; otherwise SUSPECTED, capped at 0.6
  - status is never upgraded by score
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from verdictos.config import ConfidenceConfig
from verdictos.primitives.common import ConfidenceLevel, ExpectationProof
from verdictos.primitives.finding import Finding, FindingStatus
from verdictos.primitives.trace import Trace, is_true, lookup, number, sequence
from verdictos.systems.confidence.evidence import build_evidence_package
from verdictos.systems.confidence.invariants import enforce_confidence_invariants
from verdictos.systems.confidence.types import (
    ConfidenceAssessment,
    ConfidenceReason,
    DeterminismVerdict,
    PillarScores,
    VerificationStatus,
)

logger = structlog.get_logger()

# ─── Truth locks ─────────────────────────────────────────────────

CONTRADICTION_THRESHOLD = 0.5
CONTRADICTION_PENALTY = 0.3
NON_DETERMINISTIC_MAX_CONFIDENCE = 0.6
INCOMPLETE_EVIDENCE_MAX_CONFIDENCE = 0.6

# Level gates beyond the raw thresholds
HIGH_MIN_PROMISE = 0.9
HIGH_MIN_COMPLETENESS = 0.7
MEDIUM_FALLBACK_SCORE = 0.5
MEDIUM_FALLBACK_PROMISE = 0.7

_ANALYTICS_MARKER = "/api/analytics"


class ConfidenceEngine:
    """
    Scores findings. Pure: the same finding, trace and options always yield
    the same assessment.
    """

    def __init__(self, config: ConfidenceConfig | None = None) -> None:
        self._config = config or ConfidenceConfig()
        self._logger = logger.bind(system="confidence", component="engine")

    # ─── Public API ──────────────────────────────────────────────

    def assess(
        self,
        finding: Finding,
        trace: Trace | None = None,
        *,
        requested_status: FindingStatus = FindingStatus.SUSPECTED,
        determinism: DeterminismVerdict = DeterminismVerdict.DETERMINISTIC,
        verification_status: VerificationStatus | None = None,
        source_ref: str | None = None,
    ) -> ConfidenceAssessment:
        reasons: list[ConfidenceReason] = []
        sensors: Mapping[str, Any] = trace.sensors if trace is not None else {}

        pillars = PillarScores(
            promise_strength=self._promise_strength(finding.proof, reasons),
            observation_strength=self._observation_strength(finding.evidence, sensors, reasons),
            correlation_quality=self._correlation_quality(finding, trace, reasons),
            guardrails=self._guardrails(finding.type, sensors, reasons),
            evidence_completeness=self._evidence_completeness(trace, source_ref, reasons),
        )

        w = self._config.weights
        score = (
            pillars.promise_strength * w.promise_strength
            + pillars.observation_strength * w.observation_strength
            + pillars.correlation_quality * w.correlation_quality
            + pillars.guardrails * w.guardrails
            + pillars.evidence_completeness * w.evidence_completeness
        )

        if pillars.guardrails < CONTRADICTION_THRESHOLD:
            reasons.append(ConfidenceReason.TRUTH_LOCK_CONTRADICTION)
            score -= CONTRADICTION_PENALTY
        score = max(0.0, min(1.0, score))

        if determinism == DeterminismVerdict.NON_DETERMINISTIC and score > NON_DETERMINISTIC_MAX_CONFIDENCE:
            reasons.append(ConfidenceReason.TRUTH_LOCK_NON_DETERMINISTIC_CAP)
            score = NON_DETERMINISTIC_MAX_CONFIDENCE

        package = build_evidence_package(finding, trace, source_ref)
        status = requested_status
        if status == FindingStatus.CONFIRMED and not package.is_complete:
            reasons.append(ConfidenceReason.TRUTH_LOCK_EVIDENCE_INCOMPLETE)
            status = FindingStatus.SUSPECTED
            score = min(score, INCOMPLETE_EVIDENCE_MAX_CONFIDENCE)

        score = round(score, 4)
        score, status, violations = enforce_confidence_invariants(
            score, status, finding.proof, verification_status
        )
        if violations:
            self._logger.debug(
                "confidence_invariants_corrected",
                finding_id=finding.id,
                codes=[str(v.code) for v in violations],
            )

        return ConfidenceAssessment(
            score=score,
            level=self.level_for(score, pillars),
            status=status,
            requested_status=requested_status,
            pillars=pillars,
            reasons=reasons,
            invariant_violations=violations,
            evidence_package=package,
        )

    def score_finding(
        self,
        finding: Finding,
        trace: Trace | None = None,
        **options: Any,
    ) -> Finding:
        """Return a copy of the finding with its confidence attached."""
        assessment = self.assess(finding, trace, **options)
        return finding.model_copy(update={"confidence": assessment.to_finding_confidence()})

    def level_for(self, score: float, pillars: PillarScores) -> ConfidenceLevel:
        t = self._config.thresholds
        if (
            score >= t.high
            and pillars.promise_strength >= HIGH_MIN_PROMISE
            and pillars.evidence_completeness >= HIGH_MIN_COMPLETENESS
        ):
            return ConfidenceLevel.HIGH
        if score >= t.medium or (
            score >= MEDIUM_FALLBACK_SCORE and pillars.promise_strength >= MEDIUM_FALLBACK_PROMISE
        ):
            return ConfidenceLevel.MEDIUM
        if score >= t.low:
            return ConfidenceLevel.LOW
        return ConfidenceLevel.UNPROVEN

    # ─── Pillars ─────────────────────────────────────────────────

    def _promise_strength(self, proof: ExpectationProof, reasons: list[ConfidenceReason]) -> float:
        base = self._config.base_scores
        match proof:
            case ExpectationProof.PROVEN:
                reasons.append(ConfidenceReason.PROMISE_PROVEN)
                return base.promise_proven
            case ExpectationProof.OBSERVED:
                reasons.append(ConfidenceReason.PROMISE_OBSERVED)
                return base.promise_observed
        reasons.append(ConfidenceReason.PROMISE_UNKNOWN)
        return base.promise_unknown

    def _observation_strength(
        self,
        evidence: Mapping[str, Any],
        sensors: Mapping[str, Any],
        reasons: list[ConfidenceReason],
    ) -> float:
        base = self._config.base_scores
        strength = 0.0
        signals = 0

        if evidence.get("url_changed") is True or is_true(sensors, "navigation.urlChanged"):
            reasons.append(ConfidenceReason.OBS_URL_CHANGED)
            strength += base.url_changed
            signals += 1
        if evidence.get("dom_changed") is True:
            reasons.append(ConfidenceReason.OBS_DOM_CHANGED)
            strength += base.dom_changed
            signals += 1
        if number(sensors, "uiFeedback.overallUiFeedbackScore") > 0.5:
            reasons.append(ConfidenceReason.OBS_UI_FEEDBACK_CONFIRMED)
            strength += base.ui_feedback_confirmed
            signals += 1
        console_errors = evidence.get("console_errors")
        if isinstance(console_errors, int) and not isinstance(console_errors, bool) and console_errors > 0:
            reasons.append(ConfidenceReason.OBS_CONSOLE_ERRORS)
            strength += base.console_errors
            signals += 1
        network_failure = evidence.get("network_failure") is True
        if network_failure:
            reasons.append(ConfidenceReason.OBS_NETWORK_FAILURE)
            strength += base.network_failure
            signals += 1
        if number(sensors, "network.successfulRequests") > 0 and not network_failure:
            reasons.append(ConfidenceReason.OBS_NETWORK_SUCCESS)
            strength += base.network_success
            signals += 1

        if signals == 0:
            reasons.append(ConfidenceReason.OBS_NO_SIGNALS)
            return 0.0
        return min(1.0, strength)

    def _correlation_quality(
        self,
        finding: Finding,
        trace: Trace | None,
        reasons: list[ConfidenceReason],
    ) -> float:
        base = self._config.base_scores
        quality = 0.5
        sensors = trace.sensors if trace is not None else {}

        if lookup(sensors, "timing") is not None:
            reasons.append(ConfidenceReason.CORR_TIMING_ALIGNED)
            quality += base.timing_aligned
        if finding.evidence.get("target_path"):
            reasons.append(ConfidenceReason.CORR_ROUTE_MATCHED)
            quality += base.route_matched
        expected_request = finding.evidence.get("expected_request_url")
        if expected_request and trace is not None and any(expected_request in u for u in trace.request_urls):
            reasons.append(ConfidenceReason.CORR_REQUEST_MATCHED)
            quality += base.request_matched
        if finding.expectation_id or (trace is not None and trace.trace_id):
            reasons.append(ConfidenceReason.CORR_TRACE_LINKED)
            quality += base.trace_linked

        if quality < 0.6:
            reasons.append(ConfidenceReason.CORR_WEAK_CORRELATION)
        return min(1.0, quality)

    def _guardrails(
        self,
        finding_type: str,
        sensors: Mapping[str, Any],
        reasons: list[ConfidenceReason],
    ) -> float:
        score = 1.0
        silent = "silent_failure" in finding_type
        url_changed = is_true(sensors, "navigation.urlChanged")
        ui_changed = is_true(sensors, "uiSignals.diff.changed")
        feedback_score = number(sensors, "uiFeedback.overallUiFeedbackScore")

        observed = sequence(sensors, "network.observedRequestUrls")
        if any(isinstance(u, str) and _ANALYTICS_MARKER in u for u in observed) and not url_changed and not ui_changed:
            reasons.append(ConfidenceReason.GUARD_ANALYTICS_FILTERED)
            score -= 0.2
        if is_true(sensors, "navigation.shallowRouting") and not url_changed:
            reasons.append(ConfidenceReason.GUARD_SHALLOW_ROUTING)
            score -= 0.3
        if number(sensors, "network.successfulRequests") > 0 and not ui_changed and not feedback_score and silent:
            reasons.append(ConfidenceReason.GUARD_NETWORK_SUCCESS_NO_UI)
            score -= 0.2
        if feedback_score > 0.5 and silent:
            reasons.append(ConfidenceReason.GUARD_UI_FEEDBACK_PRESENT)
            score -= 0.4

        if score < 0.6:
            reasons.append(ConfidenceReason.GUARD_CONTRADICTION_DETECTED)
        return max(0.0, score)

    def _evidence_completeness(
        self,
        trace: Trace | None,
        source_ref: str | None,
        reasons: list[ConfidenceReason],
    ) -> float:
        base = self._config.base_scores
        completeness = 0.0
        if trace is not None and trace.before_screenshot and trace.after_screenshot:
            reasons.append(ConfidenceReason.EVIDENCE_SCREENSHOTS)
            completeness += base.screenshots
        if trace is not None and trace.trace_id:
            reasons.append(ConfidenceReason.EVIDENCE_TRACES)
            completeness += base.traces
        if trace is not None and trace.sensors:
            reasons.append(ConfidenceReason.EVIDENCE_SIGNALS)
            completeness += base.signals
        if source_ref:
            reasons.append(ConfidenceReason.EVIDENCE_SNIPPETS)
            completeness += base.snippets

        if completeness < 0.5:
            reasons.append(ConfidenceReason.EVIDENCE_INCOMPLETE)
        return min(1.0, completeness)
