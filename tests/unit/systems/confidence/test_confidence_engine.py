"""
Tests for the Confidence & Truth-Lock Engine.

Covers:
  - Weighted pillar scoring and level thresholds
  - Truth locks: incomplete evidence, non-determinism, contradiction
  - Status-range invariants only ever correct downward
  - Evidence package completeness
  - score_finding returns a copy
"""

from __future__ import annotations

from typing import Any

import pytest

from verdictos.primitives.common import ConfidenceLevel, ExpectationProof
from verdictos.primitives.finding import Finding, FindingOutcome, FindingStatus
from verdictos.primitives.trace import Trace
from verdictos.systems.confidence import (
    CONFIDENCE_RANGES,
    ConfidenceEngine,
    ConfidenceReason,
    DeterminismVerdict,
    InvariantCode,
    PillarScores,
    VerificationStatus,
    build_evidence_package,
    enforce_confidence_invariants,
)


def _make_trace(**kwargs: Any) -> Trace:
    data: dict[str, Any] = {
        "interaction": {"type": "click", "selector": "a.about", "href": "/about"},
        "beforeUrl": "http://app.test/home",
        "afterUrl": "http://app.test/home",
        "beforeScreenshot": "shots/before.png",
        "afterScreenshot": "shots/after.png",
        "traceId": "trace-1",
        "sensors": {
            "network": {"totalRequests": 0},
            "uiSignals": {"diff": {"changed": False}},
        },
    }
    data.update(kwargs)
    return Trace.model_validate(data)


def _make_finding(proof: ExpectationProof = ExpectationProof.PROVEN, **evidence: Any) -> Finding:
    base = {
        "url_changed": False,
        "dom_changed": False,
        "console_errors": 2,
        "network_failure": False,
        "target_path": "/about",
    }
    base.update(evidence)
    return Finding(
        id="finding-0-navigation_silent_failure-1",
        type="navigation_silent_failure",
        outcome=FindingOutcome.SILENT_FAILURE,
        reason="no_effect",
        evidence=base,
        interaction={"type": "click", "selector": "a.about"},
        trace_index=0,
        expectation_id="exp-about" if proof == ExpectationProof.PROVEN else None,
        proof=proof,
        url="http://app.test/home",
    )


_SOURCE = "src/nav.tsx:12"


# ─── Scoring ─────────────────────────────────────────────────────


class TestScoring:
    def test_confirmed_with_complete_package(self):
        result = ConfidenceEngine().assess(
            _make_finding(), _make_trace(),
            requested_status=FindingStatus.CONFIRMED, source_ref=_SOURCE,
        )
        assert result.evidence_package.is_complete
        assert result.status == FindingStatus.CONFIRMED
        assert result.score == pytest.approx(0.72)
        assert result.level == ConfidenceLevel.MEDIUM
        assert result.pillars.promise_strength == 1.0
        assert result.pillars.evidence_completeness == pytest.approx(1.0)
        assert ConfidenceReason.PROMISE_PROVEN in result.reasons

    def test_no_signals_reason(self):
        result = ConfidenceEngine().assess(_make_finding(console_errors=0), _make_trace())
        assert result.pillars.observation_strength == 0.0
        assert ConfidenceReason.OBS_NO_SIGNALS in result.reasons

    def test_assessment_is_deterministic(self):
        engine = ConfidenceEngine()
        first = engine.assess(_make_finding(), _make_trace(), source_ref=_SOURCE)
        second = engine.assess(_make_finding(), _make_trace(), source_ref=_SOURCE)
        assert first == second


class TestLevels:
    def test_high_needs_strong_promise_and_evidence(self):
        engine = ConfidenceEngine()
        strong = PillarScores(promise_strength=1.0, evidence_completeness=1.0)
        weak_promise = PillarScores(promise_strength=0.8, evidence_completeness=1.0)
        assert engine.level_for(0.85, strong) == ConfidenceLevel.HIGH
        assert engine.level_for(0.85, weak_promise) == ConfidenceLevel.MEDIUM

    def test_medium_fallback_for_strong_promise(self):
        engine = ConfidenceEngine()
        assert engine.level_for(0.55, PillarScores(promise_strength=0.8)) == ConfidenceLevel.MEDIUM
        assert engine.level_for(0.55, PillarScores(promise_strength=0.3)) == ConfidenceLevel.LOW

    def test_unproven_below_low(self):
        assert ConfidenceEngine().level_for(0.2, PillarScores()) == ConfidenceLevel.UNPROVEN


# ─── Truth locks ─────────────────────────────────────────────────


class TestTruthLocks:
    def test_confirmed_without_screenshots_is_suspected(self):
        trace = _make_trace(beforeScreenshot="", afterScreenshot="")
        result = ConfidenceEngine().assess(
            _make_finding(), trace,
            requested_status=FindingStatus.CONFIRMED, source_ref=_SOURCE,
        )
        assert result.status == FindingStatus.SUSPECTED
        assert result.score == pytest.approx(0.6)
        assert "before.screenshot" in result.evidence_package.missing_evidence
        assert ConfidenceReason.TRUTH_LOCK_EVIDENCE_INCOMPLETE in result.reasons

    def test_non_deterministic_cap_demotes_confirmed(self):
        result = ConfidenceEngine().assess(
            _make_finding(), _make_trace(),
            requested_status=FindingStatus.CONFIRMED,
            determinism=DeterminismVerdict.NON_DETERMINISTIC,
            source_ref=_SOURCE,
        )
        assert result.score == pytest.approx(0.6)
        assert result.status == FindingStatus.SUSPECTED
        assert [v.code for v in result.invariant_violations] == [InvariantCode.CONFIRMED_BELOW_MIN]

    def test_contradiction_penalty(self):
        sensors = {
            "network": {"totalRequests": 1},
            "uiSignals": {"diff": {"changed": False}},
            "uiFeedback": {"overallUiFeedbackScore": 0.9},
            "navigation": {"shallowRouting": True},
        }
        result = ConfidenceEngine().assess(_make_finding(), _make_trace(sensors=sensors))
        assert result.pillars.guardrails == pytest.approx(0.3)
        assert ConfidenceReason.GUARD_CONTRADICTION_DETECTED in result.reasons
        assert ConfidenceReason.TRUTH_LOCK_CONTRADICTION in result.reasons

    def test_unproven_expectation_capped(self):
        result = ConfidenceEngine().assess(
            _make_finding(ExpectationProof.UNPROVEN, target_path=None), _make_trace()
        )
        assert result.score == pytest.approx(0.39)
        assert result.level == ConfidenceLevel.LOW
        assert result.invariant_violations[0].code == InvariantCode.UNPROVEN_EXPECTATION_ABOVE_MAX

    def test_status_never_upgraded(self):
        result = ConfidenceEngine().assess(
            _make_finding(), _make_trace(),
            requested_status=FindingStatus.INFORMATIONAL, source_ref=_SOURCE,
        )
        assert result.status == FindingStatus.INFORMATIONAL
        assert result.score == pytest.approx(0.29)


# ─── Invariants ──────────────────────────────────────────────────


class TestInvariants:
    def test_suspected_above_max_is_capped(self):
        score, status, violations = enforce_confidence_invariants(0.8, FindingStatus.SUSPECTED)
        assert (score, status) == (0.69, FindingStatus.SUSPECTED)
        assert violations[0].code == InvariantCode.SUSPECTED_ABOVE_MAX

    def test_confirmed_below_min_demotes(self):
        score, status, _ = enforce_confidence_invariants(0.5, FindingStatus.CONFIRMED)
        assert (score, status) == (0.5, FindingStatus.SUSPECTED)

    def test_demotion_walks_the_ladder(self):
        score, status, violations = enforce_confidence_invariants(0.1, FindingStatus.CONFIRMED)
        assert (score, status) == (0.1, FindingStatus.INFORMATIONAL)
        assert [v.code for v in violations] == [
            InvariantCode.CONFIRMED_BELOW_MIN,
            InvariantCode.SUSPECTED_BELOW_MIN,
        ]

    def test_zero_is_ignored(self):
        score, status, _ = enforce_confidence_invariants(0.0, FindingStatus.INFORMATIONAL)
        assert (score, status) == (0.0, FindingStatus.IGNORED)

    def test_verified_with_errors_cap(self):
        score, _, violations = enforce_confidence_invariants(
            0.6, FindingStatus.SUSPECTED,
            verification_status=VerificationStatus.VERIFIED_WITH_ERRORS,
        )
        assert score == 0.49
        assert violations[0].code == InvariantCode.VERIFIED_WITH_ERRORS_ABOVE_MAX

    def test_corrections_only_go_down(self):
        for status in CONFIDENCE_RANGES:
            for raw in (0.0, 0.05, 0.29, 0.3, 0.5, 0.69, 0.7, 0.95, 1.0):
                score, _, _ = enforce_confidence_invariants(raw, status)
                assert score <= raw


# ─── Evidence package ────────────────────────────────────────────


class TestEvidencePackage:
    def test_without_trace_is_incomplete(self):
        package = build_evidence_package(_make_finding())
        assert not package.is_complete
        assert package.missing_evidence == [
            "trigger.source",
            "before.screenshot",
            "after.screenshot",
            "after.url",
            "signals.network",
            "signals.uiSignals",
        ]

    def test_score_finding_returns_copy(self):
        finding = _make_finding()
        scored = ConfidenceEngine().score_finding(finding, _make_trace(), source_ref=_SOURCE)
        assert finding.confidence is None
        assert scored.confidence is not None
        assert scored.id == finding.id
