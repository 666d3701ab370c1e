"""
Tests for Silence Impact accounting.

Covers:
  - Per-type profiles and evaluation-status adjustment
  - Aggregation clamping at -100
  - Severity bucketing and impact summary
"""

from __future__ import annotations

from verdictos.systems.silence import (
    EvaluationStatus,
    SilenceLedger,
    SilenceType,
    aggregate_silence_impacts,
    categorize_by_severity,
    compute_silence_impact,
    create_impact_summary,
)


class TestComputeImpact:
    def test_profile_without_status(self):
        impact = compute_silence_impact(SilenceType.SENSOR_FAILURE)
        assert (impact.coverage, impact.promise_verification, impact.overall) == (-20, -15, -18)

    def test_blocked_softens_promise_impact(self):
        impact = compute_silence_impact(SilenceType.SAFETY_POLICY_BLOCK, EvaluationStatus.BLOCKED)
        assert impact.promise_verification == -20

    def test_timed_out_hardens_promise_impact(self):
        impact = compute_silence_impact(SilenceType.INTERACTION_TIMEOUT, EvaluationStatus.TIMED_OUT)
        assert impact.promise_verification == -25

    def test_ambiguous_never_turns_positive(self):
        impact = compute_silence_impact(SilenceType.PROMISE_NOT_EVALUATED, EvaluationStatus.AMBIGUOUS)
        assert impact.promise_verification == 0

    def test_unprofiled_type_is_conservative(self):
        impact = compute_silence_impact(SilenceType.SELECTOR_NOT_FOUND)
        assert (impact.coverage, impact.promise_verification, impact.overall) == (-5, -5, -5)


class TestAggregation:
    def test_aggregate_clamps_at_floor(self):
        ledger = SilenceLedger()
        for i in range(20):
            ledger.record("page", "sensor_failed", f"sensor {i}")
        total = aggregate_silence_impacts(ledger.entries)
        assert total.coverage == -100
        assert total.overall == -100

    def test_categorize_by_severity(self):
        ledger = SilenceLedger()
        ledger.record("page", "sensor_failed", "a")
        ledger.record("page", "load_timeout", "b")
        ledger.record("page", "incremental_unchanged", "c")
        buckets = categorize_by_severity(ledger.entries)
        assert [len(buckets[k]) for k in ("critical", "high", "medium", "low")] == [1, 1, 0, 1]

    def test_summary_ranks_costliest_types_first(self):
        ledger = SilenceLedger()
        ledger.record("page", "incremental_unchanged", "reuse")
        ledger.record("page", "sensor_failed", "sensor")
        ledger.record("page", "page_limit_exceeded", "budget")
        summary = create_impact_summary(ledger.entries)
        assert summary.total_silences == 3
        assert summary.most_impactful_types[0].type == "sensor_failure"
        assert summary.affected_dimensions["coverage"][0] == "sensor_failure"
        assert "incremental_reuse" not in summary.affected_dimensions["overall"]
        assert summary.confidence_interpretation.startswith("MODERATE")

    def test_empty_summary(self):
        summary = create_impact_summary([])
        assert summary.total_silences == 0
        assert summary.most_impactful_types == []
