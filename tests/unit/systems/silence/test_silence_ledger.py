"""
Tests for the Silence Ledger.

Covers:
  - Recording and taxonomy inference (category, type, status, trigger)
  - Rejection of incomplete or unknown entries
  - Queries (by category, reason, expectation coverage)
  - Summary counts and deterministic export ordering
"""

from __future__ import annotations

import pytest

from verdictos.errors import SilenceRecordError
from verdictos.primitives.common import canonical_json
from verdictos.systems.silence import (
    EvaluationStatus,
    SilenceCategory,
    SilenceLedger,
    SilenceReason,
    SilenceType,
)


def _make_ledger(*events: tuple[str, str, str]) -> SilenceLedger:
    ledger = SilenceLedger()
    for scope, reason, description in events:
        ledger.record(scope, reason, description)
    return ledger


# ─── Recording ───────────────────────────────────────────────────


class TestRecord:
    def test_budget_reason_is_classified(self):
        ledger = SilenceLedger()
        entry = ledger.record("interaction", "interaction_limit_exceeded", "cap hit", count=3)
        assert entry.category == SilenceCategory.BUDGET
        assert entry.silence_type == SilenceType.BUDGET_LIMIT_EXCEEDED
        assert entry.evaluation_status == EvaluationStatus.SKIPPED
        assert entry.trigger == "interaction_limit_exceeded"
        assert entry.count == 3

    def test_timeout_reason_is_timed_out(self):
        entry = SilenceLedger().record("page", SilenceReason.NAVIGATION_TIMEOUT, "slow page")
        assert entry.category == SilenceCategory.TIMEOUT
        assert entry.silence_type == SilenceType.INTERACTION_TIMEOUT
        assert entry.evaluation_status == EvaluationStatus.TIMED_OUT

    def test_safety_reason_is_blocked(self):
        entry = SilenceLedger().record("interaction", "destructive_text", "delete account")
        assert entry.category == SilenceCategory.SAFETY
        assert entry.silence_type == SilenceType.SAFETY_POLICY_BLOCK
        assert entry.evaluation_status == EvaluationStatus.BLOCKED
        assert entry.trigger == "destructive_text_block"

    def test_post_auth_boundary_is_scope(self):
        entry = SilenceLedger().record("trace", "post_auth_boundary", "403 on /admin")
        assert entry.category == SilenceCategory.SCOPE
        assert entry.silence_type == SilenceType.OUT_OF_SCOPE
        assert entry.evaluation_status == EvaluationStatus.SKIPPED

    def test_impact_is_never_positive(self):
        ledger = SilenceLedger()
        for reason in SilenceReason:
            entry = ledger.record("scope", reason, f"{reason} happened")
            assert entry.impact.coverage <= 0
            assert entry.impact.promise_verification <= 0
            assert entry.impact.overall <= 0

    def test_missing_description_rejected(self):
        with pytest.raises(SilenceRecordError):
            SilenceLedger().record("page", "sensor_failed", "")

    def test_missing_scope_rejected(self):
        with pytest.raises(SilenceRecordError):
            SilenceLedger().record("", "sensor_failed", "no sensor")

    def test_unknown_reason_rejected(self):
        with pytest.raises(SilenceRecordError):
            SilenceLedger().record("page", "felt_like_it", "not a reason")

    def test_record_batch_accepts_camel_case_expectation(self):
        ledger = SilenceLedger()
        ledger.record_batch([
            {"scope": "expectation", "reason": "interaction_limit_exceeded",
             "description": "skipped", "expectationId": "exp-1"},
        ])
        assert ledger.covers_expectation("exp-1")
        assert not ledger.covers_expectation("exp-2")

    def test_record_batch_counts(self):
        ledger = SilenceLedger()
        [entry] = ledger.record_batch([
            {"scope": "page", "reason": "page_limit_exceeded", "description": "cap", "count": "3"},
        ])
        assert entry.count == 3

    @pytest.mark.parametrize("count", ["many", [2], True])
    def test_record_batch_malformed_count_rejected(self, count):
        with pytest.raises(SilenceRecordError):
            SilenceLedger().record_batch([
                {"scope": "page", "reason": "page_limit_exceeded", "description": "cap", "count": count},
            ])

    def test_duplicate_expectation_reason(self):
        entry = SilenceLedger().record("expectation", "duplicate_expectation", "exp-1 declared twice")
        assert entry.category == SilenceCategory.EXPECTATION
        assert entry.trigger == "duplicate_expectation_id"

    def test_duplicate_notice_does_not_cover_expectation(self):
        ledger = SilenceLedger()
        ledger.record("expectation", "duplicate_expectation", "declared twice", expectation_id="exp-1")
        assert not ledger.covers_expectation("exp-1")


# ─── Queries ─────────────────────────────────────────────────────


class TestQueries:
    def test_by_category_and_reason(self):
        ledger = _make_ledger(
            ("page", "page_limit_exceeded", "too many pages"),
            ("page", "load_timeout", "slow"),
            ("interaction", "sensor_unavailable", "no network sensor"),
        )
        assert len(ledger.by_category(SilenceCategory.BUDGET)) == 1
        assert len(ledger.by_reason("load_timeout")) == 1
        assert len(ledger.by_type(SilenceType.SENSOR_FAILURE)) == 1

    def test_blockers_and_gaps(self):
        ledger = _make_ledger(
            ("interaction", "external_blocked", "leaves origin"),
            ("interaction", "interaction_timeout", "hung"),
            ("interaction", "incremental_unchanged", "reused"),
        )
        assert len(ledger.promise_verification_blockers()) == 2
        assert len(ledger.coverage_gaps()) == 1

    def test_total_count_sums_counts(self):
        ledger = SilenceLedger()
        ledger.record("page", "page_limit_exceeded", "a", count=4)
        ledger.record("page", "page_limit_exceeded", "b")
        assert len(ledger) == 2
        assert ledger.total_count == 5


# ─── Reporting ───────────────────────────────────────────────────


class TestReporting:
    def test_summary_counts(self):
        ledger = _make_ledger(
            ("page", "page_limit_exceeded", "a"),
            ("page", "scan_time_exceeded", "b"),
            ("interaction", "sensor_failed", "c"),
        )
        summary = ledger.summary()
        assert summary.total_silences == 3
        assert summary.by_category == {"budget": 2, "sensor": 1}
        assert summary.by_scope == {"interaction": 1, "page": 2}
        assert summary.by_impact_severity["critical"] == 1
        assert summary.aggregated_impact.overall < 0

    def test_empty_summary(self):
        summary = SilenceLedger().summary()
        assert summary.total_silences == 0
        assert summary.aggregated_impact.overall == 0
        assert summary.interpretation.startswith("No silence events")

    def test_export_order_independent_of_record_order(self):
        events = [
            ("page", "load_timeout", "slow"),
            ("interaction", "destructive_text", "logout"),
            ("interaction", "destructive_text", "delete"),
        ]
        forward = _make_ledger(*events).export()
        backward = _make_ledger(*reversed(events)).export()
        assert canonical_json(forward) == canonical_json(backward)
        descriptions = [e["description"] for e in forward["entries"]]
        assert descriptions == ["delete", "logout", "slow"]
