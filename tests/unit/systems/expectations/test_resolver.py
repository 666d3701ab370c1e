"""
Tests for Expectation evaluation and the Expectation Resolver.

Covers:
  - Per-type evaluation outcomes and reasons
  - Policy flags mapping to coverage gaps
  - Budget-exceeded accounting and its silence entries
  - Duplicate declarations and derived ids
"""

from __future__ import annotations

from typing import Any

from verdictos.primitives.trace import Trace
from verdictos.systems.expectations import (
    Expectation,
    ExpectationResolver,
    GapReason,
    ResolutionOutcome,
    derived_expectation_id,
    evaluate_expectation,
)
from verdictos.systems.silence import SilenceLedger, SilenceReason


def _make_trace(**kwargs: Any) -> Trace:
    data: dict[str, Any] = {
        "interaction": {"type": "click", "selector": "#go"},
        "beforeUrl": "http://app.test/home",
        "afterUrl": "http://app.test/home",
    }
    data.update(kwargs)
    return Trace.model_validate(data)


def _make_nav(exp_id: str = "exp-1", target: str = "/about") -> Expectation:
    return Expectation.model_validate(
        {"id": exp_id, "type": "navigation", "fromPath": "/home", "targetPath": target,
         "proof": "PROVEN_EXPECTATION", "sourceRef": "src/App.jsx:10"}
    )


# ─── Evaluation ──────────────────────────────────────────────────


class TestEvaluate:
    def test_navigation_verified_trailing_slash_insensitive(self):
        trace = _make_trace(afterUrl="http://app.test/about/")
        assert evaluate_expectation(_make_nav(), trace).outcome == ResolutionOutcome.VERIFIED

    def test_navigation_target_not_reached(self):
        trace = _make_trace(afterUrl="http://app.test/contact")
        result = evaluate_expectation(_make_nav(), trace)
        assert result.outcome == ResolutionOutcome.SILENT_FAILURE
        assert result.reason == "target_not_reached"

    def test_navigation_no_effect(self):
        result = evaluate_expectation(_make_nav(), _make_trace())
        assert result.reason == "no_effect"

    def test_expected_target_alias(self):
        exp = Expectation.model_validate(
            {"id": "e", "type": "navigation", "expectedTarget": "/about"}
        )
        assert exp.target_path == "/about"

    def test_network_missing_and_mismatch(self):
        exp = Expectation(id="n", type="network_action", expected_request_url="/api/save")
        assert evaluate_expectation(exp, _make_trace()).reason == "network_request_missing"
        other = _make_trace(sensors={"network": {"totalRequests": 1, "firstRequestUrl": "/api/other"}})
        assert evaluate_expectation(exp, other).reason == "network_request_url_mismatch"
        hit = _make_trace(sensors={"network": {"totalRequests": 1, "observedRequestUrls": ["http://app.test/api/save"]}})
        assert evaluate_expectation(exp, hit).outcome == ResolutionOutcome.VERIFIED

    def test_validation_not_blocked(self):
        exp = Expectation(id="v", type="validation_block")
        trace = _make_trace(
            afterUrl="http://app.test/done",
            sensors={"uiSignals": {"after": {"validationFeedbackDetected": True}}},
        )
        assert evaluate_expectation(exp, trace).reason == "validation_not_blocked"

    def test_state_not_changed(self):
        exp = Expectation(id="s", type="state_action", expected_state_key="cart")
        trace = _make_trace(sensors={"state": {"available": True, "changed": ["user"]}})
        assert evaluate_expectation(exp, trace).reason == "state_not_changed"

    def test_policy_timeout_is_gap(self):
        trace = _make_trace(afterUrl="http://app.test/about", policy={"timeout": True})
        result = evaluate_expectation(_make_nav(), trace)
        assert result.outcome == ResolutionOutcome.COVERAGE_GAP
        assert result.reason == GapReason.TIMEOUT


# ─── Resolver ────────────────────────────────────────────────────


class TestResolver:
    def test_linked_traces_are_evaluated(self):
        ledger = SilenceLedger()
        traces = [
            _make_trace(expectationId="exp-1", afterUrl="http://app.test/about"),
            _make_trace(expectationId="exp-2"),
        ]
        report = ExpectationResolver(ledger).resolve(
            [_make_nav("exp-1"), _make_nav("exp-2", "/pricing")], traces
        )
        outcomes = {r.expectation_id: r.outcome for r in report.proven}
        assert outcomes == {
            "exp-1": ResolutionOutcome.VERIFIED,
            "exp-2": ResolutionOutcome.SILENT_FAILURE,
        }
        assert report.attempted == 2
        assert report.budget_exceeded == 0

    def test_unlinked_proven_is_budget_exceeded_with_one_silence(self):
        ledger = SilenceLedger()
        report = ExpectationResolver(ledger).resolve([_make_nav("exp-9")], [])
        assert report.budget_exceeded == 1
        gap = report.proven[0]
        assert gap.reason == GapReason.BUDGET_EXCEEDED
        assert not gap.attempted
        assert len(ledger.by_reason(SilenceReason.INTERACTION_LIMIT_EXCEEDED)) == 1

    def test_upstream_silence_not_duplicated(self):
        ledger = SilenceLedger()
        ledger.record("expectation", "scan_time_exceeded", "stopped", expectation_id="exp-9")
        ExpectationResolver(ledger).resolve([_make_nav("exp-9")], [])
        assert len(ledger) == 1

    def test_out_of_scope_trace_is_gap(self):
        report = ExpectationResolver(SilenceLedger()).resolve(
            [_make_nav("exp-1")], [_make_trace(expectationId="exp-1")], out_of_scope={0}
        )
        assert report.proven[0].reason == GapReason.OUT_OF_SCOPE
        assert report.proven[0].attempted

    def test_policy_gap_records_silence(self):
        ledger = SilenceLedger()
        ExpectationResolver(ledger).resolve(
            [_make_nav("exp-1")],
            [_make_trace(expectationId="exp-1", policy={"executionError": True})],
        )
        assert ledger.by_reason(SilenceReason.EXPECTATION_NOT_REACHABLE)[0].expectation_id == "exp-1"

    def test_unlinked_traces_get_observed_or_unproven(self):
        ledger = SilenceLedger()
        traces = [
            _make_trace(interaction={"type": "click", "selector": "#a", "href": "/about"}),
            _make_trace(),
        ]
        report = ExpectationResolver(ledger, ["redux"]).resolve([], traces)
        assert len(report.observed) == 1
        assert report.observed[0].outcome == ResolutionOutcome.SILENT_FAILURE
        assert report.unproven_trace_indexes == [1]
        assert len(ledger.by_reason(SilenceReason.NO_EXPECTATION)) == 1

    def test_duplicate_id_keeps_first_declaration(self):
        ledger = SilenceLedger()
        traces = [_make_trace(expectationId="exp-1", afterUrl="http://app.test/about")]
        report = ExpectationResolver(ledger).resolve(
            [_make_nav("exp-1"), _make_nav("exp-1", "/pricing")], traces
        )
        [resolution] = report.proven
        assert resolution.outcome == ResolutionOutcome.VERIFIED
        assert report.total_proven == 1
        assert report.attempted == 1
        [duplicate] = ledger.by_reason(SilenceReason.DUPLICATE_EXPECTATION)
        assert duplicate.expectation_id == "exp-1"

    def test_duplicate_without_trace_is_one_gap(self):
        ledger = SilenceLedger()
        report = ExpectationResolver(ledger).resolve(
            [_make_nav("exp-1"), _make_nav("exp-1"), _make_nav("exp-1")], []
        )
        assert report.budget_exceeded == 1
        assert len(ledger.by_reason(SilenceReason.DUPLICATE_EXPECTATION)) == 2
        assert len(ledger.by_reason(SilenceReason.INTERACTION_LIMIT_EXCEEDED)) == 1


# ─── Declared ids ────────────────────────────────────────────────


class TestDerivedIds:
    def _declare(self, **kwargs: Any) -> dict[str, Any]:
        data: dict[str, Any] = {"type": "navigation", "fromPath": "/home", "targetPath": "/about"}
        data.update(kwargs)
        return data

    def test_missing_id_is_derived(self):
        exp = Expectation.model_validate(self._declare())
        assert exp.id.startswith("exp-navigation-")
        assert exp.id == derived_expectation_id(self._declare())

    def test_derived_id_is_stable(self):
        first = Expectation.model_validate(self._declare())
        second = Expectation.model_validate(self._declare())
        assert first.id == second.id

    def test_derived_id_follows_declaration(self):
        about = Expectation.model_validate(self._declare())
        pricing = Expectation.model_validate(self._declare(targetPath="/pricing"))
        assert about.id != pricing.id

    def test_alias_spelling_does_not_change_id(self):
        camel = Expectation.model_validate(self._declare())
        snake = Expectation(type="navigation", from_path="/home", target_path="/about")
        assert camel.id == snake.id

    def test_explicit_id_kept(self):
        assert Expectation.model_validate(self._declare(id="mine")).id == "mine"
