"""
VerdictOS -- Expectation Evaluation

Maps one expectation plus the trace that exercised it to exactly one
outcome. Interruption flags on the trace take precedence: an interaction
that timed out or was blocked proved nothing either way.
"""

from __future__ import annotations

from verdictos.primitives.common import normalize_path, same_path, url_path
from verdictos.primitives.trace import Trace, is_true, sequence
from verdictos.systems.expectations.types import (
    Evaluation,
    Expectation,
    ExpectationType,
    GapReason,
    ResolutionOutcome,
)

_VERIFIED = Evaluation(outcome=ResolutionOutcome.VERIFIED)


def _failure(reason: str) -> Evaluation:
    return Evaluation(outcome=ResolutionOutcome.SILENT_FAILURE, reason=reason)


def policy_gap(trace: Trace) -> Evaluation | None:
    """COVERAGE_GAP for traces the provider flagged as interrupted."""
    if trace.policy.timeout:
        return Evaluation(outcome=ResolutionOutcome.COVERAGE_GAP, reason=GapReason.TIMEOUT)
    if trace.policy.external_navigation_blocked:
        return Evaluation(outcome=ResolutionOutcome.COVERAGE_GAP, reason=GapReason.EXTERNAL_BLOCKED)
    if trace.policy.execution_error:
        return Evaluation(outcome=ResolutionOutcome.COVERAGE_GAP, reason=GapReason.EXECUTION_ERROR)
    return None


def _evaluate_navigation(expectation: Expectation, trace: Trace) -> Evaluation:
    if expectation.target_path and same_path(trace.after_url, expectation.target_path):
        return _VERIFIED
    if (
        trace.url_changed
        or is_true(trace.sensors, "navigation.urlChanged")
        or trace.dom_changed
        or trace.ui_changed
    ):
        return _failure("target_not_reached")
    return _failure("no_effect")


def _evaluate_network(expectation: Expectation, trace: Trace) -> Evaluation:
    if trace.network_total <= 0:
        return _failure("network_request_missing")
    expected = expectation.expected_request_url or ""
    if expected and any(expected in url for url in trace.request_urls):
        return _VERIFIED
    return _failure("network_request_url_mismatch")


def _evaluate_validation(trace: Trace) -> Evaluation:
    detected = is_true(trace.sensors, "uiSignals.after.validationFeedbackDetected")
    if not detected:
        return _failure("validation_feedback_missing")
    stayed = normalize_path(url_path(trace.before_url)) == normalize_path(url_path(trace.after_url))
    if stayed and trace.network_total == 0:
        return _VERIFIED
    return _failure("validation_not_blocked")


def _evaluate_state(expectation: Expectation, trace: Trace) -> Evaluation:
    changed = sequence(trace.sensors, "state.changed")
    if is_true(trace.sensors, "state.available") and expectation.expected_state_key in changed:
        return _VERIFIED
    return _failure("state_not_changed")


def evaluate_expectation(expectation: Expectation, trace: Trace) -> Evaluation:
    gap = policy_gap(trace)
    if gap is not None:
        return gap

    match expectation.type:
        case ExpectationType.NAVIGATION:
            return _evaluate_navigation(expectation, trace)
        case ExpectationType.NETWORK_ACTION:
            return _evaluate_network(expectation, trace)
        case ExpectationType.VALIDATION_BLOCK:
            return _evaluate_validation(trace)
        case ExpectationType.STATE_ACTION:
            return _evaluate_state(expectation, trace)
