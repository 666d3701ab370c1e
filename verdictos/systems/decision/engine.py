"""
VerdictOS -- CI Decision Engine

One ordered table of (predicate, outcome) rules. The first rule whose
predicate holds decides the exit code, decision label and run status.
Nothing else in the pipeline sets an exit code.

Order matters: infrastructure failures beat corrupt artifacts, which beat
evidence-law violations, which beat coverage, which beats the judgments.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from verdictos.primitives.common import ExitCode
from verdictos.systems.coverage.types import ConsistencyViolationType
from verdictos.systems.decision.types import Decision, DecisionInputs, DecisionLabel, RunStatus

logger = structlog.get_logger()


# ─── Helpers ─────────────────────────────────────────────────────


def _has_violation(inputs: DecisionInputs) -> bool:
    return not inputs.consistency.valid


def _coverage_failed(inputs: DecisionInputs) -> bool:
    return not inputs.coverage.passed


def _judgment_failed(inputs: DecisionInputs) -> bool:
    return inputs.judgment_code >= ExitCode.FAILURE_SILENT


def _at_least_incomplete(inputs: DecisionInputs) -> ExitCode:
    return ExitCode(max(int(ExitCode.INCOMPLETE), int(inputs.judgment_code)))


def label_for_judgment_code(code: ExitCode) -> DecisionLabel:
    if code >= ExitCode.INCOMPLETE:
        return DecisionLabel.FAILURE_MISLEADING
    if code >= ExitCode.FAILURE_SILENT:
        return DecisionLabel.FAILURE_CONFIRMED
    if code >= ExitCode.NEEDS_REVIEW:
        return DecisionLabel.NEEDS_REVIEW
    return DecisionLabel.PASS


def status_for_exit_code(code: ExitCode) -> RunStatus:
    if code >= ExitCode.FAILURE_SILENT:
        return RunStatus.FAILURE
    if code >= ExitCode.NEEDS_REVIEW:
        return RunStatus.NEEDS_REVIEW
    return RunStatus.SUCCESS


def _single_unobserved_attempt(inputs: DecisionInputs) -> bool:
    """Exactly one attempted promise went unjudged and exactly one went unobserved."""
    return (
        inputs.consistency.count(ConsistencyViolationType.EXECUTION_WITHOUT_JUDGMENT) == 1
        and inputs.coverage.report.attempted_not_observed == 1
        and not inputs.coverage.threshold_explicit
    )


# ─── Rule table ──────────────────────────────────────────────────


Outcome = tuple[ExitCode, DecisionLabel, RunStatus]


@dataclass(frozen=True)
class DecisionRule:
    number: int
    name: str
    applies: Callable[[DecisionInputs], bool]
    outcome: Callable[[DecisionInputs], Outcome]


def _from_judgment(inputs: DecisionInputs) -> Outcome:
    code = inputs.judgment_code
    return code, label_for_judgment_code(code), status_for_exit_code(code)


def _incomplete(inputs: DecisionInputs) -> Outcome:
    return _at_least_incomplete(inputs), DecisionLabel.INCOMPLETE, RunStatus.FAILURE


def _evidence_violation(_: DecisionInputs) -> Outcome:
    return ExitCode.EVIDENCE_VIOLATION, DecisionLabel.EVIDENCE_VIOLATION, RunStatus.EVIDENCE_VIOLATION


DECISION_RULES: tuple[DecisionRule, ...] = (
    DecisionRule(
        1,
        "infrastructure_failure",
        lambda i: i.infra_failure,
        lambda _: (ExitCode.INFRA_FAILURE, DecisionLabel.INFRA_FAILURE, RunStatus.FAILURE),
    ),
    DecisionRule(
        2,
        "critical_contract_violation",
        lambda i: i.contracts.has_critical,
        lambda _: (ExitCode.EVIDENCE_VIOLATION, DecisionLabel.INVARIANT_VIOLATION, RunStatus.EVIDENCE_VIOLATION),
    ),
    DecisionRule(
        3,
        "violation_with_failed_judgment",
        lambda i: _has_violation(i) and _judgment_failed(i),
        _from_judgment,
    ),
    DecisionRule(
        4,
        "violation_single_unobserved_attempt",
        lambda i: _has_violation(i) and _single_unobserved_attempt(i),
        _evidence_violation,
    ),
    DecisionRule(
        5,
        "violation_with_coverage_failure",
        lambda i: _has_violation(i) and _coverage_failed(i),
        _incomplete,
    ),
    DecisionRule(6, "evidence_violation", _has_violation, _evidence_violation),
    DecisionRule(
        7,
        "coverage_failure_explicit_threshold",
        lambda i: _coverage_failed(i) and _judgment_failed(i) and i.coverage.threshold_explicit,
        _from_judgment,
    ),
    DecisionRule(
        8,
        "coverage_failure_with_failed_judgment",
        lambda i: _coverage_failed(i) and _judgment_failed(i),
        _incomplete,
    ),
    DecisionRule(
        9,
        "coverage_failure",
        _coverage_failed,
        lambda _: (ExitCode.INCOMPLETE, DecisionLabel.INCOMPLETE, RunStatus.FAILURE),
    ),
    DecisionRule(10, "warning_contract_violation", lambda i: i.contracts.has_warning, _incomplete),
    DecisionRule(11, "judgments", lambda _: True, _from_judgment),
)


# ─── Engine ──────────────────────────────────────────────────────


def _reasons(inputs: DecisionInputs) -> list[str]:
    reasons: list[str] = []
    if inputs.infra_failure:
        reasons.append(f"infrastructure: {inputs.infra_reason or 'failure reported'}")
    for violation in inputs.contracts.violations:
        reasons.append(f"contract[{violation.severity}] {violation.artifact}: {violation.message}")
    for violation in inputs.consistency.violations:
        reasons.append(f"consistency[{violation.type}] {violation.message}")
    if inputs.coverage.failure_reason:
        reasons.append(f"coverage: {inputs.coverage.failure_reason}")
    reasons.append(f"judgment_exit_code={int(inputs.judgment_code)}")
    return reasons


def decide(inputs: DecisionInputs) -> Decision:
    """Walk the rule table and return the first matching decision."""
    for rule in DECISION_RULES:
        if rule.applies(inputs):
            exit_code, label, status = rule.outcome(inputs)
            decision = Decision(
                exit_code=exit_code,
                status=status,
                decision=label,
                rule=rule.number,
                reasons=_reasons(inputs),
            )
            logger.info(
                "decision_made",
                system="decision",
                rule=rule.number,
                rule_name=rule.name,
                exit_code=int(exit_code),
                decision=str(label),
                status=str(status),
            )
            return decision
    # The last rule always applies
    raise AssertionError("decision table exhausted")
