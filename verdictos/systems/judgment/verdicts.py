"""
VerdictOS -- Promise Verdicts

Maps the observed outcome of each evaluated promise onto a fixed verdict
and exit code. The mapping is closed: an outcome that is not in the table
is a programming error and raises rather than defaulting to a pass.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from verdictos.errors import UnknownOutcomeError
from verdictos.primitives.common import ExitCode, Severity, determinism_hash
from verdictos.systems.judgment.types import ObservationOutcome, Verdict, VerdictType

logger = structlog.get_logger()

_OUTCOME_TO_VERDICT: dict[ObservationOutcome, VerdictType] = {
    ObservationOutcome.SUCCESS: VerdictType.PASS,
    ObservationOutcome.PARTIAL_SUCCESS: VerdictType.WEAK_PASS,
    ObservationOutcome.MISLEADING: VerdictType.FAILURE_MISLEADING,
    ObservationOutcome.SILENT_FAILURE: VerdictType.FAILURE_SILENT,
    ObservationOutcome.AMBIGUOUS: VerdictType.NEEDS_REVIEW,
}

VERDICT_EXIT_CODES: dict[VerdictType, ExitCode] = {
    VerdictType.PASS: ExitCode.SUCCESS,
    VerdictType.WEAK_PASS: ExitCode.SUCCESS,
    VerdictType.NEEDS_REVIEW: ExitCode.NEEDS_REVIEW,
    VerdictType.FAILURE_SILENT: ExitCode.FAILURE_SILENT,
    VerdictType.FAILURE_MISLEADING: ExitCode.INCOMPLETE,
}

# Higher sorts first
_VERDICT_PRIORITY: dict[VerdictType, int] = {
    VerdictType.FAILURE_MISLEADING: 100,
    VerdictType.FAILURE_SILENT: 90,
    VerdictType.NEEDS_REVIEW: 50,
    VerdictType.WEAK_PASS: 20,
    VerdictType.PASS: 10,
}

# Promise kinds whose failure blocks the user outright
_BLOCKING_KINDS = frozenset({"navigation", "network_action"})
_FEEDBACK_KINDS = frozenset({"validation_block"})

_REASONS: dict[VerdictType, str] = {
    VerdictType.PASS: "Promise fulfilled: {kind} completed successfully",
    VerdictType.WEAK_PASS: "Promise partially fulfilled: {kind} completed with weak signals",
    VerdictType.FAILURE_SILENT: "Promise broken silently: {kind} failed without user feedback",
    VerdictType.FAILURE_MISLEADING: "Promise broken misleadingly: {kind} reported success but failed",
    VerdictType.NEEDS_REVIEW: "Promise outcome ambiguous: {kind} needs manual review",
}


def map_outcome_to_verdict(outcome: str) -> VerdictType:
    try:
        return _OUTCOME_TO_VERDICT[ObservationOutcome(outcome)]
    except ValueError:
        raise UnknownOutcomeError(f"No verdict mapping for outcome {outcome!r}") from None


def verdict_severity(verdict: VerdictType, promise_kind: str) -> Severity:
    match verdict:
        case VerdictType.PASS | VerdictType.WEAK_PASS:
            return Severity.LOW
        case VerdictType.NEEDS_REVIEW:
            return Severity.MEDIUM
    if promise_kind in _BLOCKING_KINDS:
        return Severity.CRITICAL
    if promise_kind in _FEEDBACK_KINDS:
        return Severity.HIGH
    return Severity.MEDIUM


def create_verdict(
    promise_id: str,
    promise_kind: str,
    outcome: str,
    evidence_refs: Sequence[str] = (),
) -> Verdict:
    """
    Build the verdict for one promise.

    Raises UnknownOutcomeError when `outcome` is not one of the five
    observation outcomes.
    """
    verdict_type = map_outcome_to_verdict(outcome)
    refs = sorted(set(evidence_refs))
    digest = determinism_hash(
        {
            "promise_id": promise_id,
            "promise_kind": promise_kind,
            "outcome": str(outcome),
            "judgment": str(verdict_type),
            "evidence_refs": refs,
        }
    )
    return Verdict(
        id=f"verdict-{promise_id}-{digest[:12]}",
        promise_id=promise_id,
        promise_kind=promise_kind,
        outcome=ObservationOutcome(outcome),
        judgment=verdict_type,
        severity=verdict_severity(verdict_type, promise_kind),
        reason=_REASONS[verdict_type].format(kind=promise_kind),
        evidence_refs=refs,
        exit_code=VERDICT_EXIT_CODES[verdict_type],
        determinism_hash=digest,
    )


def sort_verdicts(verdicts: Sequence[Verdict]) -> list[Verdict]:
    """Worst first, then promise id, then verdict id."""
    return sorted(
        verdicts,
        key=lambda v: (-_VERDICT_PRIORITY[v.judgment], v.promise_id, v.id),
    )


def count_verdicts(verdicts: Sequence[Verdict]) -> dict[str, int]:
    counts = {str(v): 0 for v in VerdictType}
    for verdict in verdicts:
        counts[str(verdict.judgment)] += 1
    return counts


def verdict_exit_code(verdicts: Sequence[Verdict]) -> ExitCode:
    code = max((v.exit_code for v in verdicts), default=ExitCode.SUCCESS)
    if verdicts:
        logger.debug("verdict_exit_code", system="judgment", count=len(verdicts), exit_code=int(code))
    return code
