"""
VerdictOS -- Execution / Judgment Consistency

Every attempted promise must carry exactly the verdicts its execution
allows: attempted promises need one, skipped promises must have none, and
no verdict may exist for a promise that was never recorded.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from verdictos.errors import EvidenceLawViolation
from verdictos.systems.coverage.types import (
    ConsistencyStatistics,
    ConsistencyValidation,
    ConsistencyViolation,
    ConsistencyViolationType,
    ExecutionRecord,
)
from verdictos.systems.judgment.types import Verdict

logger = structlog.get_logger()


def validate_consistency(
    records: Sequence[ExecutionRecord],
    verdicts: Sequence[Verdict],
) -> ConsistencyValidation:
    judged = {v.promise_id for v in verdicts}
    recorded = {r.promise_id: r for r in records}
    violations: list[ConsistencyViolation] = []

    for record in records:
        if record.skipped:
            if record.promise_id in judged:
                violations.append(
                    ConsistencyViolation(
                        type=ConsistencyViolationType.JUDGMENT_FOR_SKIPPED,
                        promise_id=record.promise_id,
                        message=(
                            f"Promise {record.promise_id} was skipped ({record.skip_reason}) but has a verdict"
                        ),
                    )
                )
        elif record.promise_id not in judged:
            violations.append(
                ConsistencyViolation(
                    type=ConsistencyViolationType.EXECUTION_WITHOUT_JUDGMENT,
                    promise_id=record.promise_id,
                    message=f"Promise {record.promise_id} was attempted but has no verdict",
                )
            )

    seen: set[str] = set()
    for verdict in verdicts:
        if verdict.promise_id not in recorded and verdict.promise_id not in seen:
            seen.add(verdict.promise_id)
            violations.append(
                ConsistencyViolation(
                    type=ConsistencyViolationType.JUDGMENT_WITHOUT_EXECUTION,
                    promise_id=verdict.promise_id,
                    message=f"Promise {verdict.promise_id} has a verdict but no execution record",
                )
            )

    return ConsistencyValidation(valid=not violations, violations=violations)


def enforce_consistency(
    records: Sequence[ExecutionRecord],
    verdicts: Sequence[Verdict],
) -> ConsistencyValidation:
    """
    Validate and raise on any mismatch.

    Raises EvidenceLawViolation carrying the violation list. The pipeline
    catches it and forwards the violations to the decision engine.
    """
    validation = validate_consistency(records, verdicts)
    if not validation.valid:
        logger.error(
            "consistency_violation",
            system="coverage",
            count=len(validation.violations),
            types=sorted({str(v.type) for v in validation.violations}),
        )
        raise EvidenceLawViolation(
            f"Execution-Judgment consistency violation: {len(validation.violations)} mismatch(es)",
            violations=list(validation.violations),
        )
    return validation


def consistency_statistics(
    records: Sequence[ExecutionRecord],
    verdicts: Sequence[Verdict],
) -> ConsistencyStatistics:
    attempted = sum(1 for r in records if r.attempted)
    return ConsistencyStatistics(
        total=len(records),
        attempted=attempted,
        observed=sum(1 for r in records if r.observed),
        skipped=sum(1 for r in records if r.skipped),
        judged=len({v.promise_id for v in verdicts}),
        expected_judgments=attempted,
        is_consistent=validate_consistency(records, verdicts).valid,
    )
