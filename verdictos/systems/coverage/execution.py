"""
VerdictOS -- Execution Records

Every proven promise gets exactly one execution record: attempted and
observed, attempted but not observed, or skipped with a reason. A promise
without a record is a completeness violation, not a silent omission.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

import structlog

from verdictos.errors import ExecutionCompletenessError
from verdictos.systems.coverage.types import ExecutionRecord, ExecutionState

logger = structlog.get_logger()


def create_execution_record(
    promise_id: str,
    observed: bool | None,
    skip_reason: str | None = None,
    evidence_refs: Iterable[str] = (),
) -> ExecutionRecord:
    """
    Record for one promise.

    `observed=None` together with a `skip_reason` means the promise was
    never attempted. A skip reason always wins over an observation.
    """
    refs = sorted(set(evidence_refs))
    if skip_reason is not None or observed is None:
        return ExecutionRecord(
            promise_id=promise_id,
            attempted=False,
            observed=False,
            skipped=True,
            skip_reason=skip_reason or "unknown",
            state=ExecutionState.SKIPPED,
            evidence_refs=refs,
        )
    return ExecutionRecord(
        promise_id=promise_id,
        attempted=True,
        observed=bool(observed),
        skipped=False,
        state=(
            ExecutionState.ATTEMPTED_AND_OBSERVED if observed else ExecutionState.ATTEMPTED_NOT_OBSERVED
        ),
        evidence_refs=refs,
    )


def create_execution_records(
    promise_ids: Sequence[str],
    observations: Mapping[str, bool],
    skips: Mapping[str, str],
) -> list[ExecutionRecord]:
    """One record per promise, in promise order. Unseen promises are skipped as unknown."""
    records = []
    for promise_id in promise_ids:
        records.append(
            create_execution_record(
                promise_id,
                observations.get(promise_id),
                skips.get(promise_id),
            )
        )
    return records


def is_execution_complete(record: ExecutionRecord) -> bool:
    return record.state == ExecutionState.ATTEMPTED_AND_OBSERVED


def validate_execution_completeness(
    promise_ids: Iterable[str],
    records: Iterable[ExecutionRecord],
) -> None:
    """Raise ExecutionCompletenessError when any promise has no record."""
    recorded = {r.promise_id for r in records}
    missing = sorted(pid for pid in set(promise_ids) if pid not in recorded)
    if missing:
        logger.error("execution_completeness_violation", system="coverage", missing=missing)
        raise ExecutionCompletenessError(
            f"Execution completeness violation: {len(missing)} promise(s) without a record: "
            + ", ".join(missing)
        )
