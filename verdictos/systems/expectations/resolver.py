"""
VerdictOS -- Expectation Resolver

Every PROVEN expectation terminates in exactly one outcome. Those with a
linked trace are evaluated; those without one were never attempted and
become `budget_exceeded` coverage gaps, each backed by exactly one silence
entry. The closing check refuses to return a report whose books do not
balance.

An id declared twice keeps its first declaration; each repeat is
recorded as a `duplicate_expectation` silence and takes no part in the
accounting.

Traces not linked to a PROVEN expectation get a chance at an OBSERVED
expectation. Failing that they are UNPROVEN, which is recorded as a
silence but is never a failure.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence

import structlog

from verdictos.errors import ExpectationAccountingError
from verdictos.primitives.common import ExpectationProof
from verdictos.primitives.trace import Trace
from verdictos.systems.expectations.evaluation import evaluate_expectation
from verdictos.systems.expectations.observed import derive_observed_expectation
from verdictos.systems.expectations.types import (
    Expectation,
    GapReason,
    Resolution,
    ResolutionOutcome,
    ResolutionReport,
)
from verdictos.systems.silence import SilenceLedger, SilenceReason

logger = structlog.get_logger()

# Interrupted evaluations are silences too
_GAP_SILENCE: dict[str, SilenceReason] = {
    GapReason.TIMEOUT: SilenceReason.INTERACTION_TIMEOUT,
    GapReason.EXTERNAL_BLOCKED: SilenceReason.EXTERNAL_BLOCKED,
    GapReason.EXECUTION_ERROR: SilenceReason.EXPECTATION_NOT_REACHABLE,
}


class ExpectationResolver:
    """
    Resolves PROVEN expectations against their traces and derives OBSERVED
    expectations for the rest.
    """

    def __init__(
        self,
        ledger: SilenceLedger,
        supported_stores: Sequence[str] = (),
        base_origin: str = "",
    ) -> None:
        self._ledger = ledger
        self._supported_stores = list(supported_stores)
        self._base_origin = base_origin
        self._logger = logger.bind(system="expectations", component="resolver")

    def resolve(
        self,
        expectations: Sequence[Expectation],
        traces: Sequence[Trace],
        out_of_scope: Collection[int] = (),
    ) -> ResolutionReport:
        proven = self._unique(e for e in expectations if e.proof == ExpectationProof.PROVEN)
        ignored = sum(1 for e in expectations if e.proof != ExpectationProof.PROVEN)
        if ignored:
            self._logger.warning("non_proven_expectations_ignored", count=ignored)

        # First trace wins when several claim the same expectation
        trace_for: dict[str, int] = {}
        for index, trace in enumerate(traces):
            if trace.expectation_id and trace.expectation_id not in trace_for:
                trace_for[trace.expectation_id] = index

        resolved: dict[str, Resolution] = {}
        for expectation in proven:
            resolved[expectation.id] = self._resolve_proven(
                expectation, traces, trace_for.get(expectation.id), out_of_scope
            )

        attempted = sum(1 for r in resolved.values() if r.attempted)
        budget_exceeded = sum(1 for r in resolved.values() if not r.attempted)
        if attempted + budget_exceeded != len(proven):
            raise ExpectationAccountingError(
                f"Expectation accounting mismatch: attempted={attempted} + "
                f"budget_exceeded={budget_exceeded} != total={len(proven)}"
            )

        proven_ids = set(resolved)
        observed: list[Resolution] = []
        observed_expectations: list[Expectation] = []
        unproven: list[int] = []
        for index, trace in enumerate(traces):
            if index in out_of_scope or (trace.expectation_id in proven_ids):
                continue
            expectation = derive_observed_expectation(
                trace, index, self._supported_stores, self._base_origin
            )
            if expectation is None:
                unproven.append(index)
                self._ledger.record(
                    scope="interaction",
                    reason=SilenceReason.NO_EXPECTATION,
                    description=f"No expectation could be established for interaction {index}",
                    context={"trace_index": index, "selector": trace.interaction.selector},
                )
                continue
            evaluation = evaluate_expectation(expectation, trace)
            observed_expectations.append(expectation)
            observed.append(
                Resolution(
                    expectation_id=expectation.id,
                    expectation_type=expectation.type,
                    proof=ExpectationProof.OBSERVED,
                    outcome=evaluation.outcome,
                    reason=evaluation.reason,
                    trace_index=index,
                )
            )

        self._logger.info(
            "expectations_resolved",
            total_proven=len(proven),
            attempted=attempted,
            budget_exceeded=budget_exceeded,
            observed=len(observed),
            unproven=len(unproven),
        )
        return ResolutionReport(
            proven=list(resolved.values()),
            observed=observed,
            observed_expectations=observed_expectations,
            unproven_trace_indexes=unproven,
            total_proven=len(proven),
            attempted=attempted,
            budget_exceeded=budget_exceeded,
        )

    def _unique(self, expectations: Iterable[Expectation]) -> list[Expectation]:
        """First declaration of each id wins. Every repeat becomes a silence."""
        unique: dict[str, Expectation] = {}
        for expectation in expectations:
            if expectation.id not in unique:
                unique[expectation.id] = expectation
                continue
            self._ledger.record(
                scope="expectation",
                reason=SilenceReason.DUPLICATE_EXPECTATION,
                description=f"Expectation {expectation.id} was declared more than once",
                context={
                    "expectation_type": str(expectation.type),
                    "source_ref": expectation.source_ref,
                    "first_source_ref": unique[expectation.id].source_ref,
                },
                expectation_id=expectation.id,
            )
            self._logger.warning("duplicate_expectation_dropped", expectation_id=expectation.id)
        return list(unique.values())

    def _resolve_proven(
        self,
        expectation: Expectation,
        traces: Sequence[Trace],
        trace_index: int | None,
        out_of_scope: Collection[int],
    ) -> Resolution:
        if trace_index is None:
            if not self._ledger.covers_expectation(expectation.id):
                self._ledger.record(
                    scope="expectation",
                    reason=SilenceReason.INTERACTION_LIMIT_EXCEEDED,
                    description=f"Expectation {expectation.id} was not attempted before the budget ran out",
                    context={"expectation_type": str(expectation.type)},
                    expectation_id=expectation.id,
                )
            return Resolution(
                expectation_id=expectation.id,
                expectation_type=expectation.type,
                proof=ExpectationProof.PROVEN,
                outcome=ResolutionOutcome.COVERAGE_GAP,
                reason=GapReason.BUDGET_EXCEEDED,
                attempted=False,
            )

        if trace_index in out_of_scope:
            return Resolution(
                expectation_id=expectation.id,
                expectation_type=expectation.type,
                proof=ExpectationProof.PROVEN,
                outcome=ResolutionOutcome.COVERAGE_GAP,
                reason=GapReason.OUT_OF_SCOPE,
                trace_index=trace_index,
            )

        evaluation = evaluate_expectation(expectation, traces[trace_index])
        if evaluation.reason in _GAP_SILENCE:
            self._ledger.record(
                scope="expectation",
                reason=_GAP_SILENCE[evaluation.reason],
                description=f"Expectation {expectation.id} could not be evaluated: {evaluation.reason}",
                context={"trace_index": trace_index},
                expectation_id=expectation.id,
            )
        return Resolution(
            expectation_id=expectation.id,
            expectation_type=expectation.type,
            proof=ExpectationProof.PROVEN,
            outcome=evaluation.outcome,
            reason=evaluation.reason,
            trace_index=trace_index,
        )
