"""
VerdictOS -- Silence Ledger

Append-only record of everything the run did not evaluate. Every entry
is classified into the fixed taxonomy at record time: category, silence
type, trigger, evaluation status and confidence impact are all derived
from the reason, so two ledgers fed the same events export the same bytes.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from verdictos.errors import SilenceRecordError
from verdictos.systems.silence.impact import (
    aggregate_silence_impacts,
    categorize_by_severity,
    compute_silence_impact,
    interpret_impact,
)
from verdictos.systems.silence.types import (
    EvaluationStatus,
    SilenceCategory,
    SilenceEntry,
    SilenceReason,
    SilenceSummary,
    SilenceType,
)

logger = structlog.get_logger()


# ─── Reason classification ────────────────────────────────────────


_TRIGGERS: dict[SilenceReason, str] = {
    SilenceReason.NAVIGATION_TIMEOUT: "navigation_timeout",
    SilenceReason.INTERACTION_TIMEOUT: "interaction_timeout",
    SilenceReason.SETTLE_TIMEOUT: "settle_timeout",
    SilenceReason.LOAD_TIMEOUT: "load_timeout",
    SilenceReason.DESTRUCTIVE_TEXT: "destructive_text_block",
    SilenceReason.EXTERNAL_NAVIGATION: "external_navigation",
    SilenceReason.EXTERNAL_BLOCKED: "external_origin_blocked",
    SilenceReason.UNSAFE_PATTERN: "unsafe_pattern_block",
    SilenceReason.SCAN_TIME_EXCEEDED: "scan_time_limit_exceeded",
    SilenceReason.PAGE_LIMIT_EXCEEDED: "page_limit_exceeded",
    SilenceReason.INTERACTION_LIMIT_EXCEEDED: "interaction_limit_exceeded",
    SilenceReason.ROUTE_LIMIT_EXCEEDED: "route_limit_exceeded",
    SilenceReason.DISCOVERY_ERROR: "discovery_failed",
    SilenceReason.NO_MATCHING_SELECTOR: "selector_not_found",
    SilenceReason.SENSOR_FAILED: "sensor_failure",
    SilenceReason.SENSOR_UNAVAILABLE: "sensor_unavailable",
    SilenceReason.INCREMENTAL_UNCHANGED: "incremental_data_reuse",
    SilenceReason.NO_EXPECTATION: "no_expectation_defined",
    SilenceReason.DUPLICATE_EXPECTATION: "duplicate_expectation_id",
    SilenceReason.POST_AUTH_BOUNDARY: "post_auth_scope_boundary",
}


def category_for(reason: SilenceReason) -> SilenceCategory:
    # Checked in order: budget wins over timeout, timeout over navigation
    if "limit" in reason or "exceeded" in reason:
        return SilenceCategory.BUDGET
    if "timeout" in reason:
        return SilenceCategory.TIMEOUT
    if reason in (
        SilenceReason.DESTRUCTIVE_TEXT,
        SilenceReason.UNSAFE_PATTERN,
        SilenceReason.EXTERNAL_NAVIGATION,
        SilenceReason.EXTERNAL_BLOCKED,
    ):
        return SilenceCategory.SAFETY
    if reason == SilenceReason.INCREMENTAL_UNCHANGED:
        return SilenceCategory.INCREMENTAL
    if reason in (SilenceReason.DISCOVERY_ERROR, SilenceReason.NO_MATCHING_SELECTOR):
        return SilenceCategory.DISCOVERY
    if reason in (SilenceReason.SENSOR_FAILED, SilenceReason.SENSOR_UNAVAILABLE):
        return SilenceCategory.SENSOR
    if reason in (
        SilenceReason.NO_EXPECTATION,
        SilenceReason.EXPECTATION_NOT_REACHABLE,
        SilenceReason.DUPLICATE_EXPECTATION,
    ):
        return SilenceCategory.EXPECTATION
    if reason == SilenceReason.POST_AUTH_BOUNDARY:
        return SilenceCategory.SCOPE
    return SilenceCategory.NAVIGATION


def silence_type_for(reason: SilenceReason) -> SilenceType:
    if reason in (
        SilenceReason.NAVIGATION_TIMEOUT,
        SilenceReason.INTERACTION_TIMEOUT,
        SilenceReason.SETTLE_TIMEOUT,
    ):
        return SilenceType.INTERACTION_TIMEOUT
    if reason == SilenceReason.LOAD_TIMEOUT:
        return SilenceType.NAVIGATION_TIMEOUT
    if reason in (SilenceReason.DESTRUCTIVE_TEXT, SilenceReason.UNSAFE_PATTERN):
        return SilenceType.SAFETY_POLICY_BLOCK
    if reason in (SilenceReason.EXTERNAL_NAVIGATION, SilenceReason.EXTERNAL_BLOCKED):
        return SilenceType.PROMISE_VERIFICATION_BLOCKED
    if "limit" in reason or "exceeded" in reason:
        return SilenceType.BUDGET_LIMIT_EXCEEDED
    if reason in (SilenceReason.DISCOVERY_ERROR, SilenceReason.NO_MATCHING_SELECTOR):
        return SilenceType.DISCOVERY_FAILURE
    if reason in (SilenceReason.SENSOR_FAILED, SilenceReason.SENSOR_UNAVAILABLE):
        return SilenceType.SENSOR_FAILURE
    if reason == SilenceReason.INCREMENTAL_UNCHANGED:
        return SilenceType.INCREMENTAL_REUSE
    if reason == SilenceReason.POST_AUTH_BOUNDARY:
        return SilenceType.OUT_OF_SCOPE
    return SilenceType.PROMISE_NOT_EVALUATED


def evaluation_status_for(reason: SilenceReason) -> EvaluationStatus:
    if "timeout" in reason:
        return EvaluationStatus.TIMED_OUT
    if reason in (
        SilenceReason.DESTRUCTIVE_TEXT,
        SilenceReason.UNSAFE_PATTERN,
        SilenceReason.EXTERNAL_NAVIGATION,
        SilenceReason.EXTERNAL_BLOCKED,
    ):
        return EvaluationStatus.BLOCKED
    if reason in (SilenceReason.NO_EXPECTATION, SilenceReason.NO_MATCHING_SELECTOR):
        return EvaluationStatus.AMBIGUOUS
    if (
        reason in (SilenceReason.INCREMENTAL_UNCHANGED, SilenceReason.POST_AUTH_BOUNDARY)
        or "limit" in reason
    ):
        return EvaluationStatus.SKIPPED
    return EvaluationStatus.INCOMPLETE


def _event_count(event: Mapping[str, Any]) -> int:
    raw = event.get("count")
    if raw is None:
        return 1
    if isinstance(raw, bool):
        raise SilenceRecordError(f"Silence count must be an integer, got {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise SilenceRecordError(f"Silence count must be an integer, got {raw!r}") from exc


# ─── Ledger ───────────────────────────────────────────────────────


class SilenceLedger:
    """
    Records silences against the fixed taxonomy.

    Entries are immutable and never removed. Callers read them through
    `entries` (record order) or `export()` (deterministic order).
    """

    def __init__(self) -> None:
        self._entries: list[SilenceEntry] = []
        self._logger = logger.bind(system="silence", component="ledger")

    def record(
        self,
        scope: str,
        reason: SilenceReason | str,
        description: str,
        context: Mapping[str, Any] | None = None,
        count: int = 1,
        expectation_id: str | None = None,
    ) -> SilenceEntry:
        """
        Record one silence.

        Raises SilenceRecordError when scope, reason or description is
        missing, or when the reason is outside the taxonomy.
        """
        if not scope or not reason or not description:
            raise SilenceRecordError(
                "Silence entry requires scope, reason and description "
                f"(scope={scope!r}, reason={reason!r})"
            )
        try:
            typed_reason = SilenceReason(reason)
        except ValueError as exc:
            raise SilenceRecordError(f"Unknown silence reason: {reason!r}") from exc

        silence_type = silence_type_for(typed_reason)
        status = evaluation_status_for(typed_reason)
        entry = SilenceEntry(
            scope=scope,
            reason=typed_reason,
            description=description,
            context=dict(context or {}),
            count=max(1, count),
            category=category_for(typed_reason),
            silence_type=silence_type,
            evaluation_status=status,
            trigger=_TRIGGERS.get(typed_reason, str(typed_reason)),
            impact=compute_silence_impact(silence_type, status),
            expectation_id=expectation_id,
        )
        self._entries.append(entry)
        self._logger.debug(
            "silence_recorded",
            scope=scope,
            reason=str(typed_reason),
            category=str(entry.category),
            expectation_id=expectation_id,
        )
        return entry

    def record_batch(self, events: Iterable[Mapping[str, Any]]) -> list[SilenceEntry]:
        """Record raw silence events as supplied by upstream collaborators."""
        recorded: list[SilenceEntry] = []
        for event in events:
            recorded.append(
                self.record(
                    scope=event.get("scope", ""),
                    reason=event.get("reason", ""),
                    description=event.get("description", ""),
                    context=event.get("context") or {},
                    count=_event_count(event),
                    expectation_id=event.get("expectation_id") or event.get("expectationId"),
                )
            )
        return recorded

    # ─── Queries ─────────────────────────────────────────────────

    @property
    def entries(self) -> list[SilenceEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total_count(self) -> int:
        """Units of work silenced. One entry may stand for several."""
        return sum(e.count for e in self._entries)

    def by_category(self, category: SilenceCategory | str) -> list[SilenceEntry]:
        return [e for e in self._entries if e.category == category]

    def by_reason(self, reason: SilenceReason | str) -> list[SilenceEntry]:
        return [e for e in self._entries if e.reason == reason]

    def by_type(self, silence_type: SilenceType | str) -> list[SilenceEntry]:
        return [e for e in self._entries if e.silence_type == silence_type]

    def covers_expectation(self, expectation_id: str) -> bool:
        """True if some entry already accounts for this expectation. Duplicate notices do not."""
        return any(
            e.expectation_id == expectation_id and e.reason != SilenceReason.DUPLICATE_EXPECTATION
            for e in self._entries
        )

    def promise_verification_blockers(self) -> list[SilenceEntry]:
        return [
            e
            for e in self._entries
            if e.evaluation_status in (EvaluationStatus.BLOCKED, EvaluationStatus.TIMED_OUT)
            or e.silence_type == SilenceType.PROMISE_VERIFICATION_BLOCKED
        ]

    def coverage_gaps(self) -> list[SilenceEntry]:
        return [
            e
            for e in self._entries
            if e.evaluation_status == EvaluationStatus.SKIPPED
            or e.silence_type == SilenceType.BUDGET_LIMIT_EXCEEDED
        ]

    # ─── Reporting ───────────────────────────────────────────────

    def summary(self) -> SilenceSummary:
        entries = self._entries
        aggregated = aggregate_silence_impacts(entries)
        severity = categorize_by_severity(entries)

        def _count(values: Iterable[str]) -> dict[str, int]:
            return dict(sorted(Counter(values).items()))

        return SilenceSummary(
            total_silences=len(entries),
            total_count=self.total_count,
            by_category=_count(str(e.category) for e in entries),
            by_reason=_count(str(e.reason) for e in entries),
            by_scope=_count(e.scope for e in entries),
            by_type=_count(str(e.silence_type) for e in entries),
            by_evaluation_status=_count(str(e.evaluation_status) for e in entries),
            by_impact_severity={name: len(bucket) for name, bucket in severity.items()},
            with_promise_association=sum(1 for e in entries if e.expectation_id),
            aggregated_impact=aggregated,
            interpretation=interpret_impact(aggregated),
        )

    def export(self) -> dict[str, Any]:
        """
        Deterministic, JSON-ready view of the ledger.

        Entries are ordered by (scope, reason, description) so replays of
        the same run serialize identically regardless of record order.
        """
        ordered = sorted(self._entries, key=lambda e: (e.scope, str(e.reason), e.description))
        return {
            "total": len(ordered),
            "entries": [e.model_dump(mode="json") for e in ordered],
            "summary": self.summary().model_dump(mode="json"),
        }
