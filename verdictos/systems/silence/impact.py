"""
VerdictOS -- Silence Impact Accounting

Each silence type has a fixed profile of how much confidence it costs in
each dimension. The profile is adjusted by evaluation status (a timeout is
worse than a deliberate block) and clamped so no aggregate drops below -100.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import Field

from verdictos.primitives.common import FrozenModel, VerdictBaseModel
from verdictos.systems.silence.types import (
    EvaluationStatus,
    SilenceEntry,
    SilenceImpact,
    SilenceType,
)

_FLOOR = -100


class ImpactProfile(FrozenModel):
    name: str
    severity: str  # "critical" | "high" | "medium" | "low"
    coverage: int
    promise_verification: int
    overall: int
    reasoning: str


# ─── Profiles ─────────────────────────────────────────────────────


IMPACT_PROFILES: dict[SilenceType, ImpactProfile] = {
    # Observation infrastructure failures
    SilenceType.SENSOR_FAILURE: ImpactProfile(
        name="Sensor Failure",
        severity="critical",
        coverage=-20,
        promise_verification=-15,
        overall=-18,
        reasoning="Observation infrastructure failure - no data collected for affected area",
    ),
    SilenceType.DISCOVERY_FAILURE: ImpactProfile(
        name="Discovery Failure",
        severity="critical",
        coverage=-15,
        promise_verification=-10,
        overall=-13,
        reasoning="Could not discover items - evaluation incomplete for unknown scope",
    ),
    # Timing failures
    SilenceType.NAVIGATION_TIMEOUT: ImpactProfile(
        name="Navigation Timeout",
        severity="high",
        coverage=-10,
        promise_verification=-20,
        overall=-15,
        reasoning="Navigation could not complete - route unreachable or page unresponsive",
    ),
    SilenceType.INTERACTION_TIMEOUT: ImpactProfile(
        name="Interaction Timeout",
        severity="high",
        coverage=-8,
        promise_verification=-18,
        overall=-13,
        reasoning="Interaction did not complete within time budget - outcome unknown",
    ),
    # Policy-blocked evaluation
    SilenceType.SAFETY_POLICY_BLOCK: ImpactProfile(
        name="Safety Policy Block",
        severity="medium",
        coverage=-3,
        promise_verification=-25,
        overall=-12,
        reasoning="Promise verification blocked by safety policy - cannot assert promise due to risk",
    ),
    SilenceType.PROMISE_VERIFICATION_BLOCKED: ImpactProfile(
        name="Promise Verification Blocked",
        severity="medium",
        coverage=-2,
        promise_verification=-22,
        overall=-10,
        reasoning="Promise verification blocked - navigation leaves origin or enters external site",
    ),
    # Resource constraints
    SilenceType.BUDGET_LIMIT_EXCEEDED: ImpactProfile(
        name="Budget Limit Exceeded",
        severity="medium",
        coverage=-12,
        promise_verification=-8,
        overall=-10,
        reasoning="Evaluation terminated due to time/interaction budget - remaining items not evaluated",
    ),
    # Data reuse and ambiguity
    SilenceType.INCREMENTAL_REUSE: ImpactProfile(
        name="Incremental Reuse",
        severity="low",
        coverage=0,
        promise_verification=0,
        overall=0,
        reasoning="Data from previous run reused - baseline still valid",
    ),
    SilenceType.PROMISE_NOT_EVALUATED: ImpactProfile(
        name="Promise Not Evaluated",
        severity="low",
        coverage=0,
        promise_verification=-2,
        overall=-1,
        reasoning="Interaction found but no expectation defined - cannot verify promise",
    ),
    SilenceType.OUT_OF_SCOPE: ImpactProfile(
        name="Out Of Scope",
        severity="low",
        coverage=0,
        promise_verification=-2,
        overall=-1,
        reasoning="Interaction crossed the pre-auth boundary - not evaluated in this run",
    ),
}

# Types without a profile are charged conservatively
_UNKNOWN_IMPACT = SilenceImpact(coverage=-5, promise_verification=-5, overall=-5)


class ImpactedType(VerdictBaseModel):
    type: str
    count: int
    average_impact: int
    total_impact: int


class ImpactSummary(VerdictBaseModel):
    total_silences: int = 0
    aggregated_impact: SilenceImpact = Field(default_factory=SilenceImpact)
    by_severity: dict[str, int] = Field(
        default_factory=lambda: {"critical": 0, "high": 0, "medium": 0, "low": 0}
    )
    most_impactful_types: list[ImpactedType] = Field(default_factory=list)
    affected_dimensions: dict[str, list[str]] = Field(
        default_factory=lambda: {"coverage": [], "promise_verification": [], "overall": []}
    )
    confidence_interpretation: str = ""


# ─── Computation ──────────────────────────────────────────────────


def compute_silence_impact(
    silence_type: SilenceType | str,
    evaluation_status: EvaluationStatus | str | None = None,
) -> SilenceImpact:
    """Impact of one silence, from its type profile adjusted by evaluation status."""
    profile = IMPACT_PROFILES.get(silence_type)  # type: ignore[call-overload]
    if profile is None:
        return _UNKNOWN_IMPACT

    promise = profile.promise_verification
    if evaluation_status == EvaluationStatus.BLOCKED:
        # Intentional, slightly less costly than a timeout
        promise = max(-20, promise + 2)
    elif evaluation_status == EvaluationStatus.TIMED_OUT:
        promise = min(-25, promise - 2)
    elif evaluation_status == EvaluationStatus.AMBIGUOUS:
        promise = max(-5, promise + 3)

    return SilenceImpact(
        coverage=max(_FLOOR, profile.coverage),
        promise_verification=max(_FLOOR, min(0, promise)),
        overall=max(_FLOOR, profile.overall),
    )


def _impact_of(entry: SilenceEntry) -> SilenceImpact:
    return compute_silence_impact(entry.silence_type, entry.evaluation_status)


def aggregate_silence_impacts(entries: Iterable[SilenceEntry]) -> SilenceImpact:
    """Sum of per-entry impacts, clamped to [-100, 0] per dimension."""
    coverage = promise = overall = 0
    for entry in entries:
        impact = _impact_of(entry)
        coverage += impact.coverage
        promise += impact.promise_verification
        overall += impact.overall
    return SilenceImpact(
        coverage=max(_FLOOR, coverage),
        promise_verification=max(_FLOOR, promise),
        overall=max(_FLOOR, overall),
    )


def categorize_by_severity(entries: Iterable[SilenceEntry]) -> dict[str, list[SilenceEntry]]:
    """Bucket entries by their profile severity. Unprofiled types count as high."""
    buckets: dict[str, list[SilenceEntry]] = {"critical": [], "high": [], "medium": [], "low": []}
    for entry in entries:
        profile = IMPACT_PROFILES.get(entry.silence_type)
        severity = profile.severity if profile is not None else "high"
        buckets[severity].append(entry)
    return buckets


def interpret_impact(aggregated: SilenceImpact) -> str:
    overall = aggregated.overall
    if overall == 0:
        return "No silence events - observation confidence is complete within evaluated scope"
    if overall <= -80:
        return "CRITICAL: Observation significantly incomplete - major silence events limit what we can assert"
    if overall <= -50:
        return "SIGNIFICANT: Multiple silence events reduce observation confidence - substantial unknowns remain"
    if overall <= -25:
        return "MODERATE: Some silence events reduce observation completeness - some unknowns remain"
    if overall <= -10:
        return "MINOR: Few silence events slightly reduce confidence - observation mostly complete"
    return "Very minor impact from silence events"


def create_impact_summary(entries: list[SilenceEntry]) -> ImpactSummary:
    """
    Roll a set of silences up into severity counts, the five costliest
    types, and the three entries hitting each dimension hardest.
    """
    if not entries:
        return ImpactSummary(
            confidence_interpretation=interpret_impact(SilenceImpact()),
        )

    aggregated = aggregate_silence_impacts(entries)
    buckets = categorize_by_severity(entries)

    # Insertion order of first appearance breaks ties, so sort is stable
    per_type: dict[str, list[int]] = {}
    for entry in entries:
        per_type.setdefault(str(entry.silence_type), []).append(_impact_of(entry).overall)
    most_impactful = sorted(
        (
            ImpactedType(
                type=silence_type,
                count=len(impacts),
                average_impact=round(sum(impacts) / len(impacts)),
                total_impact=sum(impacts),
            )
            for silence_type, impacts in per_type.items()
        ),
        key=lambda item: item.total_impact,
    )[:5]

    affected: dict[str, list[str]] = {}
    for dimension in ("coverage", "promise_verification", "overall"):
        hit = [e for e in entries if getattr(_impact_of(e), dimension) < 0]
        hit.sort(key=lambda e: getattr(_impact_of(e), dimension))
        affected[dimension] = [str(e.silence_type) for e in hit[:3]]

    return ImpactSummary(
        total_silences=len(entries),
        aggregated_impact=aggregated,
        by_severity={name: len(bucket) for name, bucket in buckets.items()},
        most_impactful_types=most_impactful,
        affected_dimensions=affected,
        confidence_interpretation=interpret_impact(aggregated),
    )
