"""
VerdictOS -- Judgment Types

Two human-facing records come out of the judgment stage:

  Judgment  one per finding: what went wrong, how bad, what to do
  Verdict   one per evaluated promise: did the promise hold
"""

from __future__ import annotations

import enum

from pydantic import Field, field_validator

from verdictos.primitives.common import ExitCode, FrozenModel, Severity
from verdictos.primitives.finding import FindingOutcome

# ─── Finding judgments ───────────────────────────────────────────


class RecommendedAction(enum.StrEnum):
    FIX = "FIX"
    REVIEW = "REVIEW"
    DOCUMENT = "DOCUMENT"


ACTION_EXIT_CODES: dict[RecommendedAction, ExitCode] = {
    RecommendedAction.FIX: ExitCode.FAILURE_SILENT,
    RecommendedAction.REVIEW: ExitCode.NEEDS_REVIEW,
    RecommendedAction.DOCUMENT: ExitCode.SUCCESS,
}


class Recommendation(FrozenModel):
    action: RecommendedAction
    reason: str
    next_step: str


class Judgment(FrozenModel):
    id: str
    index: int
    title: str
    description: str
    severity: Severity
    kind: FindingOutcome
    finding_type: str
    finding_id: str
    promise_id: str | None = None
    url: str = ""
    recommendation: Recommendation

    @field_validator("id", "title")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("judgment id and title must be non-empty")
        return v


class JudgmentSummary(FrozenModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    action_required: int = 0
    review_needed: int = 0
    informational: int = 0


class JudgmentReport(FrozenModel):
    by_priority: list[Judgment] = Field(default_factory=list)
    by_severity: dict[str, list[Judgment]] = Field(default_factory=dict)
    summary: JudgmentSummary = Field(default_factory=JudgmentSummary)


# ─── Promise verdicts ────────────────────────────────────────────


class ObservationOutcome(enum.StrEnum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    MISLEADING = "misleading"
    SILENT_FAILURE = "silent_failure"
    AMBIGUOUS = "ambiguous"


class VerdictType(enum.StrEnum):
    PASS = "PASS"
    WEAK_PASS = "WEAK_PASS"
    FAILURE_SILENT = "FAILURE_SILENT"
    FAILURE_MISLEADING = "FAILURE_MISLEADING"
    NEEDS_REVIEW = "NEEDS_REVIEW"


class Verdict(FrozenModel):
    id: str
    promise_id: str
    promise_kind: str
    outcome: ObservationOutcome
    judgment: VerdictType
    severity: Severity
    reason: str
    evidence_refs: list[str] = Field(default_factory=list)
    exit_code: ExitCode
    determinism_hash: str
