"""
VerdictOS -- Coverage Types

Execution records, coverage truth, and execution/judgment consistency.
"""

from __future__ import annotations

import enum

from pydantic import Field, model_validator

from verdictos.primitives.common import FrozenModel

# ─── Execution ───────────────────────────────────────────────────


class ExecutionState(enum.StrEnum):
    ATTEMPTED_AND_OBSERVED = "ATTEMPTED_AND_OBSERVED"
    ATTEMPTED_NOT_OBSERVED = "ATTEMPTED_NOT_OBSERVED"
    SKIPPED = "SKIPPED"


class SkipReason(enum.StrEnum):
    # Legal: excluded from the coverage denominator
    AUTH_REQUIRED = "auth_required"
    INFRA_FAILURE = "infra_failure"
    OUT_OF_SCOPE = "out_of_scope"
    EXTERNAL_NAVIGATION = "external_navigation"
    SAFETY_POLICY = "safety_policy"
    # Illegal: counts against coverage
    BUDGET_EXCEEDED = "budget_exceeded"


class ExecutionRecord(FrozenModel):
    """What happened to one proven promise during the run."""

    promise_id: str
    attempted: bool
    observed: bool
    skipped: bool
    skip_reason: str | None = None
    state: ExecutionState
    evidence_refs: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _coherent(self) -> ExecutionRecord:
        if not self.promise_id:
            raise ValueError("execution record requires a promise_id")
        if self.skipped and (self.attempted or self.observed):
            raise ValueError(f"skipped promise {self.promise_id!r} cannot be attempted or observed")
        if self.observed and not self.attempted:
            raise ValueError(f"promise {self.promise_id!r} observed without being attempted")
        return self


# ─── Coverage ────────────────────────────────────────────────────


class CoverageStatus(enum.StrEnum):
    PASS = "PASS"
    FAIL = "FAIL"
    INCOMPLETE = "INCOMPLETE"  # Nothing to cover


class CoverageReport(FrozenModel):
    total: int = 0
    attempted: int = 0
    observed: int = 0
    skipped: int = 0
    legally_skipped: int = 0
    illegally_skipped: int = 0
    attempted_not_observed: int = 0
    coverage_ratio: float = Field(default=1.0, ge=0.0, le=1.0)
    coverage_percent: int = Field(default=100, ge=0, le=100)


class CoverageEnforcement(FrozenModel):
    passed: bool
    status: CoverageStatus
    min_coverage: float
    threshold_explicit: bool = False
    overrides_judgment: bool = False
    failure_reason: str | None = None
    report: CoverageReport


# ─── Consistency ─────────────────────────────────────────────────


class ConsistencyViolationType(enum.StrEnum):
    EXECUTION_WITHOUT_JUDGMENT = "EXECUTION_WITHOUT_JUDGMENT"
    JUDGMENT_WITHOUT_EXECUTION = "JUDGMENT_WITHOUT_EXECUTION"
    JUDGMENT_FOR_SKIPPED = "JUDGMENT_FOR_SKIPPED"


class ConsistencyViolation(FrozenModel):
    type: ConsistencyViolationType
    promise_id: str
    message: str


class ConsistencyValidation(FrozenModel):
    valid: bool
    violations: list[ConsistencyViolation] = Field(default_factory=list)

    def count(self, violation_type: ConsistencyViolationType) -> int:
        return sum(1 for v in self.violations if v.type == violation_type)


class ConsistencyStatistics(FrozenModel):
    total: int = 0
    attempted: int = 0
    observed: int = 0
    skipped: int = 0
    judged: int = 0
    expected_judgments: int = 0
    is_consistent: bool = True
