"""
VerdictOS -- Decision Types

The final CI decision, the inputs it is computed from, and the artifact
contract results that feed it.
"""

from __future__ import annotations

import enum

from pydantic import Field

from verdictos.primitives.common import ExitCode, FrozenModel, VerdictBaseModel
from verdictos.systems.coverage.types import ConsistencyValidation, CoverageEnforcement

# ─── Labels ──────────────────────────────────────────────────────


class DecisionLabel(enum.StrEnum):
    PASS = "PASS"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    FAILURE_CONFIRMED = "FAILURE_CONFIRMED"
    FAILURE_MISLEADING = "FAILURE_MISLEADING"
    INCOMPLETE = "INCOMPLETE"
    INFRA_FAILURE = "INFRA_FAILURE"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    EVIDENCE_VIOLATION = "EVIDENCE_VIOLATION"


class RunStatus(enum.StrEnum):
    SUCCESS = "SUCCESS"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    FAILURE = "FAILURE"
    EVIDENCE_VIOLATION = "EVIDENCE_VIOLATION"


# ─── Artifact contracts ──────────────────────────────────────────


class ContractSeverity(enum.StrEnum):
    WARNING = "WARNING"  # Artifact is suspect; the run is INCOMPLETE
    CRITICAL = "CRITICAL"  # Artifact is corrupt; the run cannot be trusted


class ContractViolation(FrozenModel):
    code: str
    artifact: str
    message: str
    severity: ContractSeverity
    field: str | None = None


class ContractValidation(FrozenModel):
    valid: bool = True
    violations: list[ContractViolation] = Field(default_factory=list)

    @property
    def has_critical(self) -> bool:
        return any(v.severity == ContractSeverity.CRITICAL for v in self.violations)

    @property
    def has_warning(self) -> bool:
        return any(v.severity == ContractSeverity.WARNING for v in self.violations)


# ─── Decision ────────────────────────────────────────────────────


class DecisionInputs(VerdictBaseModel):
    """Everything the decision table looks at. Built once per run."""

    judgment_code: ExitCode = ExitCode.SUCCESS
    coverage: CoverageEnforcement
    consistency: ConsistencyValidation = Field(default_factory=lambda: ConsistencyValidation(valid=True))
    contracts: ContractValidation = Field(default_factory=ContractValidation)
    infra_failure: bool = False
    infra_reason: str = ""


class Decision(FrozenModel):
    exit_code: ExitCode
    status: RunStatus
    decision: DecisionLabel
    rule: int
    reasons: list[str] = Field(default_factory=list)


class RunSummary(FrozenModel):
    total_findings: int = 0
    findings_counts: dict[str, int] = Field(
        default_factory=lambda: {"HIGH": 0, "MEDIUM": 0, "LOW": 0, "UNKNOWN": 0}
    )
    incomplete_reasons: list[str] = Field(default_factory=list)
