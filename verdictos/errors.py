"""
VerdictOS -- Error Hierarchy

All exceptions raised within the evidence-to-verdict pipeline.

Most failure modes are NOT exceptions: a finding or cause that lacks
evidence is simply never produced, and malformed sensor input reads as
absence. The errors below are the typed conditions that must surface in
the final decision. `EvidenceLawViolation` and `ContractViolationError` are
captured by the pipeline and converted into exit codes; they never escape
`run_pipeline` as unhandled faults.
"""

from __future__ import annotations

from typing import Any


class VerdictError(RuntimeError):
    """Base for all VerdictOS pipeline errors."""


class ConfigurationError(VerdictError):
    """Configuration failed validation. Maps to the usage-error exit code."""

    exit_code = 64


class EvidenceLawError(VerdictError):
    """A finding or cause was constructed without a supporting evidence map."""


class EvidenceLawViolation(VerdictError):
    """Execution records and judgments disagree. Always surfaces as exit 50."""

    exit_code = 50

    def __init__(self, message: str, violations: list[Any] | None = None) -> None:
        super().__init__(message)
        self.violations: list[Any] = list(violations or [])


class ExpectationAccountingError(VerdictError):
    """Attempted plus budget-exceeded expectations do not add up to the proven total."""


class ExecutionCompletenessError(VerdictError):
    """A proven expectation has no execution record."""


class UnknownOutcomeError(VerdictError):
    """An observation outcome has no judgment mapping."""


class SilenceRecordError(VerdictError):
    """A silence entry is missing its scope, reason or description."""


class ContractViolationError(VerdictError):
    """An output artifact breaks its contract."""

    def __init__(self, message: str, violations: list[Any] | None = None, severity: str = "CRITICAL") -> None:
        super().__init__(message)
        self.violations: list[Any] = list(violations or [])
        self.severity = severity
