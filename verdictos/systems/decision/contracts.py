"""
VerdictOS -- Artifact Contracts

Structural checks over the four output artifacts before they leave the
pipeline. A CRITICAL violation means an artifact cannot be trusted at all;
a WARNING means it is internally inconsistent but still readable.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from verdictos.errors import ContractViolationError
from verdictos.systems.decision.types import ContractSeverity, ContractValidation, ContractViolation

logger = structlog.get_logger()

FINDINGS_ARTIFACT = "findings.json"
SUMMARY_ARTIFACT = "summary.json"
COVERAGE_ARTIFACT = "coverage.json"
JUDGMENTS_ARTIFACT = "judgments.json"

CONTRACT_VERSION = 1

_SUMMARY_REQUIRED = ("contract_version", "total_findings", "findings_counts")
_SEVERITY_KEYS = ("critical", "high", "medium", "low")


def _violation(
    code: str,
    artifact: str,
    message: str,
    severity: ContractSeverity = ContractSeverity.CRITICAL,
    field: str | None = None,
) -> ContractViolation:
    return ContractViolation(code=code, artifact=artifact, message=message, severity=severity, field=field)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


# ─── Per-artifact checks ─────────────────────────────────────────


def validate_findings_artifact(data: Any) -> list[ContractViolation]:
    if not isinstance(data, Mapping):
        return [_violation("CONTRACT_MISSING_FINDINGS", FINDINGS_ARTIFACT, "findings.json is missing")]

    findings = data.get("findings")
    if not isinstance(findings, list):
        return [
            _violation(
                "CONTRACT_INVALID_FINDINGS", FINDINGS_ARTIFACT, "findings.json findings field must be an array"
            )
        ]

    violations = []
    for i, finding in enumerate(findings):
        if not isinstance(finding, Mapping) or not all(finding.get(k) for k in ("id", "type", "outcome")):
            violations.append(
                _violation(
                    "CONTRACT_INVALID_FINDINGS",
                    FINDINGS_ARTIFACT,
                    f"finding {i} missing required fields (id, type, outcome)",
                )
            )

    stats = data.get("stats")
    total = stats.get("total") if isinstance(stats, Mapping) else None
    if total != len(findings):
        violations.append(
            _violation(
                "CONTRACT_FINDINGS_STATS_MISMATCH",
                FINDINGS_ARTIFACT,
                f"stats.total={total!r} but findings has {len(findings)} entries",
                field="stats.total",
            )
        )
    return violations


def validate_summary_artifact(data: Any) -> list[ContractViolation]:
    if not isinstance(data, Mapping):
        return [_violation("CONTRACT_MISSING_SUMMARY", SUMMARY_ARTIFACT, "summary.json is missing")]

    violations = []
    for key in _SUMMARY_REQUIRED:
        if key not in data:
            violations.append(
                _violation(
                    "CONTRACT_MISSING_REQUIRED_FIELD",
                    SUMMARY_ARTIFACT,
                    f"summary.json missing required field: {key}",
                    ContractSeverity.WARNING,
                    field=key,
                )
            )
    if violations:
        return violations

    counts = data["findings_counts"]
    if not isinstance(counts, Mapping) or sum(counts.values()) != data["total_findings"]:
        violations.append(
            _violation(
                "CONTRACT_INVALID_SUMMARY",
                SUMMARY_ARTIFACT,
                "findings_counts do not add up to total_findings",
                ContractSeverity.WARNING,
                field="findings_counts",
            )
        )

    judgments = data.get("judgments")
    if isinstance(judgments, Mapping):
        bucketed = sum(judgments.get(k, 0) for k in _SEVERITY_KEYS)
        if bucketed != judgments.get("total", 0):
            violations.append(
                _violation(
                    "CONTRACT_INVALID_SUMMARY",
                    SUMMARY_ARTIFACT,
                    "judgment severity counts do not add up to the judgment total",
                    ContractSeverity.WARNING,
                    field="judgments",
                )
            )
    return violations


def validate_coverage_artifact(data: Any) -> list[ContractViolation]:
    if not isinstance(data, Mapping):
        return [
            _violation(
                "CONTRACT_INVALID_COVERAGE", COVERAGE_ARTIFACT, "coverage.json is missing", ContractSeverity.WARNING
            )
        ]
    ratio = data.get("coverage_ratio")
    if not _is_number(ratio) or not 0.0 <= ratio <= 1.0:
        return [
            _violation(
                "CONTRACT_INVALID_COVERAGE",
                COVERAGE_ARTIFACT,
                f"coverage.json has invalid coverage_ratio: {ratio!r}",
                field="coverage_ratio",
            )
        ]
    return []


def validate_judgments_artifact(data: Any) -> list[ContractViolation]:
    if not isinstance(data, Mapping):
        return [
            _violation(
                "CONTRACT_INVALID_JUDGMENTS", JUDGMENTS_ARTIFACT, "judgments.json is missing", ContractSeverity.WARNING
            )
        ]
    judgments = data.get("judgments")
    if not isinstance(judgments, list):
        return [
            _violation(
                "CONTRACT_INVALID_JUDGMENTS", JUDGMENTS_ARTIFACT, "judgments.json must contain an array of judgments"
            )
        ]
    violations = []
    for i, judgment in enumerate(judgments):
        if not isinstance(judgment, Mapping) or not judgment.get("id") or not judgment.get("title"):
            violations.append(
                _violation("CONTRACT_INVALID_JUDGMENTS", JUDGMENTS_ARTIFACT, f"judgment {i} missing id or title")
            )
    return violations


# ─── Whole-run checks ────────────────────────────────────────────


def validate_artifacts(artifacts: Mapping[str, Any]) -> ContractValidation:
    violations = [
        *validate_findings_artifact(artifacts.get(FINDINGS_ARTIFACT)),
        *validate_summary_artifact(artifacts.get(SUMMARY_ARTIFACT)),
        *validate_coverage_artifact(artifacts.get(COVERAGE_ARTIFACT)),
        *validate_judgments_artifact(artifacts.get(JUDGMENTS_ARTIFACT)),
    ]
    return ContractValidation(valid=not violations, violations=violations)


def enforce_contracts(artifacts: Mapping[str, Any]) -> ContractValidation:
    """
    Validate and raise on any violation.

    Raises ContractViolationError whose severity is CRITICAL when any single
    violation is critical, else WARNING.
    """
    validation = validate_artifacts(artifacts)
    if not validation.valid:
        severity = ContractSeverity.CRITICAL if validation.has_critical else ContractSeverity.WARNING
        logger.warning(
            "artifact_contract_violation",
            system="decision",
            severity=str(severity),
            codes=sorted({v.code for v in validation.violations}),
        )
        raise ContractViolationError(
            f"{len(validation.violations)} artifact contract violation(s)",
            violations=list(validation.violations),
            severity=str(severity),
        )
    return validation


def format_contract_violations(validation: ContractValidation) -> str:
    if validation.valid:
        return "All artifacts validated successfully."
    lines = ["Contract violations detected:"]
    for v in validation.violations:
        lines.append(f"  - [{v.artifact}] {v.code} ({v.severity}): {v.message}")
        if v.field:
            lines.append(f"    Field: {v.field}")
    return "\n".join(lines)
