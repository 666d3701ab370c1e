"""
VerdictOS -- Run Summary

Finding counts by confidence bucket and the explicit list of reasons a
run is incomplete. Counts always come from the findings list itself.
"""

from __future__ import annotations

from collections.abc import Sequence

from verdictos.primitives.common import ConfidenceLevel
from verdictos.primitives.finding import Finding
from verdictos.systems.coverage.types import CoverageEnforcement
from verdictos.systems.decision.types import ContractValidation, RunSummary
from verdictos.systems.silence.types import SilenceSummary

_BUCKETS = ("HIGH", "MEDIUM", "LOW", "UNKNOWN")


def confidence_bucket(finding: Finding) -> str:
    if finding.confidence is None:
        return "UNKNOWN"
    if finding.confidence.level == ConfidenceLevel.UNPROVEN:
        return "LOW"
    return str(finding.confidence.level)


def findings_by_confidence(findings: Sequence[Finding]) -> dict[str, int]:
    counts = dict.fromkeys(_BUCKETS, 0)
    for finding in findings:
        counts[confidence_bucket(finding)] += 1
    return counts


def incomplete_reasons(
    coverage: CoverageEnforcement,
    silences: SilenceSummary | None = None,
    contracts: ContractValidation | None = None,
) -> list[str]:
    reasons: set[str] = set()
    report = coverage.report
    if not coverage.passed:
        reasons.add("coverage_below_threshold")
    if report.attempted < report.total:
        reasons.add("partial_attempts")
    if report.attempted_not_observed > 0:
        reasons.add("observation_incomplete")
    if silences is not None and silences.by_impact_severity.get("critical", 0) > 0:
        reasons.add("critical_silence_detected")
    if contracts is not None and not contracts.valid:
        reasons.add("artifact_validation_failed")
    return sorted(reasons)


def build_run_summary(
    findings: Sequence[Finding],
    coverage: CoverageEnforcement,
    silences: SilenceSummary | None = None,
    contracts: ContractValidation | None = None,
) -> RunSummary:
    return RunSummary(
        total_findings=len(findings),
        findings_counts=findings_by_confidence(findings),
        incomplete_reasons=incomplete_reasons(coverage, silences, contracts),
    )
