"""
VerdictOS -- Judgment Builder & Ranking

Turns findings into judgments a person can act on, then ranks and groups
them. Ordering is fully determined by severity, kind, action and the
explicit index, so the same findings always rank the same way.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from verdictos.primitives.common import ConfidenceLevel, ExitCode, Severity
from verdictos.primitives.finding import Finding, FindingOutcome
from verdictos.systems.judgment.types import (
    ACTION_EXIT_CODES,
    Judgment,
    JudgmentReport,
    JudgmentSummary,
    Recommendation,
    RecommendedAction,
)

logger = structlog.get_logger()

_TITLES: dict[FindingOutcome, str] = {
    FindingOutcome.SILENT_FAILURE: "Silent Failure Detected",
    FindingOutcome.UNMET_EXPECTATION: "Expectation Not Met",
    FindingOutcome.COVERAGE_GAP: "Flow Not Tested",
}

_WHY: dict[FindingOutcome, str] = {
    FindingOutcome.SILENT_FAILURE: (
        "User expects operation to succeed but flow silently fails (user may not notice the problem)."
    ),
    FindingOutcome.UNMET_EXPECTATION: (
        "Expected outcome did not occur. The flow may be broken or expectations need adjustment."
    ),
    FindingOutcome.COVERAGE_GAP: (
        "This part of the flow was not tested. Need to add expectations or assertions."
    ),
}

_ACTION_REASONS: dict[FindingOutcome, str] = {
    FindingOutcome.SILENT_FAILURE: "Silent failures degrade user trust and cause subtle data loss.",
    FindingOutcome.UNMET_EXPECTATION: "Expected behavior did not occur; flow may be broken.",
    FindingOutcome.COVERAGE_GAP: "Add expectations to cover this scenario and prevent regressions.",
}

SEVERITY_ORDER: dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}
_KIND_ORDER: dict[FindingOutcome, int] = {
    FindingOutcome.SILENT_FAILURE: 0,
    FindingOutcome.UNMET_EXPECTATION: 1,
    FindingOutcome.COVERAGE_GAP: 2,
}
_ACTION_ORDER: dict[RecommendedAction, int] = {
    RecommendedAction.FIX: 0,
    RecommendedAction.REVIEW: 1,
    RecommendedAction.DOCUMENT: 2,
}


# ─── Per-finding fields ──────────────────────────────────────────


def _confidence_level(finding: Finding) -> ConfidenceLevel:
    if finding.confidence is None:
        return ConfidenceLevel.MEDIUM
    # UNPROVEN is weaker than LOW; it never raises a severity
    if finding.confidence.level == ConfidenceLevel.UNPROVEN:
        return ConfidenceLevel.LOW
    return finding.confidence.level


def judgment_severity(finding: Finding) -> Severity:
    level = _confidence_level(finding)
    match finding.outcome:
        case FindingOutcome.SILENT_FAILURE:
            return Severity.MEDIUM if level == ConfidenceLevel.LOW else Severity.HIGH
        case FindingOutcome.UNMET_EXPECTATION:
            return Severity.HIGH if level == ConfidenceLevel.HIGH else Severity.MEDIUM
        case FindingOutcome.COVERAGE_GAP:
            return Severity.LOW
    return Severity(str(level))


def recommended_action(finding: Finding, severity: Severity) -> RecommendedAction:
    if severity in (Severity.CRITICAL, Severity.HIGH):
        return RecommendedAction.FIX
    if finding.outcome == FindingOutcome.SILENT_FAILURE:
        return RecommendedAction.FIX
    if finding.outcome == FindingOutcome.COVERAGE_GAP:
        return RecommendedAction.DOCUMENT
    return RecommendedAction.REVIEW


def _next_step(finding: Finding, action: RecommendedAction) -> str:
    match action:
        case RecommendedAction.FIX:
            if finding.outcome == FindingOutcome.SILENT_FAILURE:
                return "Add error handling or UI feedback to indicate failure"
            return "Review code and fix the broken expectation"
        case RecommendedAction.REVIEW:
            return "Review the finding and decide if code or expectations need changes"
        case RecommendedAction.DOCUMENT:
            return "Document why this part of the flow is not tested"
    return "Review and determine appropriate action"


def _description(finding: Finding) -> str:
    parts = [f"What: {finding.reason or f'{finding.type} - {finding.outcome}'}"]
    if finding.url:
        parts.append(f"Where: {finding.url}")
    if finding.trace_index is not None:
        parts.append(f"Step: Interaction {finding.trace_index}")
    if finding.outcome in _WHY:
        parts.append(f"Why: {_WHY[finding.outcome]}")
    return "\n".join(parts)


def build_judgment(finding: Finding, index: int) -> Judgment:
    """One judgment for one finding. `index` is the caller's sequence number."""
    severity = judgment_severity(finding)
    action = recommended_action(finding, severity)
    return Judgment(
        id=f"judgment-{index}",
        index=index,
        title=_TITLES.get(finding.outcome, f"{finding.type} ({finding.outcome})"),
        description=_description(finding),
        severity=severity,
        kind=finding.outcome,
        finding_type=finding.type,
        finding_id=finding.id,
        promise_id=finding.expectation_id,
        url=finding.url,
        recommendation=Recommendation(
            action=action,
            reason=_ACTION_REASONS.get(finding.outcome, f"Severity: {severity}"),
            next_step=_next_step(finding, action),
        ),
    )


# ─── Ranking & grouping ──────────────────────────────────────────


def sort_judgments_by_priority(judgments: Sequence[Judgment]) -> list[Judgment]:
    return sorted(
        judgments,
        key=lambda j: (
            SEVERITY_ORDER.get(j.severity, 99),
            _KIND_ORDER.get(j.kind, 99),
            _ACTION_ORDER.get(j.recommendation.action, 99),
            j.index,
        ),
    )


def group_judgments_by_severity(judgments: Sequence[Judgment]) -> dict[str, list[Judgment]]:
    grouped: dict[str, list[Judgment]] = {str(s): [] for s in SEVERITY_ORDER}
    for judgment in judgments:
        grouped[str(judgment.severity)].append(judgment)
    return grouped


def summarize_judgments(judgments: Sequence[Judgment]) -> JudgmentSummary:
    grouped = group_judgments_by_severity(judgments)
    critical = len(grouped[Severity.CRITICAL])
    high = len(grouped[Severity.HIGH])
    medium = len(grouped[Severity.MEDIUM])
    low = len(grouped[Severity.LOW])
    return JudgmentSummary(
        total=len(judgments),
        critical=critical,
        high=high,
        medium=medium,
        low=low,
        action_required=critical + high,
        review_needed=medium,
        informational=low,
    )


def transform_findings_to_judgments(findings: Sequence[Finding]) -> JudgmentReport:
    """Build, rank and group judgments for a list of findings."""
    judgments = [build_judgment(finding, index) for index, finding in enumerate(findings)]
    ordered = sort_judgments_by_priority(judgments)
    report = JudgmentReport(
        by_priority=ordered,
        by_severity=group_judgments_by_severity(ordered),
        summary=summarize_judgments(judgments),
    )
    logger.debug(
        "judgments_built",
        system="judgment",
        total=report.summary.total,
        action_required=report.summary.action_required,
    )
    return report


def judgment_exit_code(judgments: Sequence[Judgment]) -> ExitCode:
    """Highest exit code implied by the recommended actions."""
    codes = [ACTION_EXIT_CODES[j.recommendation.action] for j in judgments]
    return max(codes, default=ExitCode.SUCCESS)
