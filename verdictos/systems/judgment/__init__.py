"""
VerdictOS -- Judgment Builder & Ranking

Human-facing judgments for findings, and per-promise verdicts with their
exit codes.
"""

from verdictos.systems.judgment.builder import (
    SEVERITY_ORDER,
    build_judgment,
    group_judgments_by_severity,
    judgment_exit_code,
    judgment_severity,
    recommended_action,
    sort_judgments_by_priority,
    summarize_judgments,
    transform_findings_to_judgments,
)
from verdictos.systems.judgment.types import (
    ACTION_EXIT_CODES,
    Judgment,
    JudgmentReport,
    JudgmentSummary,
    ObservationOutcome,
    Recommendation,
    RecommendedAction,
    Verdict,
    VerdictType,
)
from verdictos.systems.judgment.verdicts import (
    VERDICT_EXIT_CODES,
    count_verdicts,
    create_verdict,
    map_outcome_to_verdict,
    sort_verdicts,
    verdict_exit_code,
    verdict_severity,
)

__all__ = [
    # Types
    "ACTION_EXIT_CODES",
    "Judgment",
    "JudgmentReport",
    "JudgmentSummary",
    "ObservationOutcome",
    "Recommendation",
    "RecommendedAction",
    "Verdict",
    "VerdictType",
    # Builder
    "SEVERITY_ORDER",
    "build_judgment",
    "group_judgments_by_severity",
    "judgment_exit_code",
    "judgment_severity",
    "recommended_action",
    "sort_judgments_by_priority",
    "summarize_judgments",
    "transform_findings_to_judgments",
    # Verdicts
    "VERDICT_EXIT_CODES",
    "count_verdicts",
    "create_verdict",
    "map_outcome_to_verdict",
    "sort_verdicts",
    "verdict_exit_code",
    "verdict_severity",
]
