"""
VerdictOS -- Silence Ledger

Nothing the run failed to evaluate disappears. Budget caps, timeouts,
safety skips, missing sensors and out-of-scope traces are all recorded
against a fixed taxonomy and charged against confidence.
"""

from verdictos.systems.silence.impact import (
    IMPACT_PROFILES,
    ImpactProfile,
    ImpactSummary,
    aggregate_silence_impacts,
    categorize_by_severity,
    compute_silence_impact,
    create_impact_summary,
    interpret_impact,
)
from verdictos.systems.silence.ledger import SilenceLedger
from verdictos.systems.silence.types import (
    EvaluationStatus,
    SilenceCategory,
    SilenceEntry,
    SilenceImpact,
    SilenceReason,
    SilenceSummary,
    SilenceType,
)

__all__ = [
    # Ledger
    "SilenceLedger",
    # Impact
    "IMPACT_PROFILES",
    "ImpactProfile",
    "ImpactSummary",
    "aggregate_silence_impacts",
    "categorize_by_severity",
    "compute_silence_impact",
    "create_impact_summary",
    "interpret_impact",
    # Types
    "EvaluationStatus",
    "SilenceCategory",
    "SilenceEntry",
    "SilenceImpact",
    "SilenceReason",
    "SilenceSummary",
    "SilenceType",
]
