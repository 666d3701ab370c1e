"""
VerdictOS -- Cause Derivation Engine

Evidence-gated likely-cause catalog (C1..C7).
"""

from verdictos.systems.causes.catalog import (
    CATALOG_ORDER,
    CAUSE_TEXT,
    CauseKind,
    attach_causes,
    derive_causes,
    derive_causes_for_findings,
    evaluate_cause,
    findings_with_causes,
)

__all__ = [
    "CATALOG_ORDER",
    "CAUSE_TEXT",
    "CauseKind",
    "attach_causes",
    "derive_causes",
    "derive_causes_for_findings",
    "evaluate_cause",
    "findings_with_causes",
]
