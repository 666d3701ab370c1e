"""
VerdictOS -- Confidence & Truth-Lock Engine

Weighted five-pillar scoring, non-configurable truth locks, evidence
packages and status-range invariants.
"""

from verdictos.systems.confidence.engine import (
    CONTRADICTION_PENALTY,
    INCOMPLETE_EVIDENCE_MAX_CONFIDENCE,
    NON_DETERMINISTIC_MAX_CONFIDENCE,
    ConfidenceEngine,
)
from verdictos.systems.confidence.evidence import build_evidence_package, missing_evidence
from verdictos.systems.confidence.invariants import (
    CONFIDENCE_RANGES,
    UNPROVEN_EXPECTATION_CAP,
    VERIFIED_WITH_ERRORS_CAP,
    enforce_confidence_invariants,
)
from verdictos.systems.confidence.types import (
    ConfidenceAssessment,
    ConfidenceReason,
    DeterminismVerdict,
    EvidencePackage,
    InvariantCode,
    InvariantViolation,
    PillarScores,
    VerificationStatus,
)

__all__ = [
    # Engine
    "ConfidenceEngine",
    "CONTRADICTION_PENALTY",
    "INCOMPLETE_EVIDENCE_MAX_CONFIDENCE",
    "NON_DETERMINISTIC_MAX_CONFIDENCE",
    # Evidence
    "build_evidence_package",
    "missing_evidence",
    # Invariants
    "CONFIDENCE_RANGES",
    "UNPROVEN_EXPECTATION_CAP",
    "VERIFIED_WITH_ERRORS_CAP",
    "enforce_confidence_invariants",
    # Types
    "ConfidenceAssessment",
    "ConfidenceReason",
    "DeterminismVerdict",
    "EvidencePackage",
    "InvariantCode",
    "InvariantViolation",
    "PillarScores",
    "VerificationStatus",
]
