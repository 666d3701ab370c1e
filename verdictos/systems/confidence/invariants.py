"""
VerdictOS -- Confidence Invariants

Each truth status owns a fixed score range. When a score and its status
disagree, the correction always goes down: a score above its range is
capped, and a score below its range demotes the status. Nothing here ever
raises a score or promotes a status.
"""

from __future__ import annotations

from verdictos.primitives.common import ExpectationProof
from verdictos.primitives.finding import FindingStatus
from verdictos.systems.confidence.types import (
    InvariantCode,
    InvariantViolation,
    VerificationStatus,
)

CONFIDENCE_RANGES: dict[FindingStatus, tuple[float, float]] = {
    FindingStatus.CONFIRMED: (0.70, 1.00),
    FindingStatus.SUSPECTED: (0.30, 0.69),
    FindingStatus.INFORMATIONAL: (0.01, 0.29),
    FindingStatus.IGNORED: (0.00, 0.00),
}

UNPROVEN_EXPECTATION_CAP = 0.39
VERIFIED_WITH_ERRORS_CAP = 0.49

# Demotion ladder: the status a score falls to when it is below its range
_DEMOTION: dict[FindingStatus, FindingStatus] = {
    FindingStatus.CONFIRMED: FindingStatus.SUSPECTED,
    FindingStatus.SUSPECTED: FindingStatus.INFORMATIONAL,
    FindingStatus.INFORMATIONAL: FindingStatus.IGNORED,
}

_ABOVE_MAX: dict[FindingStatus, InvariantCode] = {
    FindingStatus.SUSPECTED: InvariantCode.SUSPECTED_ABOVE_MAX,
    FindingStatus.INFORMATIONAL: InvariantCode.INFORMATIONAL_ABOVE_MAX,
    FindingStatus.IGNORED: InvariantCode.IGNORED_NON_ZERO,
}

_BELOW_MIN: dict[FindingStatus, InvariantCode] = {
    FindingStatus.CONFIRMED: InvariantCode.CONFIRMED_BELOW_MIN,
    FindingStatus.SUSPECTED: InvariantCode.SUSPECTED_BELOW_MIN,
    FindingStatus.INFORMATIONAL: InvariantCode.INFORMATIONAL_BELOW_MIN,
}


def enforce_confidence_invariants(
    score: float,
    status: FindingStatus,
    proof: ExpectationProof = ExpectationProof.PROVEN,
    verification_status: VerificationStatus | None = None,
) -> tuple[float, FindingStatus, list[InvariantViolation]]:
    """
    Bring a (score, status) pair into agreement.

    Returns the corrected score, the corrected status and one violation
    record per correction applied, in the order they were applied.
    """
    violations: list[InvariantViolation] = []

    def _record(code: InvariantCode, message: str, new_score: float, new_status: FindingStatus) -> None:
        violations.append(
            InvariantViolation(
                code=code,
                message=message,
                original_score=score,
                corrected_score=new_score,
                original_status=status,
                corrected_status=new_status,
            )
        )

    corrected = score

    # Caps from the expectation, applied before the status ranges
    if proof == ExpectationProof.UNPROVEN and corrected > UNPROVEN_EXPECTATION_CAP:
        _record(
            InvariantCode.UNPROVEN_EXPECTATION_ABOVE_MAX,
            f"Unproven expectation requires confidence <= {UNPROVEN_EXPECTATION_CAP}, got {corrected}",
            UNPROVEN_EXPECTATION_CAP,
            status,
        )
        corrected = UNPROVEN_EXPECTATION_CAP

    if verification_status == VerificationStatus.VERIFIED_WITH_ERRORS and corrected > VERIFIED_WITH_ERRORS_CAP:
        _record(
            InvariantCode.VERIFIED_WITH_ERRORS_ABOVE_MAX,
            f"VERIFIED_WITH_ERRORS requires confidence <= {VERIFIED_WITH_ERRORS_CAP}, got {corrected}",
            VERIFIED_WITH_ERRORS_CAP,
            status,
        )
        corrected = VERIFIED_WITH_ERRORS_CAP

    current = status
    while True:
        low, high = CONFIDENCE_RANGES[current]
        if corrected > high:
            _record(
                _ABOVE_MAX[current],
                f"{current} requires confidence <= {high}, got {corrected}",
                high,
                current,
            )
            corrected = high
            break
        if corrected < low:
            demoted = _DEMOTION[current]
            _record(
                _BELOW_MIN[current],
                f"{current} requires confidence >= {low}, got {corrected}; demoted to {demoted}",
                corrected,
                demoted,
            )
            current = demoted
            continue
        break

    return corrected, current, violations
