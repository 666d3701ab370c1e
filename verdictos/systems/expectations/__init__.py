"""
VerdictOS -- Expectation Resolver

PROVEN expectations come from static proof and are evaluated as given.
OBSERVED expectations are derived only from concrete runtime evidence.
Every PROVEN expectation ends in exactly one outcome or a budget gap.
"""

from verdictos.systems.expectations.evaluation import evaluate_expectation, policy_gap
from verdictos.systems.expectations.observed import (
    derive_observed_expectation,
    has_template_token,
    resolve_target_path,
)
from verdictos.systems.expectations.resolver import ExpectationResolver
from verdictos.systems.expectations.types import (
    Evaluation,
    Expectation,
    ExpectationType,
    GapReason,
    Resolution,
    ResolutionOutcome,
    ResolutionReport,
    derived_expectation_id,
)

__all__ = [
    # Resolver
    "ExpectationResolver",
    # Evaluation
    "evaluate_expectation",
    "policy_gap",
    # Observed
    "derive_observed_expectation",
    "has_template_token",
    "resolve_target_path",
    # Types
    "Evaluation",
    "Expectation",
    "ExpectationType",
    "GapReason",
    "Resolution",
    "ResolutionOutcome",
    "ResolutionReport",
    "derived_expectation_id",
]
