"""
VerdictOS -- Silent-Failure Classifier

Scope boundary plus per-interaction rule catalog. Produces typed,
evidence-backed findings; never a finding without evidence, never a
finding for an out-of-scope trace.
"""

from verdictos.systems.classifier.classifier import SilentFailureClassifier, observations
from verdictos.systems.classifier.rules import GENERAL_RULES, TYPE_RULES, evaluate_rule, rules_for
from verdictos.systems.classifier.scope import (
    detect_scope_markers,
    is_post_auth_path,
    is_pre_auth_gate,
    is_protected_route,
    scope_boundary,
)
from verdictos.systems.classifier.types import (
    ClassificationResult,
    Rule,
    RuleHit,
    ScopeBoundary,
    ScopeResult,
    SkipRecord,
)

__all__ = [
    # Classifier
    "SilentFailureClassifier",
    "observations",
    # Rules
    "GENERAL_RULES",
    "TYPE_RULES",
    "evaluate_rule",
    "rules_for",
    # Scope
    "detect_scope_markers",
    "is_post_auth_path",
    "is_pre_auth_gate",
    "is_protected_route",
    "scope_boundary",
    # Types
    "ClassificationResult",
    "Rule",
    "RuleHit",
    "ScopeBoundary",
    "ScopeResult",
    "SkipRecord",
]
