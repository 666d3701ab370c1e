"""
VerdictOS -- Silence Type Definitions

A silence is any unit of work the run did not fully evaluate: budget caps,
timeouts, safety skips, missing sensors, out-of-scope traces. Silence is
never neutral. Every entry carries a fixed-taxonomy reason and a negative
(or zero) confidence impact.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator

from verdictos.primitives.common import FrozenModel, VerdictBaseModel

# ─── Taxonomy ─────────────────────────────────────────────────────


class SilenceCategory(enum.StrEnum):
    BUDGET = "budget"  # Scan terminated due to time/interaction limit
    TIMEOUT = "timeout"  # Navigation/interaction/settle timeout
    SAFETY = "safety"  # Intentionally skipped (logout, delete, etc)
    INCREMENTAL = "incremental"  # Reused previous run data
    DISCOVERY = "discovery"  # Failed to discover items
    SENSOR = "sensor"  # Sensor failed or returned empty
    EXPECTATION = "expectation"  # No expectation exists for interaction
    NAVIGATION = "navigation"  # Navigation blocked/failed
    SCOPE = "scope"  # Trace crossed the pre-auth analysis boundary


class SilenceReason(enum.StrEnum):
    SCAN_TIME_EXCEEDED = "scan_time_exceeded"
    PAGE_LIMIT_EXCEEDED = "page_limit_exceeded"
    INTERACTION_LIMIT_EXCEEDED = "interaction_limit_exceeded"
    ROUTE_LIMIT_EXCEEDED = "route_limit_exceeded"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    INTERACTION_TIMEOUT = "interaction_timeout"
    SETTLE_TIMEOUT = "settle_timeout"
    LOAD_TIMEOUT = "load_timeout"
    DESTRUCTIVE_TEXT = "destructive_text"  # logout, delete, unsubscribe
    EXTERNAL_NAVIGATION = "external_navigation"  # leaves origin
    UNSAFE_PATTERN = "unsafe_pattern"
    INCREMENTAL_UNCHANGED = "incremental_unchanged"
    DISCOVERY_ERROR = "discovery_error"
    NO_MATCHING_SELECTOR = "no_matching_selector"
    NO_EXPECTATION = "no_expectation"  # Interaction found, nothing to verify
    EXPECTATION_NOT_REACHABLE = "expectation_not_reachable"
    DUPLICATE_EXPECTATION = "duplicate_expectation"  # Same id declared twice
    EXTERNAL_BLOCKED = "external_blocked"
    ORIGIN_MISMATCH = "origin_mismatch"
    SENSOR_UNAVAILABLE = "sensor_unavailable"
    SENSOR_FAILED = "sensor_failed"
    POST_AUTH_BOUNDARY = "post_auth_boundary"


class SilenceType(enum.StrEnum):
    INTERACTION_NOT_EXECUTED = "interaction_not_executed"
    PROMISE_NOT_EVALUATED = "promise_not_evaluated"
    PROMISE_VERIFICATION_BLOCKED = "promise_verification_blocked"
    SENSOR_FAILURE = "sensor_failure"
    SELECTOR_NOT_FOUND = "selector_not_found"
    DISCOVERY_FAILURE = "discovery_failure"
    INTERACTION_TIMEOUT = "interaction_timeout"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    SETTLE_TIMEOUT = "settle_timeout"
    BUDGET_LIMIT_EXCEEDED = "budget_limit_exceeded"
    SAFETY_POLICY_BLOCK = "safety_policy_block"
    INCREMENTAL_REUSE = "incremental_reuse"
    OUT_OF_SCOPE = "out_of_scope"


class EvaluationStatus(enum.StrEnum):
    BLOCKED = "blocked"  # Intentionally blocked (safety policy, external nav)
    AMBIGUOUS = "ambiguous"  # Cannot determine what would happen
    SKIPPED = "skipped"  # Deferred by policy (budget, incremental reuse, scope)
    TIMED_OUT = "timed_out"  # Exceeded time budget
    INCOMPLETE = "incomplete"  # Partially evaluated


# ─── Records ──────────────────────────────────────────────────────


class SilenceImpact(FrozenModel):
    """Confidence lost to a silence, per dimension. Never positive."""

    coverage: int = Field(default=0, le=0, ge=-100)
    promise_verification: int = Field(default=0, le=0, ge=-100)
    overall: int = Field(default=0, le=0, ge=-100)


class SilenceEntry(FrozenModel):
    """One silence. Append-only: the ledger never mutates a recorded entry."""

    scope: str
    reason: SilenceReason
    description: str
    context: dict[str, Any] = Field(default_factory=dict)
    count: int = Field(default=1, ge=1)
    category: SilenceCategory
    silence_type: SilenceType
    evaluation_status: EvaluationStatus
    trigger: str
    impact: SilenceImpact = Field(default_factory=SilenceImpact)
    expectation_id: str | None = None

    @field_validator("scope", "description")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be non-empty")
        return v


class SilenceSummary(VerdictBaseModel):
    """Counts over a ledger, keyed by taxonomy value."""

    total_silences: int = 0
    total_count: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_reason: dict[str, int] = Field(default_factory=dict)
    by_scope: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
    by_evaluation_status: dict[str, int] = Field(default_factory=dict)
    by_impact_severity: dict[str, int] = Field(default_factory=dict)
    with_promise_association: int = 0
    aggregated_impact: SilenceImpact = Field(default_factory=SilenceImpact)
    interpretation: str = ""
