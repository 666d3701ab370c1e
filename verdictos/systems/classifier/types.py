"""
VerdictOS -- Classifier Type Definitions
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field

from verdictos.primitives.common import FrozenModel, VerdictBaseModel
from verdictos.primitives.finding import Finding, ScopeMarker


class ScopeBoundary(enum.StrEnum):
    POST_AUTH_RBAC = "out_of_scope_post_auth_rbac"  # 403: authenticated, not permitted
    POST_AUTH_SESSION = "out_of_scope_post_auth_session"  # 401 outside pre-auth gates
    POST_AUTH_PROTECTED = "out_of_scope_post_auth_protected"  # Session cookies on protected route


class Rule(enum.StrEnum):
    """
    Silent-failure rules in evaluation order. Findings for one trace are
    emitted in this order, so the order is part of the output contract.
    """

    # Interaction-type specific
    KEYBOARD = "keyboard_silent_failure"
    HOVER = "hover_silent_failure"
    FILE_UPLOAD = "file_upload_silent_failure"
    LOGIN = "auth_silent_failure"
    LOGOUT = "logout_silent_failure"
    AUTH_GUARD = "protected_route_silent_failure"
    # All interaction types
    NAVIGATION = "navigation_silent_failure"
    NETWORK = "network_silent_failure"
    PARTIAL_SUCCESS = "partial_success_silent_failure"
    LOADING_STUCK = "loading_stuck_silent_failure"
    ASYNC_STATE = "async_state_silent_failure"
    FOCUS = "focus_silent_failure"
    ARIA_ANNOUNCE = "aria_announce_silent_failure"
    KEYBOARD_TRAP = "keyboard_trap_silent_failure"
    FEEDBACK_GAP = "feedback_gap_silent_failure"
    FREEZE_LIKE = "freeze_like_silent_failure"


class RuleHit(FrozenModel):
    """One rule firing: why, plus the rule-specific observations."""

    rule: Rule
    reason: str
    evidence: dict[str, Any] = Field(default_factory=dict)


class SkipRecord(FrozenModel):
    reason: str
    count: int = 1


class ScopeResult(VerdictBaseModel):
    """Scope boundary verdict for a batch of traces. Never carries findings."""

    findings: list[Finding] = Field(default_factory=list)
    markers: list[ScopeMarker] = Field(default_factory=list)
    skips: list[SkipRecord] = Field(default_factory=list)

    @property
    def out_of_scope_indexes(self) -> set[int]:
        return {m.trace_index for m in self.markers}


class ClassificationResult(VerdictBaseModel):
    findings: list[Finding] = Field(default_factory=list)
    markers: list[ScopeMarker] = Field(default_factory=list)
    skips: list[SkipRecord] = Field(default_factory=list)
