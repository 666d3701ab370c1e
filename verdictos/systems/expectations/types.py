"""
VerdictOS -- Expectation Type Definitions
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, Field, model_validator

from verdictos.primitives.common import ExpectationProof, FrozenModel, VerdictBaseModel, determinism_hash


class ExpectationType(enum.StrEnum):
    NAVIGATION = "navigation"
    NETWORK_ACTION = "network_action"
    VALIDATION_BLOCK = "validation_block"
    STATE_ACTION = "state_action"


class ResolutionOutcome(enum.StrEnum):
    VERIFIED = "VERIFIED"
    SILENT_FAILURE = "SILENT_FAILURE"
    COVERAGE_GAP = "COVERAGE_GAP"


class GapReason(enum.StrEnum):
    TIMEOUT = "timeout"
    EXTERNAL_BLOCKED = "external_blocked"
    EXECUTION_ERROR = "execution_error"
    OUT_OF_SCOPE = "out_of_scope"
    BUDGET_EXCEEDED = "budget_exceeded"


class Expectation(FrozenModel):
    """
    A declared expected behavior.

    PROVEN expectations come from the static-proof source and are taken
    as-is. OBSERVED ones are built here from strict runtime evidence.
    Sources that supply no id get one derived from the declaration itself,
    so the same declaration always carries the same id.
    """

    id: str
    type: ExpectationType
    proof: ExpectationProof = ExpectationProof.PROVEN
    from_path: str | None = Field(default=None, alias="fromPath")
    target_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("targetPath", "expectedTarget", "target_path"),
        serialization_alias="targetPath",
    )
    expected_request_url: str | None = Field(default=None, alias="expectedRequestUrl")
    expected_state_key: str | None = Field(default=None, alias="expectedStateKey")
    source_ref: str | None = Field(default=None, alias="sourceRef")
    evidence: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _derive_id(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or data.get("id"):
            return data
        return {**data, "id": derived_expectation_id(data)}


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def derived_expectation_id(data: Mapping[str, Any]) -> str:
    """Deterministic id from what the expectation declares."""
    declared = {
        "type": str(_first(data, "type") or ""),
        "from_path": _first(data, "fromPath", "from_path"),
        "target_path": _first(data, "targetPath", "expectedTarget", "target_path"),
        "expected_request_url": _first(data, "expectedRequestUrl", "expected_request_url"),
        "expected_state_key": _first(data, "expectedStateKey", "expected_state_key"),
        "source_ref": _first(data, "sourceRef", "source_ref"),
    }
    return f"exp-{declared['type'] or 'unknown'}-{determinism_hash(declared)[:12]}"


class Evaluation(FrozenModel):
    outcome: ResolutionOutcome
    reason: str | None = None


class Resolution(FrozenModel):
    """The single terminal outcome of one expectation."""

    expectation_id: str
    expectation_type: ExpectationType
    proof: ExpectationProof
    outcome: ResolutionOutcome
    reason: str | None = None
    trace_index: int | None = None
    attempted: bool = True

    @property
    def skipped(self) -> bool:
        return self.reason in (
            GapReason.BUDGET_EXCEEDED,
            GapReason.OUT_OF_SCOPE,
            GapReason.EXTERNAL_BLOCKED,
        )


class ResolutionReport(VerdictBaseModel):
    """Outcome of resolving every PROVEN expectation plus per-trace OBSERVED ones."""

    proven: list[Resolution] = Field(default_factory=list)
    observed: list[Resolution] = Field(default_factory=list)
    observed_expectations: list[Expectation] = Field(default_factory=list)
    unproven_trace_indexes: list[int] = Field(default_factory=list)
    total_proven: int = 0
    attempted: int = 0
    budget_exceeded: int = 0
