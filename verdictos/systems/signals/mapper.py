"""
VerdictOS -- Signal Mapper

Deterministic decision signals for a finding:

  - impact level   LOW | MEDIUM | HIGH
  - user risk      BLOCKS | CONFUSES | DEGRADES
  - ownership      FRONTEND | BACKEND | INTEGRATION | ACCESSIBILITY | PERFORMANCE
  - grouping       route, failure type, feature

The mapping is a fixed table over the finding type, the route it happened
on and the sensors of its trace. There are no heuristics beyond that table.
"""

from __future__ import annotations

import enum

from verdictos.primitives.common import ConfidenceLevel, url_path
from verdictos.primitives.finding import Finding, FindingSignals, SignalGrouping
from verdictos.primitives.trace import Manifest, Trace, is_true, lookup, number


class ImpactLevel(enum.StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class UserRisk(enum.StrEnum):
    BLOCKS = "BLOCKS"  # User cannot complete the intended action
    CONFUSES = "CONFUSES"  # Action appears to work but gives no feedback
    DEGRADES = "DEGRADES"  # Works, with reduced quality or accessibility


class Ownership(enum.StrEnum):
    FRONTEND = "FRONTEND"
    BACKEND = "BACKEND"
    INTEGRATION = "INTEGRATION"
    ACCESSIBILITY = "ACCESSIBILITY"
    PERFORMANCE = "PERFORMANCE"


_ACCESSIBILITY_TYPES = ("focus", "aria", "keyboard_trap")
_TIMING_TYPES = ("loading_stuck", "freeze_like")
_BACKEND_TYPES = ("network", "partial_success", "async_state")
_LOW_STAKES_TYPES = ("hover", "file_upload")
_OBSERVED_BREAK = "observed_break"


def _has(finding_type: str, *fragments: str) -> bool:
    return any(f in finding_type for f in fragments)


# ─── Routes ──────────────────────────────────────────────────────


def _normalize_route(path: str | None) -> str:
    if not path or path == "*":
        return "*"
    return path.rstrip("/") or "/"


def route_for(finding: Finding, manifest: Manifest | None = None) -> str:
    """Where the finding happened: the before-URL path, else the expectation's fromPath."""
    before_url = finding.evidence.get("before_url")
    if isinstance(before_url, str) and before_url:
        path = url_path(before_url)
        if path:
            return path

    if manifest is not None:
        expectation = manifest.static_expectation(finding.expectation_id)
        if expectation and expectation.get("fromPath"):
            return str(expectation["fromPath"])
    return "*"


def is_critical_route(route: str, manifest: Manifest | None = None) -> bool:
    """A route is critical when some static expectation starts from it."""
    if manifest is None or not manifest.static_expectations:
        return False
    normalized = _normalize_route(route)
    for expectation in manifest.static_expectations:
        origin = _normalize_route(expectation.get("fromPath") or "*")
        if origin == normalized or origin == "*":
            return True
    return False


def feature_for(route: str) -> str:
    if not route or route == "*":
        return "unknown"
    parts = [p for p in _normalize_route(route).split("/") if p]
    return parts[0] if parts else "root"


# ─── Mappings ────────────────────────────────────────────────────


def map_impact_level(finding: Finding, manifest: Manifest | None = None) -> ImpactLevel:
    finding_type = finding.type or "unknown"
    level = finding.confidence.level if finding.confidence is not None else None
    critical = is_critical_route(route_for(finding, manifest), manifest)

    if (
        (_has(finding_type, "navigation", "auth") or finding_type == _OBSERVED_BREAK)
        and critical
        and level in (ConfidenceLevel.HIGH, ConfidenceLevel.MEDIUM)
    ):
        return ImpactLevel.HIGH
    if _has(finding_type, *_ACCESSIBILITY_TYPES) or _has(finding_type, *_TIMING_TYPES):
        return ImpactLevel.HIGH
    if _has(finding_type, *_BACKEND_TYPES):
        return ImpactLevel.MEDIUM if critical else ImpactLevel.LOW
    if _has(finding_type, "feedback_gap", "validation"):
        return ImpactLevel.MEDIUM
    if _has(finding_type, "state"):
        return ImpactLevel.MEDIUM if critical else ImpactLevel.LOW
    if _has(finding_type, *_LOW_STAKES_TYPES):
        return ImpactLevel.LOW
    if level == ConfidenceLevel.LOW and not critical:
        return ImpactLevel.LOW
    return ImpactLevel.MEDIUM


def map_user_risk(finding: Finding) -> UserRisk:
    finding_type = finding.type or "unknown"
    if (
        _has(finding_type, "navigation", "auth", *_TIMING_TYPES)
        or finding_type == _OBSERVED_BREAK
        or (_has(finding_type, "network") and finding.interaction.type == "form")
    ):
        return UserRisk.BLOCKS
    if _has(finding_type, "feedback_gap", "partial_success", "async_state", "validation"):
        return UserRisk.CONFUSES
    if _has(finding_type, *_ACCESSIBILITY_TYPES, *_LOW_STAKES_TYPES):
        return UserRisk.DEGRADES
    return UserRisk.CONFUSES


def map_ownership(finding: Finding, trace: Trace | None = None) -> Ownership:
    finding_type = finding.type or "unknown"
    sensors = trace.sensors if trace is not None else {}
    has_network = number(sensors, "network.totalRequests") > 0
    has_timing = lookup(sensors, "timing") is not None

    if _has(finding_type, *_ACCESSIBILITY_TYPES):
        return Ownership.ACCESSIBILITY
    if _has(finding_type, *_TIMING_TYPES, "feedback_gap") or has_timing:
        return Ownership.PERFORMANCE
    if _has(finding_type, *_BACKEND_TYPES):
        if has_network and not is_true(sensors, "uiSignals.diff.changed"):
            return Ownership.BACKEND
        return Ownership.INTEGRATION
    if _has(finding_type, "auth", "logout"):
        return Ownership.BACKEND
    if _has(finding_type, "navigation", "validation", *_LOW_STAKES_TYPES) or finding_type == _OBSERVED_BREAK:
        return Ownership.INTEGRATION if has_network else Ownership.FRONTEND
    return Ownership.INTEGRATION


def grouping_for(finding: Finding, manifest: Manifest | None = None) -> SignalGrouping:
    route = route_for(finding, manifest)
    return SignalGrouping(
        group_by_route=route or "*",
        group_by_failure_type=finding.type or "unknown",
        group_by_feature=feature_for(route),
    )


def enrich_finding_with_signals(
    finding: Finding,
    trace: Trace | None = None,
    manifest: Manifest | None = None,
) -> Finding:
    """Return a copy of the finding with its decision signals attached."""
    signals = FindingSignals(
        impact=map_impact_level(finding, manifest),
        user_risk=map_user_risk(finding),
        ownership=map_ownership(finding, trace),
        grouping=grouping_for(finding, manifest),
    )
    return finding.model_copy(update={"signals": signals})
