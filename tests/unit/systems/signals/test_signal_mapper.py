"""
Tests for the Signal Mapper.

Covers:
  - Impact levels by type, route criticality and confidence
  - User risk and ownership tables
  - Route, feature and grouping extraction
  - Enrichment returns a copy
"""

from __future__ import annotations

from typing import Any

from verdictos.primitives.common import ConfidenceLevel
from verdictos.primitives.finding import Finding, FindingConfidence, FindingOutcome, FindingStatus
from verdictos.primitives.trace import Manifest, Trace
from verdictos.systems.signals import (
    ImpactLevel,
    Ownership,
    UserRisk,
    enrich_finding_with_signals,
    feature_for,
    map_impact_level,
    map_ownership,
    map_user_risk,
    route_for,
)

_MANIFEST = Manifest(static_expectations=[{"id": "exp-1", "fromPath": "/checkout/"}])


def _make_finding(
    finding_type: str,
    before_url: str = "http://app.test/checkout",
    level: ConfidenceLevel | None = ConfidenceLevel.MEDIUM,
    interaction_type: str = "click",
    **kwargs: Any,
) -> Finding:
    confidence = None
    if level is not None:
        confidence = FindingConfidence(score=0.6, level=level, status=FindingStatus.SUSPECTED)
    evidence = {"before_url": before_url} if before_url else {"note": "no url"}
    return Finding(
        id="finding-0-x-1",
        type=finding_type,
        outcome=FindingOutcome.SILENT_FAILURE,
        evidence=evidence,
        interaction={"type": interaction_type},
        confidence=confidence,
        **kwargs,
    )


def _trace(sensors: dict[str, Any]) -> Trace:
    return Trace.model_validate({"sensors": sensors})


class TestImpact:
    def test_navigation_on_critical_route_is_high(self):
        assert map_impact_level(_make_finding("navigation_silent_failure"), _MANIFEST) == ImpactLevel.HIGH

    def test_navigation_with_low_confidence_is_medium(self):
        finding = _make_finding("navigation_silent_failure", level=ConfidenceLevel.LOW)
        assert map_impact_level(finding, _MANIFEST) == ImpactLevel.MEDIUM

    def test_navigation_off_critical_route_low_confidence(self):
        finding = _make_finding("navigation_silent_failure", "http://app.test/blog", ConfidenceLevel.LOW)
        assert map_impact_level(finding, _MANIFEST) == ImpactLevel.LOW

    def test_accessibility_always_high(self):
        assert map_impact_level(_make_finding("focus_silent_failure")) == ImpactLevel.HIGH

    def test_network_depends_on_route(self):
        assert map_impact_level(_make_finding("network_silent_failure"), _MANIFEST) == ImpactLevel.MEDIUM
        assert map_impact_level(_make_finding("network_silent_failure")) == ImpactLevel.LOW

    def test_hover_is_low(self):
        assert map_impact_level(_make_finding("hover_silent_failure"), _MANIFEST) == ImpactLevel.LOW

    def test_wildcard_expectation_makes_every_route_critical(self):
        manifest = Manifest(static_expectations=[{"id": "e"}])
        assert map_impact_level(_make_finding("observed_break", "http://app.test/x"), manifest) == ImpactLevel.HIGH


class TestRiskAndOwnership:
    def test_user_risk_table(self):
        assert map_user_risk(_make_finding("observed_break")) == UserRisk.BLOCKS
        assert map_user_risk(_make_finding("network_silent_failure", interaction_type="form")) == UserRisk.BLOCKS
        assert map_user_risk(_make_finding("network_silent_failure")) == UserRisk.CONFUSES
        assert map_user_risk(_make_finding("aria_announce_silent_failure")) == UserRisk.DEGRADES
        assert map_user_risk(_make_finding("coverage_gap")) == UserRisk.CONFUSES

    def test_ownership_table(self):
        assert map_ownership(_make_finding("keyboard_trap_silent_failure")) == Ownership.ACCESSIBILITY
        assert map_ownership(_make_finding("auth_silent_failure")) == Ownership.BACKEND
        assert map_ownership(_make_finding("navigation_silent_failure")) == Ownership.FRONTEND

    def test_network_ownership_uses_sensors(self):
        finding = _make_finding("partial_success_silent_failure")
        backend = _trace({"network": {"totalRequests": 2}})
        integration = _trace({"network": {"totalRequests": 2}, "uiSignals": {"diff": {"changed": True}}})
        assert map_ownership(finding, backend) == Ownership.BACKEND
        assert map_ownership(finding, integration) == Ownership.INTEGRATION

    def test_timing_sensor_means_performance(self):
        finding = _make_finding("navigation_silent_failure")
        assert map_ownership(finding, _trace({"timing": {}})) == Ownership.PERFORMANCE


class TestGrouping:
    def test_route_from_before_url(self):
        assert route_for(_make_finding("x", "http://app.test/users/42?tab=1")) == "/users/42"

    def test_route_from_expectation(self):
        finding = _make_finding("x", before_url="", expectation_id="exp-1")
        assert route_for(finding, _MANIFEST) == "/checkout/"

    def test_route_defaults_to_wildcard(self):
        assert route_for(_make_finding("x", before_url="")) == "*"

    def test_features(self):
        assert feature_for("/users/42") == "users"
        assert feature_for("/") == "root"
        assert feature_for("*") == "unknown"

    def test_enrichment_returns_copy(self):
        finding = _make_finding("focus_silent_failure")
        enriched = enrich_finding_with_signals(finding, None, _MANIFEST)
        assert finding.signals is None
        assert enriched.signals.impact == "HIGH"
        assert enriched.signals.ownership == "ACCESSIBILITY"
        assert enriched.signals.grouping.group_by_feature == "checkout"
        assert enriched.signals.grouping.group_by_failure_type == "focus_silent_failure"
