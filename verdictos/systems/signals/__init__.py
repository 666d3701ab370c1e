"""
VerdictOS -- Signal Mapper

Impact, user risk, ownership and grouping signals for findings.
"""

from verdictos.systems.signals.mapper import (
    ImpactLevel,
    Ownership,
    UserRisk,
    enrich_finding_with_signals,
    feature_for,
    grouping_for,
    is_critical_route,
    map_impact_level,
    map_ownership,
    map_user_risk,
    route_for,
)

__all__ = [
    # Enums
    "ImpactLevel",
    "Ownership",
    "UserRisk",
    # Mappings
    "enrich_finding_with_signals",
    "grouping_for",
    "map_impact_level",
    "map_ownership",
    "map_user_risk",
    # Routes
    "feature_for",
    "is_critical_route",
    "route_for",
]
