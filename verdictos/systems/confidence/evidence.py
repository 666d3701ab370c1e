"""
VerdictOS -- Evidence Package

Assembles the evidence a finding can point at and lists what is missing.
Only a complete package can back a CONFIRMED status.
"""

from __future__ import annotations

from verdictos.primitives.finding import Finding
from verdictos.primitives.trace import Trace, lookup
from verdictos.systems.confidence.types import EvidencePackage


def build_evidence_package(
    finding: Finding,
    trace: Trace | None = None,
    source_ref: str | None = None,
) -> EvidencePackage:
    """
    Collect the package for a finding. Without a trace only the finding's
    own fields are available, so the package is necessarily incomplete.
    """
    network = lookup(trace.sensors, "network", {}) if trace is not None else {}
    ui_signals = lookup(trace.sensors, "uiSignals", {}) if trace is not None else {}

    package = EvidencePackage(
        trigger_source=source_ref or None,
        before_url=trace.before_url if trace is not None else finding.url,
        after_url=trace.after_url if trace is not None else "",
        before_screenshot=trace.before_screenshot if trace is not None else "",
        after_screenshot=trace.after_screenshot if trace is not None else "",
        interaction_type=finding.interaction.type,
        network=network if isinstance(network, dict) else {},
        ui_signals=ui_signals if isinstance(ui_signals, dict) else {},
    )
    return package.model_copy(update={"missing_evidence": missing_evidence(package)})


def missing_evidence(package: EvidencePackage) -> list[str]:
    missing: list[str] = []
    if not package.trigger_source:
        missing.append("trigger.source")
    if not package.before_screenshot:
        missing.append("before.screenshot")
    if not package.after_screenshot:
        missing.append("after.screenshot")
    if not package.before_url:
        missing.append("before.url")
    if not package.after_url:
        missing.append("after.url")
    if not package.interaction_type:
        missing.append("action.interaction")
    if not package.network:
        missing.append("signals.network")
    if not package.ui_signals:
        missing.append("signals.uiSignals")
    return missing
