"""
Tests for the Cause Derivation Engine.

Covers:
  - No evidence, no causes
  - Each catalog entry's evidence condition
  - Catalog ordering (C2, C3, C7) and LOW/MEDIUM-only confidence
  - attach_causes returns a copy
  - Batch helpers
"""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from verdictos.primitives.common import ConfidenceLevel
from verdictos.primitives.finding import Cause, Finding, FindingOutcome
from verdictos.primitives.trace import Trace
from verdictos.systems.causes import (
    CATALOG_ORDER,
    CAUSE_TEXT,
    CauseKind,
    attach_causes,
    derive_causes,
    derive_causes_for_findings,
    evaluate_cause,
    findings_with_causes,
)
from verdictos.systems.classifier import SilentFailureClassifier


def _make_finding(finding_id: str = "finding-0-x-1", **evidence: Any) -> Finding:
    return Finding(
        id=finding_id,
        type="network_silent_failure",
        outcome=FindingOutcome.SILENT_FAILURE,
        evidence=evidence,
    )


def _ids(finding: Finding) -> list[str]:
    return [c.id for c in derive_causes(finding)]


# ─── Evidence law ────────────────────────────────────────────────


class TestEvidenceLaw:
    def test_none_has_no_causes(self):
        assert derive_causes(None) == []

    def test_empty_evidence_has_no_causes(self):
        unchecked = Finding.model_construct(id="f", type="t", outcome=FindingOutcome.SILENT_FAILURE, evidence={})
        assert derive_causes(unchecked) == []

    def test_unrelated_evidence_has_no_causes(self):
        assert derive_causes(_make_finding(note="nothing here")) == []

    def test_high_cause_cannot_be_built(self):
        with pytest.raises(ValidationError):
            Cause(id="C9", title="t", statement="s", confidence=ConfidenceLevel.HIGH)


# ─── Catalog entries ─────────────────────────────────────────────


class TestCatalog:
    def test_ordering_state_dead_click_network(self):
        finding = _make_finding(
            state_mutation=True,
            dom_changed=False,
            navigation_occurred=False,
            ui_feedback=False,
            interaction_performed=True,
            network_activity=False,
            user_feedback=False,
            network_failure=True,
        )
        causes = derive_causes(finding)
        assert [c.id for c in causes] == ["C2_STATE_MUTATION_NO_UI", "C3_DEAD_CLICK", "C7_NETWORK_SILENT"]
        assert all(c.confidence in (ConfidenceLevel.LOW, ConfidenceLevel.MEDIUM) for c in causes)
        assert all(c.statement.startswith("Likely cause:") for c in causes)

    def test_selector_mismatch_confidence(self):
        single = derive_causes(_make_finding(stale_handle=True))[0]
        double = derive_causes(_make_finding(stale_handle=True, locator_resolution=0))[0]
        assert single.confidence == ConfidenceLevel.LOW
        assert double.confidence == ConfidenceLevel.MEDIUM
        assert double.evidence_refs == ["evidence.stale_handle=true", "evidence.locator_resolution=0"]

    def test_selector_mismatch_from_snapshot(self):
        assert _ids(_make_finding(dom_snapshot_missing=["class"])) == ["C1_SELECTOR_MISMATCH"]
        assert _ids(_make_finding(dom_snapshot_missing=["style"])) == []

    def test_navigation_no_render(self):
        finding = _make_finding(link_clicked=True, url_changed=False, main_content_changed=False)
        cause = derive_causes(finding)[0]
        assert cause.id == "C4_NAVIGATION_NO_RENDER"
        assert cause.evidence_refs == [
            "evidence.navigation_attempted|url_change_attempted|link_clicked=true",
            "evidence.url_changed=false",
            "evidence.main_content_changed=false",
        ]

    def test_navigation_landed_but_still_loading(self):
        finding = _make_finding(
            navigation_attempted=True, url_changed=True,
            content_still_loading=True, main_content_blank=True,
        )
        assert _ids(finding) == ["C4_NAVIGATION_NO_RENDER"]

    def test_form_no_feedback(self):
        finding = _make_finding(
            submit_interaction=True, network_request_occurred=True,
            success_feedback=False, error_feedback=False,
        )
        assert _ids(finding) == ["C5_FORM_NO_FEEDBACK"]

    def test_form_navigated_after_submit(self):
        finding = _make_finding(
            submit_interaction=True, network_request_occurred=True,
            success_feedback=False, error_feedback=False, navigation_after_submit=True,
        )
        assert _ids(finding) == []

    def test_validation_not_shown_is_low(self):
        finding = _make_finding(
            form_or_validation_promise=True, invalid_submit_attempted=True,
            inline_validation_feedback=False,
        )
        cause = derive_causes(finding)[0]
        assert cause.id == "C6_VALIDATION_NOT_SHOWN"
        assert cause.confidence == ConfidenceLevel.LOW

    def test_network_silent_refs(self):
        finding = _make_finding(http_error=True, ui_feedback=False, dom_changed=False)
        assert derive_causes(finding)[0].evidence_refs == [
            "evidence.http_error=true",
            "evidence.ui_feedback=false",
        ]

    def test_absent_is_not_false(self):
        # ui_feedback missing entirely: C7 must not fire
        assert _ids(_make_finding(network_failure=True, dom_changed=False)) == []

    def test_classifier_finding_gets_dead_click(self):
        trace = Trace.model_validate({"interaction": {"type": "keyboard"}, "beforeUrl": "/a", "afterUrl": "/a"})
        finding = SilentFailureClassifier().classify_trace(trace, 0)[0]
        assert "C3_DEAD_CLICK" in _ids(finding)


# ─── Helpers ─────────────────────────────────────────────────────


class TestHelpers:
    def test_attach_causes_does_not_mutate(self):
        finding = _make_finding(http_error=True, ui_feedback=False, dom_changed=False)
        enriched = attach_causes(finding)
        assert finding.causes == []
        assert [c.id for c in enriched.causes] == ["C7_NETWORK_SILENT"]

    def test_batch_helpers_skip_causeless(self):
        with_cause = _make_finding("a", http_error=True, ui_feedback=False, dom_changed=False)
        without = _make_finding("b", note="x")
        assert list(derive_causes_for_findings([with_cause, without])) == ["a"]
        assert [f.id for f in findings_with_causes([with_cause, without])] == ["a"]

    def test_derivation_is_deterministic(self):
        finding = _make_finding(state_mutation=True, dom_changed=False, ui_feedback=False)
        assert derive_causes(finding) == derive_causes(finding)


class TestDispatch:
    def test_every_kind_is_dispatched(self):
        # An evidence map that satisfies no entry still goes through every branch
        for kind in CauseKind:
            assert evaluate_cause(kind, {"note": "x"}) is None

    def test_catalog_order_follows_kinds(self):
        assert CATALOG_ORDER == tuple(CAUSE_TEXT)
        assert all(statement.startswith("Likely cause:") for _, statement in CAUSE_TEXT.values())

    def test_evaluate_single_kind(self):
        cause = evaluate_cause(CauseKind.NETWORK_SILENT, {"fetch_error": True, "ui_feedback": False, "dom_changed": False})
        assert cause is not None
        assert cause.id == "C7_NETWORK_SILENT"
        assert cause.evidence_refs == ["evidence.fetch_error=true", "evidence.ui_feedback=false"]
