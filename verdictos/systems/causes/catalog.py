"""
VerdictOS -- Cause Derivation Engine

Derives likely causes for a finding from its evidence map alone. Each
catalog entry is an explicit evidence condition; nothing is guessed.

  - no evidence, no cause
  - every statement is phrased "Likely cause: ..."
  - confidence is LOW or MEDIUM, never HIGH
  - same finding, same causes, same order, same wording

Entries are variants of `CauseKind` evaluated through one exhaustive
dispatch, the same shape as the classifier's rule catalog.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from typing import Any

from verdictos.primitives.common import ConfidenceLevel
from verdictos.primitives.finding import Cause, Finding

Evidence = Mapping[str, Any]


class CauseKind(enum.StrEnum):
    """Catalog entries in catalog order. Derived causes keep this order."""

    SELECTOR_MISMATCH = "C1_SELECTOR_MISMATCH"
    STATE_MUTATION_NO_UI = "C2_STATE_MUTATION_NO_UI"
    DEAD_CLICK = "C3_DEAD_CLICK"
    NAVIGATION_NO_RENDER = "C4_NAVIGATION_NO_RENDER"
    FORM_NO_FEEDBACK = "C5_FORM_NO_FEEDBACK"
    VALIDATION_NOT_SHOWN = "C6_VALIDATION_NOT_SHOWN"
    NETWORK_SILENT = "C7_NETWORK_SILENT"


# kind → (title, statement)
CAUSE_TEXT: dict[CauseKind, tuple[str, str]] = {
    CauseKind.SELECTOR_MISMATCH: (
        "Element not found or selector mismatch",
        "Likely cause: The UI element being interacted with could not be found "
        "or was stale at interaction time.",
    ),
    CauseKind.STATE_MUTATION_NO_UI: (
        "State changed but UI did not update",
        "Likely cause: Application state changed internally, but the UI did not "
        "re-render or reflect the change.",
    ),
    CauseKind.DEAD_CLICK: (
        "Interaction ran but produced no observable outcome",
        "Likely cause: The interaction ran but had no handler or the handler did "
        "nothing (dead/no-op click).",
    ),
    CauseKind.NAVIGATION_NO_RENDER: (
        "Navigation attempted but content did not load",
        "Likely cause: Navigation was triggered but the target route either did "
        "not change or did not render visible content.",
    ),
    CauseKind.FORM_NO_FEEDBACK: (
        "Form submitted but no success or error message shown",
        "Likely cause: Form submission was sent to the server, but the UI did not "
        "show a success or error message.",
    ),
    CauseKind.VALIDATION_NOT_SHOWN: (
        "Validation expected but feedback not displayed",
        "Likely cause: Form field validation was expected to show inline feedback, "
        "but no error message appeared.",
    ),
    CauseKind.NETWORK_SILENT: (
        "Network request failed silently without user feedback",
        "Likely cause: A network request failed (4xx/5xx or connection error), but "
        "the UI showed no error message.",
    ),
}

CATALOG_ORDER: tuple[str, ...] = tuple(str(kind) for kind in CauseKind)


def _is(ev: Evidence, key: str, value: Any) -> bool:
    return key in ev and ev[key] is value


def _cause(kind: CauseKind, refs: list[str], confidence: ConfidenceLevel) -> Cause:
    title, statement = CAUSE_TEXT[kind]
    return Cause(id=str(kind), title=title, statement=statement, evidence_refs=refs, confidence=confidence)


# ─── C1: Selector mismatch ───────────────────────────────────────


def _snapshot_missing_selector(ev: Evidence) -> bool:
    missing = ev.get("dom_snapshot_missing")
    if not isinstance(missing, (str, list, tuple)):
        return False
    return any(part in missing for part in ("id", "class", "text"))


def _locator_unresolved(ev: Evidence) -> bool:
    value = ev.get("locator_resolution")
    return isinstance(value, int) and not isinstance(value, bool) and value == 0


def _selector_mismatch(ev: Evidence) -> Cause | None:
    if not (
        _is(ev, "target_element_missing", True)
        or _is(ev, "stale_handle", True)
        or (_is(ev, "click_attempted", True) and _is(ev, "target_element", False))
        or _locator_unresolved(ev)
        or _snapshot_missing_selector(ev)
    ):
        return None

    refs: list[str] = []
    if _is(ev, "target_element_missing", True):
        refs.append("evidence.target_element_missing=true")
    if _is(ev, "stale_handle", True):
        refs.append("evidence.stale_handle=true")
    if _locator_unresolved(ev):
        refs.append("evidence.locator_resolution=0")
    if ev.get("dom_snapshot_missing"):
        refs.append("evidence.dom_snapshot_missing")

    signals = sum(
        [_is(ev, "target_element_missing", True), _is(ev, "stale_handle", True), _locator_unresolved(ev)]
    )
    level = ConfidenceLevel.MEDIUM if signals >= 2 else ConfidenceLevel.LOW
    return _cause(CauseKind.SELECTOR_MISMATCH, refs, level)


# ─── C2..C7 ──────────────────────────────────────────────────────


def _state_mutation_no_ui(ev: Evidence) -> Cause | None:
    if not (
        _is(ev, "state_mutation", True)
        and _is(ev, "dom_changed", False)
        and not _is(ev, "navigation_occurred", True)
        and _is(ev, "ui_feedback", False)
    ):
        return None
    return _cause(
        CauseKind.STATE_MUTATION_NO_UI,
        ["evidence.state_mutation=true", "evidence.dom_changed=false", "evidence.ui_feedback=false"],
        ConfidenceLevel.MEDIUM,
    )


def _dead_click(ev: Evidence) -> Cause | None:
    if not (
        _is(ev, "interaction_performed", True)
        and _is(ev, "network_activity", False)
        and not _is(ev, "navigation_occurred", True)
        and _is(ev, "dom_changed", False)
        and _is(ev, "user_feedback", False)
    ):
        return None
    return _cause(
        CauseKind.DEAD_CLICK,
        [
            "evidence.interaction_performed=true",
            "evidence.network_activity=false",
            "evidence.dom_changed=false",
            "evidence.user_feedback=false",
        ],
        ConfidenceLevel.MEDIUM,
    )


def _navigation_no_render(ev: Evidence) -> Cause | None:
    attempted = (
        _is(ev, "navigation_attempted", True)
        or _is(ev, "url_change_attempted", True)
        or _is(ev, "link_clicked", True)
    )
    not_landed = _is(ev, "url_changed", False) or (
        _is(ev, "url_changed", True) and _is(ev, "content_still_loading", True)
    )
    not_rendered = _is(ev, "main_content_changed", False) or _is(ev, "main_content_blank", True)
    if not (attempted and not_landed and not_rendered):
        return None

    refs = ["evidence.navigation_attempted|url_change_attempted|link_clicked=true"]
    if _is(ev, "url_changed", False):
        refs.append("evidence.url_changed=false")
    if _is(ev, "main_content_changed", False):
        refs.append("evidence.main_content_changed=false")
    return _cause(CauseKind.NAVIGATION_NO_RENDER, refs, ConfidenceLevel.MEDIUM)


def _form_no_feedback(ev: Evidence) -> Cause | None:
    if not (
        _is(ev, "submit_interaction", True)
        and (_is(ev, "network_request_occurred", True) or _is(ev, "submit_event_detected", True))
        and _is(ev, "success_feedback", False)
        and _is(ev, "error_feedback", False)
        and not _is(ev, "navigation_after_submit", True)
    ):
        return None
    return _cause(
        CauseKind.FORM_NO_FEEDBACK,
        ["evidence.submit_interaction=true", "evidence.success_feedback=false", "evidence.error_feedback=false"],
        ConfidenceLevel.MEDIUM,
    )


def _validation_not_shown(ev: Evidence) -> Cause | None:
    if not (
        _is(ev, "form_or_validation_promise", True)
        and _is(ev, "invalid_submit_attempted", True)
        and _is(ev, "inline_validation_feedback", False)
    ):
        return None
    return _cause(
        CauseKind.VALIDATION_NOT_SHOWN,
        [
            "evidence.form_or_validation_promise=true",
            "evidence.invalid_submit_attempted=true",
            "evidence.inline_validation_feedback=false",
        ],
        ConfidenceLevel.LOW,
    )


def _network_silent(ev: Evidence) -> Cause | None:
    failed = [key for key in ("network_failure", "http_error", "fetch_error") if _is(ev, key, True)]
    if not failed or not _is(ev, "ui_feedback", False) or not _is(ev, "dom_changed", False):
        return None
    refs = [f"evidence.{key}=true" for key in failed]
    refs.append("evidence.ui_feedback=false")
    return _cause(CauseKind.NETWORK_SILENT, refs, ConfidenceLevel.MEDIUM)


# ─── Dispatch ────────────────────────────────────────────────────


def evaluate_cause(kind: CauseKind, ev: Evidence) -> Cause | None:
    """Evaluate one catalog entry against an evidence map."""
    match kind:
        case CauseKind.SELECTOR_MISMATCH:
            return _selector_mismatch(ev)
        case CauseKind.STATE_MUTATION_NO_UI:
            return _state_mutation_no_ui(ev)
        case CauseKind.DEAD_CLICK:
            return _dead_click(ev)
        case CauseKind.NAVIGATION_NO_RENDER:
            return _navigation_no_render(ev)
        case CauseKind.FORM_NO_FEEDBACK:
            return _form_no_feedback(ev)
        case CauseKind.VALIDATION_NOT_SHOWN:
            return _validation_not_shown(ev)
        case CauseKind.NETWORK_SILENT:
            return _network_silent(ev)
    raise ValueError(f"Unhandled cause: {kind}")


# ─── Derivation ──────────────────────────────────────────────────


def derive_causes(finding: Finding | None) -> list[Cause]:
    """Causes whose evidence condition holds, in catalog order then id."""
    if finding is None or not finding.evidence:
        return []
    causes = [
        cause
        for kind in CauseKind
        if (cause := evaluate_cause(kind, finding.evidence)) is not None
    ]
    return sorted(causes, key=lambda c: (CATALOG_ORDER.index(c.id), c.id))


def derive_causes_for_findings(findings: Sequence[Finding]) -> dict[str, list[Cause]]:
    """finding id → causes, for findings with at least one cause."""
    result: dict[str, list[Cause]] = {}
    for finding in findings:
        causes = derive_causes(finding)
        if causes:
            result[finding.id] = causes
    return result


def attach_causes(finding: Finding) -> Finding:
    """Return a copy of the finding with its causes. The input is untouched."""
    return finding.model_copy(update={"causes": derive_causes(finding)})


def findings_with_causes(findings: Sequence[Finding]) -> list[Finding]:
    return [f for f in findings if derive_causes(f)]
