"""
VerdictOS -- Silent-Failure Rule Catalog

Each rule is an explicit conjunction: concrete evidence that something was
attempted AND concrete evidence that the expected effect is absent. A rule
never fires merely because every signal is missing.

Rules are variants of `Rule` evaluated through one exhaustive dispatch, so
adding a variant without a predicate is a visible gap rather than a
silently skipped closure.
"""

from __future__ import annotations

from typing import Any

from verdictos.config import ClassifierConfig
from verdictos.primitives.trace import Trace, is_false, is_true, lookup, number, sequence
from verdictos.systems.classifier.types import Rule, RuleHit

# Rules that only apply to one interaction type
TYPE_RULES: dict[str, Rule] = {
    "keyboard": Rule.KEYBOARD,
    "hover": Rule.HOVER,
    "file_upload": Rule.FILE_UPLOAD,
    "login": Rule.LOGIN,
    "logout": Rule.LOGOUT,
    "auth_guard": Rule.AUTH_GUARD,
}

# Rules evaluated for every in-scope trace, in emission order
GENERAL_RULES: tuple[Rule, ...] = (
    Rule.NAVIGATION,
    Rule.NETWORK,
    Rule.PARTIAL_SUCCESS,
    Rule.LOADING_STUCK,
    Rule.ASYNC_STATE,
    Rule.FOCUS,
    Rule.ARIA_ANNOUNCE,
    Rule.KEYBOARD_TRAP,
    Rule.FEEDBACK_GAP,
    Rule.FREEZE_LIKE,
)

_BODY_LIKE = ("body", "null")


def _hit(rule: Rule, reason: str, **evidence: Any) -> list[RuleHit]:
    return [RuleHit(rule=rule, reason=reason, evidence=evidence)]


# ─── Interaction-type rules ──────────────────────────────────────


def _keyboard(trace: Trace) -> list[RuleHit]:
    if trace.url_changed or trace.dom_changed or trace.ui_changed or trace.has_network:
        return []
    return _hit(
        Rule.KEYBOARD,
        "Keyboard navigation produced no visible, DOM, or network effect",
        focus_order=sequence(trace.keyboard, "focusOrder"),
        actions=sequence(trace.keyboard, "actions"),
    )


def _hover(trace: Trace) -> list[RuleHit]:
    if trace.dom_changed or trace.ui_changed or trace.url_changed:
        return []
    return _hit(
        Rule.HOVER,
        "Hover interaction did not reveal any observable change",
        hovered_selector=lookup(trace.hover, "selector") or trace.interaction.selector,
    )


def _file_upload(trace: Trace) -> list[RuleHit]:
    not_attached = is_false(trace.file_upload, "attached")
    no_effect = not trace.dom_changed and not trace.ui_changed and not trace.has_network
    if not (not_attached or no_effect):
        return []
    return _hit(
        Rule.FILE_UPLOAD,
        "File was not attached" if not_attached else "Upload produced no network, DOM, or UI change",
        file_attached=not not_attached,
        file_path=lookup(trace.file_upload, "filePath"),
        submitted=is_true(trace.file_upload, "submitted"),
    )


def _session_evidence(meta: dict[str, Any]) -> dict[str, Any]:
    return {
        "redirected": is_true(meta, "redirected"),
        "storage_changed": is_true(meta, "storageChanged"),
        "cookies_changed": is_true(meta, "cookiesChanged"),
        "found": lookup(meta, "found") is not False,
    }


def _login(trace: Trace) -> list[RuleHit]:
    session = _session_evidence(trace.login)
    if not is_true(trace.login, "submitted"):
        return []
    if session["redirected"] or session["storage_changed"] or session["cookies_changed"] or trace.has_network:
        return []
    return _hit(
        Rule.LOGIN,
        "Login submitted but produced no redirect, session storage change, cookies change, or network activity",
        submitted=True,
        submit_interaction=True,
        **session,
    )


def _logout(trace: Trace) -> list[RuleHit]:
    session = _session_evidence(trace.logout)
    if not is_true(trace.logout, "clicked"):
        return []
    if session["redirected"] or session["storage_changed"] or session["cookies_changed"]:
        return []
    return _hit(
        Rule.LOGOUT,
        "Logout clicked but produced no redirect or session state change (storage/cookies unchanged)",
        clicked=True,
        **session,
    )


def _auth_guard(trace: Trace) -> list[RuleHit]:
    url = lookup(trace.auth_guard, "url")
    status = lookup(trace.auth_guard, "httpStatus")
    if not url or is_true(trace.auth_guard, "isProtected") or status in (401, 403):
        return []
    return _hit(
        Rule.AUTH_GUARD,
        "Route expected to be protected was accessible without authentication",
        guard_url=url,
        is_protected=False,
        redirected_to_login=is_true(trace.auth_guard, "redirectedToLogin"),
        has_access_denied=is_true(trace.auth_guard, "hasAccessDenied"),
        http_status=status if isinstance(status, int) and not isinstance(status, bool) else None,
    )


# ─── General rules ───────────────────────────────────────────────


def _navigation(trace: Trace) -> list[RuleHit]:
    # Navigation linked to a PROVEN expectation is judged by the resolver
    target = trace.interaction.data_href or trace.interaction.href
    if not target or trace.expectation_id:
        return []
    if trace.url_changed or is_true(trace.sensors, "navigation.urlChanged"):
        return []
    if trace.dom_changed or trace.ui_changed:
        return []
    return _hit(
        Rule.NAVIGATION,
        "Link with a concrete target was activated but no navigation or render occurred",
        navigation_attempted=True,
        link_clicked=True,
        target_href=target,
        main_content_changed=False,
    )


def _network(trace: Trace) -> list[RuleHit]:
    if not trace.network_failed or trace.ui_feedback_detected or trace.dom_changed:
        return []
    return _hit(
        Rule.NETWORK,
        "Network request failed but the UI showed no error feedback",
        failed_requests=int(number(trace.sensors, "network.failedRequests")),
        top_failed_urls=sequence(trace.sensors, "network.topFailedUrls"),
        http_error=True,
    )


def _partial_success(trace: Trace) -> list[RuleHit]:
    if not trace.network_succeeded or trace.dom_changed or trace.ui_changed or trace.url_changed:
        return []
    return _hit(
        Rule.PARTIAL_SUCCESS,
        "Network request succeeded (2xx) but produced no DOM, UI, or URL change",
        network_successful=True,
        network_requests=trace.network_total,
    )


def _loading_stuck(trace: Trace) -> list[RuleHit]:
    if not is_true(trace.sensors, "loading.unresolved"):
        return []
    if not (is_true(trace.sensors, "loading.isLoading") or is_true(trace.sensors, "loading.timeout")):
        return []
    return _hit(
        Rule.LOADING_STUCK,
        "Loading indicator detected but did not resolve within deterministic timeout",
        loading_indicators=sequence(trace.sensors, "loading.loadingIndicators"),
        loading_duration_ms=number(trace.sensors, "loading.duration"),
        content_still_loading=True,
    )


def _async_state(trace: Trace) -> list[RuleHit]:
    changed = sequence(trace.sensors, "state.changed")
    if not changed or trace.ui_changed or trace.dom_changed:
        return []
    store = lookup(trace.sensors, "state.storeType")
    return _hit(
        Rule.ASYNC_STATE,
        "Application state changed but no DOM or UI change was observed",
        changed_properties=changed,
        store_type=store if isinstance(store, str) else "unknown",
    )


def _focus(trace: Trace) -> list[RuleHit]:
    hits: list[RuleHit] = []
    before = lookup(trace.sensors, "focus.before", {})
    after = lookup(trace.sensors, "focus.after", {})
    before_selector = lookup(before, "selector")
    after_selector = lookup(after, "selector")

    if after_selector in _BODY_LIKE and before_selector not in _BODY_LIKE:
        hits += _hit(
            Rule.FOCUS,
            "Focus was lost after interaction (moved to body or null)",
            focus_before=before_selector or "unknown",
            focus_after=after_selector,
            focus_lost=True,
        )

    if is_true(after, "hasModal") and is_false(after, "focusInModal"):
        if before_selector != after_selector or not is_true(before, "hasModal"):
            hits += _hit(
                Rule.FOCUS,
                "Modal/dialog opened but focus did not move into it",
                focus_before=before_selector or "unknown",
                focus_after=after_selector or "unknown",
                modal_opened=True,
                focus_in_modal=False,
            )
    return hits


def _aria_announce(trace: Trace) -> list[RuleHit]:
    is_form = trace.interaction.type == "form"
    if not (is_form or trace.has_network) or is_true(trace.sensors, "aria.changed"):
        return []
    return _hit(
        Rule.ARIA_ANNOUNCE,
        "Meaningful event occurred but no ARIA announcement was detected",
        event_type="form_submission" if is_form else "network_activity",
        live_regions_before=len(sequence(trace.sensors, "aria.before.liveRegions")),
        live_regions_after=len(sequence(trace.sensors, "aria.after.liveRegions")),
        aria_changed=False,
    )


def _keyboard_trap(trace: Trace, config: ClassifierConfig) -> list[RuleHit]:
    if trace.interaction.type != "keyboard" or not trace.keyboard:
        return []
    order = [str(step) for step in sequence(trace.keyboard, "focusOrder")]
    hits: list[RuleHit] = []

    unique = list(dict.fromkeys(order))
    if len(order) >= config.keyboard_trap_min_steps and len(unique) <= config.keyboard_trap_max_unique:
        hits += _hit(
            Rule.KEYBOARD_TRAP,
            "Keyboard navigation trapped focus within small set of elements",
            focus_sequence=order,
            unique_elements=unique,
            sequence_length=len(order),
            unique_count=len(unique),
        )

    repeats = sum(1 for prev, cur in zip(order, order[1:]) if prev == cur)
    if len(order) >= 3 and repeats >= config.keyboard_trap_min_repeats:
        hits += _hit(
            Rule.KEYBOARD_TRAP,
            "Keyboard navigation stuck on same element repeatedly",
            focus_sequence=order,
            consecutive_repeats=repeats,
        )
    return hits


def _feedback_gap(trace: Trace, config: ClassifierConfig) -> list[RuleHit]:
    timing = lookup(trace.sensors, "timing", {})
    work_started = is_true(timing, "networkActivityDetected") or is_true(
        trace.sensors, "loading.hasLoadingIndicators"
    )
    delay = lookup(timing, "feedbackDelayMs")
    if not work_started or isinstance(delay, bool) or not isinstance(delay, (int, float)):
        return []
    threshold = number(timing, "feedbackGapThreshold") or config.feedback_gap_threshold_ms
    detected = is_true(timing, "feedbackDetected")
    if detected and delay <= threshold:
        return []
    return _hit(
        Rule.FEEDBACK_GAP,
        f"Interaction started work but no user feedback appeared within {threshold:g}ms",
        feedback_detected=detected,
        feedback_delay_ms=delay,
        feedback_gap_threshold_ms=threshold,
        work_start_ms=number(timing, "workStartMs"),
    )


def _freeze_like(trace: Trace) -> list[RuleHit]:
    timing = lookup(trace.sensors, "timing", {})
    if not (
        is_true(timing, "networkActivityDetected")
        and is_true(timing, "isFreezeLike")
        and is_true(timing, "feedbackDetected")
    ):
        return []
    delay = number(timing, "feedbackDelayMs")
    return _hit(
        Rule.FREEZE_LIKE,
        f"Interaction caused UI freeze-like behavior: {delay:g}ms delay before feedback",
        feedback_delay_ms=delay,
        freeze_like_threshold_ms=number(timing, "freezeLikeThreshold"),
        work_start_ms=number(timing, "workStartMs"),
    )


# ─── Dispatch ────────────────────────────────────────────────────


def evaluate_rule(rule: Rule, trace: Trace, config: ClassifierConfig) -> list[RuleHit]:
    """Evaluate one rule against one trace. Zero, one or (focus, trap) two hits."""
    match rule:
        case Rule.KEYBOARD:
            return _keyboard(trace)
        case Rule.HOVER:
            return _hover(trace)
        case Rule.FILE_UPLOAD:
            return _file_upload(trace)
        case Rule.LOGIN:
            return _login(trace)
        case Rule.LOGOUT:
            return _logout(trace)
        case Rule.AUTH_GUARD:
            return _auth_guard(trace)
        case Rule.NAVIGATION:
            return _navigation(trace)
        case Rule.NETWORK:
            return _network(trace)
        case Rule.PARTIAL_SUCCESS:
            return _partial_success(trace)
        case Rule.LOADING_STUCK:
            return _loading_stuck(trace)
        case Rule.ASYNC_STATE:
            return _async_state(trace)
        case Rule.FOCUS:
            return _focus(trace)
        case Rule.ARIA_ANNOUNCE:
            return _aria_announce(trace)
        case Rule.KEYBOARD_TRAP:
            return _keyboard_trap(trace, config)
        case Rule.FEEDBACK_GAP:
            return _feedback_gap(trace, config)
        case Rule.FREEZE_LIKE:
            return _freeze_like(trace)
    raise ValueError(f"Unhandled rule: {rule}")


def rules_for(interaction_type: str) -> list[Rule]:
    """Applicable rules for an interaction type, in emission order."""
    specific = TYPE_RULES.get(interaction_type)
    return ([specific] if specific else []) + list(GENERAL_RULES)
