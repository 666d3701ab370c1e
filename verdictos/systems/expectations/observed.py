"""
VerdictOS -- Observed Expectations

Derives expectations from runtime evidence when, and only when, that
evidence is concrete: a real href, a real request URL, explicit validation
feedback, a supported store reporting a changed key. Anything weaker
yields no expectation at all (UNPROVEN_RESULT), which is not a failure.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Any
from urllib.parse import urljoin, urlsplit

from verdictos.primitives.common import ExpectationProof
from verdictos.primitives.trace import Trace, is_true, lookup, sequence
from verdictos.systems.expectations.types import Expectation, ExpectationType

_TEMPLATE_CHARS = re.compile(r"[{}`*]")
_TEMPLATE_PARAM = re.compile(r":\w+")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def has_template_token(target: str) -> bool:
    """`{id}`, `${id}`, `:id`, `*` and backtick templates in the path."""
    if not target:
        return False
    parts = urlsplit(target)
    path = parts.path if (parts.scheme or parts.netloc) else target
    return bool(_TEMPLATE_CHARS.search(path) or "${" in path or _TEMPLATE_PARAM.search(path))


def _origin(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}".lower()


def resolve_target_path(target: str | None, base_url: str, base_origin: str = "") -> str | None:
    """
    Resolve an href-like target against the page it was found on.

    Returns None for empty, templated or external targets.
    """
    if not target or not isinstance(target, str) or has_template_token(target):
        return None
    resolved = urljoin(base_url, target) if base_url else target
    origin = base_origin or _origin(base_url)
    resolved_origin = _origin(resolved)
    if origin and resolved_origin and resolved_origin != origin.lower():
        return None
    path = urlsplit(resolved).path
    if not path:
        return "/" if resolved_origin else None
    return path


def _observed_id(kind: str, trace_index: int, selector: str, fallback: str) -> str:
    tail = _NON_ALNUM.sub("", selector or fallback)[-8:] or fallback
    return f"obs-{kind}-{trace_index}-{tail}"


# ─── Builders ─────────────────────────────────────────────────────


def build_navigation(trace: Trace, trace_index: int, base_origin: str = "") -> Expectation | None:
    interaction = trace.interaction
    if interaction.data_href:
        source, raw = "data-href", interaction.data_href
    elif interaction.href:
        source, raw = "href", interaction.href
    elif interaction.form_action:
        source, raw = "action", interaction.form_action
    else:
        source, raw = "", None

    target = resolve_target_path(raw, trace.before_url, base_origin)

    if target is None and is_true(trace.sensors, "navigation.urlChanged"):
        after = lookup(trace.sensors, "navigation.afterUrl")
        if isinstance(after, str) and after:
            target = resolve_target_path(after, trace.before_url, base_origin)
            source = "navigation_event"

    if target is None:
        return None

    return Expectation(
        id=_observed_id("nav", trace_index, interaction.selector, "nav"),
        type=ExpectationType.NAVIGATION,
        proof=ExpectationProof.OBSERVED,
        target_path=target,
        evidence={
            "selector": interaction.selector,
            "attribute_source": source,
            "observed_url": target,
            "source_page": trace.before_url,
        },
    )


def build_network_action(trace: Trace, trace_index: int, base_origin: str = "") -> Expectation | None:
    if trace.network_total <= 0:
        return None
    first = lookup(trace.sensors, "network.firstRequestUrl")
    urls = sequence(trace.sensors, "network.observedRequestUrls")
    observed = first if isinstance(first, str) and first else (urls[0] if urls else None)
    if not isinstance(observed, str) or not observed:
        return None
    if has_template_token(observed) or urlsplit(observed).query:
        return None

    return Expectation(
        id=_observed_id("net", trace_index, trace.interaction.selector, "net"),
        type=ExpectationType.NETWORK_ACTION,
        proof=ExpectationProof.OBSERVED,
        expected_request_url=observed,
        evidence={
            "selector": trace.interaction.selector,
            "attribute_source": "network_request",
            "observed_request_url": observed,
            "source_page": trace.before_url,
        },
    )


def build_validation_block(trace: Trace, trace_index: int, base_origin: str = "") -> Expectation | None:
    if not is_true(trace.sensors, "uiSignals.after.validationFeedbackDetected"):
        return None
    return Expectation(
        id=_observed_id("val", trace_index, trace.interaction.selector, "val"),
        type=ExpectationType.VALIDATION_BLOCK,
        proof=ExpectationProof.OBSERVED,
        evidence={
            "selector": trace.interaction.selector,
            "attribute_source": "validation_feedback",
            "validation_detected": True,
            "source_page": trace.before_url,
        },
    )


def make_state_builder(supported_stores: Sequence[str]) -> Callable[[Trace, int, str], Expectation | None]:
    """State expectations only count for stores the provider can actually read."""
    supported = {s.lower() for s in supported_stores}

    def build_state_action(trace: Trace, trace_index: int, base_origin: str = "") -> Expectation | None:
        if not is_true(trace.sensors, "state.available"):
            return None
        store = lookup(trace.sensors, "state.storeType")
        if isinstance(store, str) and store and store.lower() not in supported:
            return None
        changed = [k for k in sequence(trace.sensors, "state.changed") if isinstance(k, str) and k]
        if not changed:
            return None
        return Expectation(
            id=_observed_id("state", trace_index, trace.interaction.selector, "state"),
            type=ExpectationType.STATE_ACTION,
            proof=ExpectationProof.OBSERVED,
            expected_state_key=changed[0],
            evidence={
                "selector": trace.interaction.selector,
                "attribute_source": "state_change",
                "state_keys_changed": changed,
                "source_page": trace.before_url,
                "store_type": store if isinstance(store, str) else None,
            },
        )

    return build_state_action


def derive_observed_expectation(
    trace: Trace,
    trace_index: int,
    supported_stores: Sequence[str],
    base_origin: str = "",
) -> Expectation | None:
    """First builder to match wins. None means UNPROVEN_RESULT."""
    builders: list[Callable[[Trace, int, str], Any]] = [
        build_navigation,
        build_network_action,
        build_validation_block,
        make_state_builder(supported_stores),
    ]
    for build in builders:
        expectation = build(trace, trace_index, base_origin)
        if expectation is not None:
            return expectation
    return None
