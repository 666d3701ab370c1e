"""
Tests for Observed Expectation builders.

Covers:
  - Navigation from data-href / href / form action / navigation event
  - Rejection of external and templated targets
  - Network, validation and state builders
  - UNPROVEN when nothing concrete is present
"""

from __future__ import annotations

from typing import Any

from verdictos.primitives.common import ExpectationProof
from verdictos.primitives.trace import Trace
from verdictos.systems.expectations import (
    ExpectationType,
    derive_observed_expectation,
    has_template_token,
    resolve_target_path,
)

_STORES = ["redux", "zustand"]


def _make_trace(interaction: dict[str, Any] | None = None, **kwargs: Any) -> Trace:
    data: dict[str, Any] = {
        "interaction": interaction or {"type": "click", "selector": "#go"},
        "beforeUrl": "http://app.test/home",
        "afterUrl": "http://app.test/home",
    }
    data.update(kwargs)
    return Trace.model_validate(data)


class TestTemplates:
    def test_template_tokens(self):
        assert has_template_token("/users/{id}")
        assert has_template_token("/users/${id}")
        assert has_template_token("/users/:id")
        assert has_template_token("/files/*")
        assert not has_template_token("/users/42")
        assert not has_template_token("http://app.test:8080/users")

    def test_external_target_rejected(self):
        assert resolve_target_path("https://other.test/x", "http://app.test/home") is None

    def test_relative_target_resolved(self):
        assert resolve_target_path("about", "http://app.test/home/") == "/home/about"


class TestNavigationBuilder:
    def test_data_href_wins_over_href(self):
        trace = _make_trace({"type": "click", "selector": "#a", "href": "/b", "dataHref": "/a"})
        exp = derive_observed_expectation(trace, 0, _STORES)
        assert exp is not None
        assert exp.type == ExpectationType.NAVIGATION
        assert exp.proof == ExpectationProof.OBSERVED
        assert exp.target_path == "/a"
        assert exp.evidence["attribute_source"] == "data-href"

    def test_navigation_event_fallback(self):
        trace = _make_trace(
            sensors={"navigation": {"urlChanged": True, "afterUrl": "http://app.test/next"}},
        )
        exp = derive_observed_expectation(trace, 3, _STORES)
        assert exp is not None
        assert exp.target_path == "/next"
        assert exp.evidence["attribute_source"] == "navigation_event"
        assert exp.id.startswith("obs-nav-3-")

    def test_templated_href_falls_through(self):
        trace = _make_trace({"type": "click", "selector": "#u", "href": "/users/{id}"})
        assert derive_observed_expectation(trace, 0, _STORES) is None


class TestOtherBuilders:
    def test_network_action(self):
        trace = _make_trace(
            sensors={"network": {"totalRequests": 1, "firstRequestUrl": "http://app.test/api/save"}},
        )
        exp = derive_observed_expectation(trace, 0, _STORES)
        assert exp is not None
        assert exp.type == ExpectationType.NETWORK_ACTION
        assert exp.expected_request_url == "http://app.test/api/save"

    def test_network_with_query_is_not_concrete(self):
        trace = _make_trace(
            sensors={"network": {"totalRequests": 1, "firstRequestUrl": "/api/search?q=x"}},
        )
        assert derive_observed_expectation(trace, 0, _STORES) is None

    def test_validation_block(self):
        trace = _make_trace(sensors={"uiSignals": {"after": {"validationFeedbackDetected": True}}})
        exp = derive_observed_expectation(trace, 0, _STORES)
        assert exp is not None
        assert exp.type == ExpectationType.VALIDATION_BLOCK

    def test_state_action_supported_store(self):
        trace = _make_trace(
            sensors={"state": {"available": True, "storeType": "redux", "changed": ["cart", "user"]}},
        )
        exp = derive_observed_expectation(trace, 0, _STORES)
        assert exp is not None
        assert exp.expected_state_key == "cart"

    def test_state_action_unsupported_store(self):
        trace = _make_trace(
            sensors={"state": {"available": True, "storeType": "homebrew", "changed": ["cart"]}},
        )
        assert derive_observed_expectation(trace, 0, _STORES) is None

    def test_nothing_concrete_is_unproven(self):
        assert derive_observed_expectation(_make_trace(), 0, _STORES) is None
