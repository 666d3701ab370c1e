"""
VerdictOS -- Trace Primitives

A Trace is one interaction attempt as reported by the observation provider.
The core never senses anything itself: it evaluates predicates over the
sensor summaries carried here.

Sensor summaries are opaque nested mappings. A missing, null or wrongly
typed field is read as evidentiary absence (False / 0 / empty), never as an
error, so malformed input degrades findings rather than crashing a run.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from pydantic import Field, field_validator

from verdictos.primitives.common import FrozenModel, normalize_path

# ─── Safe lookups ─────────────────────────────────────────────────


def lookup(source: Any, path: str, default: Any = None) -> Any:
    """Walk a dotted path through nested mappings. Absent → default."""
    current = source
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def is_true(source: Any, path: str) -> bool:
    """Strict truth: only a literal True counts."""
    return lookup(source, path) is True


def is_false(source: Any, path: str) -> bool:
    """Strict falsity: only a literal False counts. Absent is not False."""
    return lookup(source, path) is False


def number(source: Any, path: str) -> float:
    """Numeric field or 0. Booleans are not numbers here."""
    value = lookup(source, path)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def sequence(source: Any, path: str) -> list[Any]:
    """List field or []."""
    value = lookup(source, path)
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _coerce_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {}


# ─── Models ───────────────────────────────────────────────────────


class Interaction(FrozenModel):
    """What was interacted with."""

    type: str = ""
    selector: str = ""
    label: str = ""
    href: str | None = None
    data_href: str | None = Field(default=None, alias="dataHref")
    form_action: str | None = Field(default=None, alias="formAction")

    @field_validator("type", "selector", "label", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class TracePolicy(FrozenModel):
    """Interruption flags raised by the observation provider."""

    timeout: bool = False
    external_navigation_blocked: bool = Field(default=False, alias="externalNavigationBlocked")
    execution_error: bool = Field(default=False, alias="executionError")


class Trace(FrozenModel):
    """One interaction attempt. Read-only once produced."""

    interaction: Interaction = Field(default_factory=Interaction)
    before_url: str = Field(default="", alias="beforeUrl")
    after_url: str = Field(default="", alias="afterUrl")
    before_screenshot: str = Field(default="", alias="beforeScreenshot")
    after_screenshot: str = Field(default="", alias="afterScreenshot")
    sensors: dict[str, Any] = Field(default_factory=dict)
    dom: dict[str, Any] = Field(default_factory=dict)

    # Per-interaction-type metadata captured by the provider
    keyboard: dict[str, Any] = Field(default_factory=dict)
    hover: dict[str, Any] = Field(default_factory=dict)
    file_upload: dict[str, Any] = Field(default_factory=dict, alias="fileUpload")
    login: dict[str, Any] = Field(default_factory=dict)
    logout: dict[str, Any] = Field(default_factory=dict)
    auth_guard: dict[str, Any] = Field(default_factory=dict, alias="authGuard")
    session_context: dict[str, Any] = Field(default_factory=dict, alias="sessionContext")

    http_status: int | None = Field(default=None, alias="httpStatus")
    policy: TracePolicy = Field(default_factory=TracePolicy)
    expectation_id: str | None = Field(default=None, alias="expectationId")
    trace_id: str | None = Field(default=None, alias="traceId")

    @field_validator(
        "sensors", "dom", "keyboard", "hover", "file_upload",
        "login", "logout", "auth_guard", "session_context",
        mode="before",
    )
    @classmethod
    def _mapping_or_empty(cls, v: Any) -> dict[str, Any]:
        return _coerce_mapping(v)

    @field_validator("interaction", "policy", mode="before")
    @classmethod
    def _model_or_default(cls, v: Any) -> Any:
        return v if isinstance(v, (Mapping, FrozenModel)) else {}

    @field_validator("before_url", "after_url", "before_screenshot", "after_screenshot", mode="before")
    @classmethod
    def _str_or_empty(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("http_status", mode="before")
    @classmethod
    def _status_or_none(cls, v: Any) -> int | None:
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v

    # ─── Derived observations ────────────────────────────────────

    @property
    def effective_http_status(self) -> int | None:
        """Top-level status, falling back to the auth-guard probe."""
        if self.http_status is not None:
            return self.http_status
        status = lookup(self.auth_guard, "httpStatus")
        if isinstance(status, bool) or not isinstance(status, int):
            return None
        return status

    @property
    def url_changed(self) -> bool:
        """Path or query changed. Fragment-only changes do not count."""
        if not self.before_url or not self.after_url:
            return False
        before = urlsplit(self.before_url)
        after = urlsplit(self.after_url)
        return (
            normalize_path(before.path) != normalize_path(after.path)
            or before.query != after.query
            or (bool(before.netloc) and bool(after.netloc) and before.netloc != after.netloc)
        )

    @property
    def dom_changed(self) -> bool:
        before_hash = self.dom.get("beforeHash")
        after_hash = self.dom.get("afterHash")
        if before_hash and after_hash and before_hash != after_hash:
            return True
        return is_true(self.sensors, "dom.changed")

    @property
    def ui_changed(self) -> bool:
        return is_true(self.sensors, "uiSignals.diff.changed") or is_true(
            self.sensors, "uiSignals.changes.changed"
        )

    @property
    def network_total(self) -> int:
        return int(number(self.sensors, "network.totalRequests"))

    @property
    def has_network(self) -> bool:
        return self.network_total > 0

    @property
    def network_failed(self) -> bool:
        return number(self.sensors, "network.failedRequests") > 0 or bool(
            sequence(self.sensors, "network.topFailedUrls")
        )

    @property
    def network_succeeded(self) -> bool:
        """2xx traffic observed, or traffic with no failed URLs."""
        if number(self.sensors, "network.successfulRequests") > 0:
            return True
        failed_urls = lookup(self.sensors, "network.topFailedUrls")
        return isinstance(failed_urls, list) and not failed_urls and self.has_network

    @property
    def ui_feedback_score(self) -> float:
        return float(number(self.sensors, "uiFeedback.overallUiFeedbackScore"))

    @property
    def console_errors(self) -> int:
        errors = lookup(self.sensors, "console.errors")
        if isinstance(errors, list):
            return len(errors)
        return int(max(number(self.sensors, "console.errors"), number(self.sensors, "console.errorCount")))

    @property
    def navigation_occurred(self) -> bool:
        return self.url_changed or is_true(self.sensors, "navigation.urlChanged")

    @property
    def request_urls(self) -> list[str]:
        urls = [u for u in sequence(self.sensors, "network.observedRequestUrls") if isinstance(u, str)]
        first = lookup(self.sensors, "network.firstRequestUrl")
        if isinstance(first, str) and first and first not in urls:
            urls.insert(0, first)
        return urls

    @property
    def ui_feedback_detected(self) -> bool:
        """Any explicit feedback shown to the user: score, toast, inline message."""
        return (
            self.ui_feedback_score > 0
            or is_true(self.sensors, "timing.feedbackDetected")
            or is_true(self.sensors, "uiSignals.after.successFeedbackDetected")
            or is_true(self.sensors, "uiSignals.after.errorFeedbackDetected")
            or is_true(self.sensors, "uiSignals.after.validationFeedbackDetected")
        )


# ─── Manifest ─────────────────────────────────────────────────────


class Manifest(FrozenModel):
    """Project context supplied alongside the traces."""

    static_expectations: list[dict[str, Any]] = Field(default_factory=list, alias="staticExpectations")
    protected_routes: list[Any] = Field(default_factory=list, alias="protectedRoutes")
    base_origin: str = Field(default="", alias="baseOrigin")

    @property
    def protected_route_paths(self) -> list[str]:
        paths: list[str] = []
        for route in self.protected_routes:
            path = route.get("path") if isinstance(route, Mapping) else route
            if isinstance(path, str) and path:
                paths.append(path.lower())
        return paths

    def static_expectation(self, expectation_id: str | None) -> dict[str, Any] | None:
        if not expectation_id:
            return None
        for expectation in self.static_expectations:
            if expectation.get("id") == expectation_id:
                return expectation
        return None
