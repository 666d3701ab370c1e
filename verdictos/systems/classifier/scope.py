"""
VerdictOS -- Pre-auth Scope Boundary

Post-authentication and permission-gated flows are outside what a run can
judge. A trace that crosses the boundary gets an explicit marker and a
skip record instead of findings, so it can never be counted as a failure.

Checked per trace, before any rule:
  1. 403                          → out_of_scope_post_auth_rbac (1.0)
  2. 401 on a pre-auth gate       → in scope, no marker
     401 anywhere else            → out_of_scope_post_auth_session (0.85)
  3. No status, session cookies, protected and post-auth path
                                  → out_of_scope_post_auth_protected (0.8)
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from verdictos.primitives.finding import ScopeMarker
from verdictos.primitives.trace import Interaction, Manifest, Trace, sequence
from verdictos.systems.classifier.types import ScopeBoundary, ScopeResult, SkipRecord

logger = structlog.get_logger()

PRE_AUTH_PATH_PATTERNS: tuple[str, ...] = (
    "/login",
    "/signin",
    "/sign-in",
    "/auth/login",
    "/auth/signin",
    "/signup",
    "/register",
    "/sign-up",
    "/auth/signup",
    "/forgot",
    "/password-reset",
    "/reset",
    "/forgot-password",
    "/auth/forgot",
)

PRE_AUTH_LABEL_PATTERNS: tuple[str, ...] = ("login", "signin", "signup", "register", "reset", "forgot")

PROTECTED_PATH_PATTERNS: tuple[str, ...] = (
    "/admin",
    "/dashboard",
    "/account",
    "/profile",
    "/settings",
    "/user",
    "/users",
    "/billing",
    "/payments",
    "/subscription",
    "/private",
    "/protected",
)

POST_AUTH_PATH_PATTERNS: tuple[str, ...] = (
    "/me",
    "/my-",
    "/user/",
    "/account",
    "/auth/callback",
    "/oauth",
)

_BOUNDARY_CONFIDENCE: dict[ScopeBoundary, float] = {
    ScopeBoundary.POST_AUTH_RBAC: 1.0,
    ScopeBoundary.POST_AUTH_SESSION: 0.85,
    ScopeBoundary.POST_AUTH_PROTECTED: 0.8,
}

_BOUNDARY_CONTEXT: dict[ScopeBoundary, str] = {
    ScopeBoundary.POST_AUTH_RBAC: "Permission denied - user authenticated but lacks permission",
    ScopeBoundary.POST_AUTH_SESSION: "Unauthorized - implies authenticated session context outside pre-auth gates",
    ScopeBoundary.POST_AUTH_PROTECTED: "Authenticated session detected on protected route",
}


def is_pre_auth_gate(url: str, interaction: Interaction | None = None) -> bool:
    lowered = (url or "").lower()
    if any(p in lowered for p in PRE_AUTH_PATH_PATTERNS):
        return True
    if interaction is None:
        return False
    label = (interaction.label or interaction.selector or "").lower()
    return any(p in label for p in PRE_AUTH_LABEL_PATTERNS)


def is_protected_route(url: str, protected_routes: Sequence[str] = ()) -> bool:
    lowered = (url or "").lower()
    if any(p in lowered for p in PROTECTED_PATH_PATTERNS):
        return True
    return any(route in lowered for route in protected_routes)


def is_post_auth_path(url: str) -> bool:
    """Paths that only make sense with a session. Pre-auth gates never are."""
    if is_pre_auth_gate(url):
        return False
    if is_protected_route(url):
        return True
    lowered = (url or "").lower()
    return any(p in lowered for p in POST_AUTH_PATH_PATTERNS)


def scope_boundary(trace: Trace, manifest: Manifest) -> ScopeBoundary | None:
    """Which boundary, if any, this trace crosses."""
    status = trace.effective_http_status
    if status == 403:
        return ScopeBoundary.POST_AUTH_RBAC
    if status == 401:
        if is_pre_auth_gate(trace.before_url, trace.interaction):
            return None
        return ScopeBoundary.POST_AUTH_SESSION
    if status is not None:
        return None

    has_cookies = bool(sequence(trace.session_context, "cookies"))
    if (
        has_cookies
        and is_protected_route(trace.before_url, manifest.protected_route_paths)
        and is_post_auth_path(trace.before_url)
    ):
        return ScopeBoundary.POST_AUTH_PROTECTED
    return None


def detect_scope_markers(traces: Sequence[Trace], manifest: Manifest | None = None) -> ScopeResult:
    """Markers and skip records for every out-of-scope trace. Findings are always empty."""
    manifest = manifest or Manifest()
    markers: list[ScopeMarker] = []
    for index, trace in enumerate(traces):
        boundary = scope_boundary(trace, manifest)
        if boundary is None:
            continue
        markers.append(
            ScopeMarker(
                type=boundary,
                reason=boundary,
                confidence=_BOUNDARY_CONFIDENCE[boundary],
                trace_index=index,
                evidence={
                    "http_status": trace.effective_http_status,
                    "before_url": trace.before_url,
                    "after_url": trace.after_url,
                    "interaction_type": trace.interaction.type or None,
                    "context": _BOUNDARY_CONTEXT[boundary],
                },
            )
        )

    if markers:
        logger.info(
            "scope_markers_detected",
            system="classifier",
            count=len(markers),
            types=sorted({m.type for m in markers}),
        )
    return ScopeResult(
        markers=markers,
        skips=[SkipRecord(reason=m.reason) for m in markers],
    )
