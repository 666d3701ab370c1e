"""
VerdictOS -- Common Primitives

Shared enums, base classes, and utilities used across all systems.

Nothing in here reads the clock except `new_id()`, which is reserved for
run identifiers that are explicitly excluded from canonical output.
"""

from __future__ import annotations

import enum
import hashlib
from typing import Any
from urllib.parse import urlsplit

import orjson
from pydantic import BaseModel
from ulid import ULID


def new_id() -> str:
    """Generate a new ULID string. Time-sortable, globally unique. Volatile."""
    return str(ULID())


# ─── Enums ────────────────────────────────────────────────────────


class ConfidenceLevel(enum.StrEnum):
    """Coarse bucket of a 0..1 confidence score."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNPROVEN = "UNPROVEN"  # Below the LOW threshold


class Severity(enum.StrEnum):
    """Human-facing severity of a judgment."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ExitCode(int, enum.Enum):
    """Fixed CI exit codes. Highest wins when merged."""

    SUCCESS = 0
    NEEDS_REVIEW = 10
    FAILURE_SILENT = 20
    INCOMPLETE = 30  # Coverage failure, misleading failure, contract warning
    INFRA_FAILURE = 40
    EVIDENCE_VIOLATION = 50  # Evidence-law or invariant violation
    USAGE_ERROR = 64


class ExpectationProof(enum.StrEnum):
    """How strongly an expected behavior is established."""

    PROVEN = "PROVEN_EXPECTATION"  # Supplied by the static-proof source
    OBSERVED = "OBSERVED_EXPECTATION"  # Derived from strict runtime evidence
    UNPROVEN = "UNPROVEN_RESULT"  # No expectation could be established


# ─── Base Models ──────────────────────────────────────────────────


class VerdictBaseModel(BaseModel):
    """Base model for all VerdictOS records."""

    model_config = {"populate_by_name": True, "from_attributes": True}


class FrozenModel(VerdictBaseModel):
    """Base for records that must never change after construction."""

    model_config = {"populate_by_name": True, "from_attributes": True, "frozen": True}


# ─── Determinism ──────────────────────────────────────────────────


def canonical_json(data: Any) -> bytes:
    """
    Serialize to canonical JSON bytes: sorted keys, no whitespace.

    Pydantic models are dumped in JSON mode first so enums and nested
    models collapse to plain values.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [
            item.model_dump(mode="json") if isinstance(item, BaseModel) else item
            for item in data
        ]
    return orjson.dumps(data, option=orjson.OPT_SORT_KEYS)


def determinism_hash(data: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form."""
    return hashlib.sha256(canonical_json(data)).hexdigest()


# ─── URL helpers ──────────────────────────────────────────────────


def url_path(url: str | None) -> str:
    """
    Extract the path component of a URL or bare path.

    Returns "" for empty input so callers can treat it as "no path".
    """
    if not url or not isinstance(url, str):
        return ""
    parts = urlsplit(url.strip())
    return parts.path or ("/" if parts.netloc else "")


def normalize_path(path: str | None) -> str:
    """Trailing-slash-insensitive path. "/" stays "/"; "" stays ""."""
    if not path:
        return ""
    stripped = path.rstrip("/")
    return stripped or "/"


def same_path(left: str | None, right: str | None) -> bool:
    """Compare two URLs or paths by normalized path only."""
    a = normalize_path(url_path(left))
    b = normalize_path(url_path(right))
    return bool(a) and a == b
