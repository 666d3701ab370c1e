"""
VerdictOS -- Coverage Truth & Enforcement

coverage_ratio = observed / (total - legally skipped)

Attempted-but-not-observed promises and illegally skipped promises stay in
the denominator, so they pull coverage down. Legal skips are the only way
to leave the denominator, and the set of legal reasons is fixed in config.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from verdictos.config import DEFAULT_MIN_COVERAGE, CoverageConfig
from verdictos.primitives.common import ExitCode
from verdictos.systems.coverage.types import (
    CoverageEnforcement,
    CoverageReport,
    CoverageStatus,
    ExecutionRecord,
    SkipReason,
)
from verdictos.systems.judgment.types import Verdict, VerdictType

logger = structlog.get_logger()

LEGAL_SKIP_REASONS: frozenset[str] = frozenset(
    {
        SkipReason.AUTH_REQUIRED,
        SkipReason.INFRA_FAILURE,
        SkipReason.OUT_OF_SCOPE,
        SkipReason.EXTERNAL_NAVIGATION,
        SkipReason.SAFETY_POLICY,
    }
)


def is_legal_skip_reason(reason: str | None, legal: Iterable[str] | None = None) -> bool:
    if not reason:
        return False
    allowed = LEGAL_SKIP_REASONS if legal is None else frozenset(legal)
    return reason in allowed


def _percent(ratio: float) -> int:
    # Half rounds up
    return int(ratio * 100 + 0.5)


def calculate_coverage(
    records: Sequence[ExecutionRecord],
    legal_skip_reasons: Iterable[str] | None = None,
) -> CoverageReport:
    legal = LEGAL_SKIP_REASONS if legal_skip_reasons is None else frozenset(legal_skip_reasons)
    total = len(records)
    attempted = sum(1 for r in records if r.attempted)
    observed = sum(1 for r in records if r.observed)
    skipped = sum(1 for r in records if r.skipped)
    legally = sum(1 for r in records if r.skipped and is_legal_skip_reason(r.skip_reason, legal))

    evaluable = total - legally
    ratio = observed / evaluable if evaluable > 0 else 1.0
    ratio = max(0.0, min(1.0, ratio))

    return CoverageReport(
        total=total,
        attempted=attempted,
        observed=observed,
        skipped=skipped,
        legally_skipped=legally,
        illegally_skipped=skipped - legally,
        attempted_not_observed=attempted - observed,
        coverage_ratio=ratio,
        coverage_percent=_percent(ratio),
    )


def coverage_status(report: CoverageReport, min_coverage: float = DEFAULT_MIN_COVERAGE) -> CoverageStatus:
    if report.total == 0:
        return CoverageStatus.INCOMPLETE
    return CoverageStatus.PASS if report.coverage_ratio >= min_coverage else CoverageStatus.FAIL


def enforce_coverage(
    records: Sequence[ExecutionRecord],
    config: CoverageConfig | None = None,
) -> CoverageEnforcement:
    """Gate the run on coverage. Never raises; failure is carried in the result."""
    config = config or CoverageConfig()
    min_coverage = config.effective_min_coverage
    report = calculate_coverage(records, config.legal_skip_reasons)
    status = coverage_status(report, min_coverage)

    passed = status == CoverageStatus.PASS or (status == CoverageStatus.INCOMPLETE and not config.strict)
    failure_reason = None
    if not passed:
        if status == CoverageStatus.INCOMPLETE:
            failure_reason = "No promises to cover (strict mode)"
        else:
            failure_reason = (
                f"Coverage {report.coverage_percent}% below threshold {_percent(min_coverage)}%"
                f" ({report.observed}/{report.total - report.legally_skipped} observed)"
            )

    logger.info(
        "coverage_enforced",
        system="coverage",
        status=str(status),
        passed=passed,
        ratio=round(report.coverage_ratio, 4),
        min_coverage=min_coverage,
    )
    return CoverageEnforcement(
        passed=passed,
        status=status,
        min_coverage=min_coverage,
        threshold_explicit=config.threshold_explicit,
        overrides_judgment=not passed,
        failure_reason=failure_reason,
        report=report,
    )


def should_override_judgments(enforcement: CoverageEnforcement, verdicts: Sequence[Verdict]) -> bool:
    """A coverage failure overrides the verdicts only when every verdict passed."""
    if enforcement.passed:
        return False
    return all(v.judgment == VerdictType.PASS for v in verdicts)


def coverage_exit_code(enforcement: CoverageEnforcement) -> ExitCode:
    return ExitCode.SUCCESS if enforcement.passed else ExitCode.INCOMPLETE
