"""
VerdictOS -- Coverage & Consistency Enforcement

Execution records, the skip-reason law, coverage truth and gating, and
execution/judgment consistency.
"""

from verdictos.systems.coverage.consistency import (
    consistency_statistics,
    enforce_consistency,
    validate_consistency,
)
from verdictos.systems.coverage.enforcement import (
    LEGAL_SKIP_REASONS,
    calculate_coverage,
    coverage_exit_code,
    coverage_status,
    enforce_coverage,
    is_legal_skip_reason,
    should_override_judgments,
)
from verdictos.systems.coverage.execution import (
    create_execution_record,
    create_execution_records,
    is_execution_complete,
    validate_execution_completeness,
)
from verdictos.systems.coverage.types import (
    ConsistencyStatistics,
    ConsistencyValidation,
    ConsistencyViolation,
    ConsistencyViolationType,
    CoverageEnforcement,
    CoverageReport,
    CoverageStatus,
    ExecutionRecord,
    ExecutionState,
    SkipReason,
)

__all__ = [
    # Types
    "ConsistencyStatistics",
    "ConsistencyValidation",
    "ConsistencyViolation",
    "ConsistencyViolationType",
    "CoverageEnforcement",
    "CoverageReport",
    "CoverageStatus",
    "ExecutionRecord",
    "ExecutionState",
    "SkipReason",
    # Execution
    "create_execution_record",
    "create_execution_records",
    "is_execution_complete",
    "validate_execution_completeness",
    # Coverage
    "LEGAL_SKIP_REASONS",
    "calculate_coverage",
    "coverage_exit_code",
    "coverage_status",
    "enforce_coverage",
    "is_legal_skip_reason",
    "should_override_judgments",
    # Consistency
    "consistency_statistics",
    "enforce_consistency",
    "validate_consistency",
]
