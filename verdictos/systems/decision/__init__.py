"""
VerdictOS -- CI Decision Engine

Ordered decision table, artifact contracts, and the run summary.
"""

from verdictos.systems.decision.contracts import (
    CONTRACT_VERSION,
    COVERAGE_ARTIFACT,
    FINDINGS_ARTIFACT,
    JUDGMENTS_ARTIFACT,
    SUMMARY_ARTIFACT,
    enforce_contracts,
    format_contract_violations,
    validate_artifacts,
    validate_coverage_artifact,
    validate_findings_artifact,
    validate_judgments_artifact,
    validate_summary_artifact,
)
from verdictos.systems.decision.engine import (
    DECISION_RULES,
    DecisionRule,
    decide,
    label_for_judgment_code,
    status_for_exit_code,
)
from verdictos.systems.decision.summary import (
    build_run_summary,
    confidence_bucket,
    findings_by_confidence,
    incomplete_reasons,
)
from verdictos.systems.decision.types import (
    ContractSeverity,
    ContractValidation,
    ContractViolation,
    Decision,
    DecisionInputs,
    DecisionLabel,
    RunStatus,
    RunSummary,
)

__all__ = [
    # Types
    "ContractSeverity",
    "ContractValidation",
    "ContractViolation",
    "Decision",
    "DecisionInputs",
    "DecisionLabel",
    "RunStatus",
    "RunSummary",
    # Engine
    "DECISION_RULES",
    "DecisionRule",
    "decide",
    "label_for_judgment_code",
    "status_for_exit_code",
    # Contracts
    "CONTRACT_VERSION",
    "COVERAGE_ARTIFACT",
    "FINDINGS_ARTIFACT",
    "JUDGMENTS_ARTIFACT",
    "SUMMARY_ARTIFACT",
    "enforce_contracts",
    "format_contract_violations",
    "validate_artifacts",
    "validate_coverage_artifact",
    "validate_findings_artifact",
    "validate_judgments_artifact",
    "validate_summary_artifact",
    # Summary
    "build_run_summary",
    "confidence_bucket",
    "findings_by_confidence",
    "incomplete_reasons",
]
