"""
VerdictOS -- Evidence-to-Verdict Pipeline

One pure call from traces and expectations to a final CI decision.

Pipeline stages:
  1. Intake -- coerce raw provider records, load upstream silence events
  2. Scope -- find traces outside the pre-auth boundary
  3. Resolution -- settle every PROVEN expectation, derive OBSERVED ones
  4. Classification -- run the silent-failure rule catalog
  5. Expectation findings -- failed and unevaluable expectations become findings
  6. Enrichment -- causes, confidence and signals on every finding
  7. Judgments -- per-finding judgments and per-promise verdicts
  8. Execution -- one execution record per PROVEN expectation
  9. Coverage & consistency -- gate coverage, cross-check records and verdicts
 10. Artifacts & decision -- build and validate artifacts, walk the decision table

Evidence-law violations and artifact contract violations are caught here
and handed to the decision engine; they never escape as faults. An
expectation accounting mismatch is a programming error and does escape.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from pydantic import Field

from verdictos.config import VerdictConfig
from verdictos.errors import ContractViolationError, EvidenceLawViolation
from verdictos.primitives.common import (
    ExitCode,
    ExpectationProof,
    FrozenModel,
    canonical_json,
    new_id,
)
from verdictos.primitives.finding import Finding, FindingOutcome, FindingStatus, ScopeMarker, finding_id
from verdictos.primitives.trace import Interaction, Manifest, Trace
from verdictos.systems.causes import attach_causes
from verdictos.systems.classifier import SilentFailureClassifier, detect_scope_markers, observations
from verdictos.systems.confidence import ConfidenceEngine, DeterminismVerdict, VerificationStatus
from verdictos.systems.coverage import (
    ConsistencyValidation,
    CoverageEnforcement,
    ExecutionRecord,
    SkipReason,
    create_execution_record,
    enforce_consistency,
    enforce_coverage,
    validate_execution_completeness,
)
from verdictos.systems.decision import (
    CONTRACT_VERSION,
    COVERAGE_ARTIFACT,
    FINDINGS_ARTIFACT,
    JUDGMENTS_ARTIFACT,
    SUMMARY_ARTIFACT,
    ContractValidation,
    Decision,
    DecisionInputs,
    DecisionLabel,
    RunStatus,
    RunSummary,
    build_run_summary,
    decide,
    enforce_contracts,
)
from verdictos.systems.expectations import (
    Expectation,
    ExpectationResolver,
    GapReason,
    Resolution,
    ResolutionOutcome,
)
from verdictos.systems.judgment import (
    JudgmentReport,
    ObservationOutcome,
    Verdict,
    count_verdicts,
    create_verdict,
    judgment_exit_code,
    sort_verdicts,
    transform_findings_to_judgments,
    verdict_exit_code,
)
from verdictos.systems.signals import enrich_finding_with_signals
from verdictos.systems.silence import SilenceLedger

logger = structlog.get_logger()

# Skipped PROVEN expectations and the execution skip reason they map to
_SKIP_REASONS: dict[str, SkipReason] = {
    GapReason.EXTERNAL_BLOCKED: SkipReason.EXTERNAL_NAVIGATION,
    GapReason.OUT_OF_SCOPE: SkipReason.OUT_OF_SCOPE,
    GapReason.BUDGET_EXCEEDED: SkipReason.BUDGET_EXCEEDED,
}
# Attempted, but nothing could be concluded
_UNOBSERVED_GAPS = frozenset({GapReason.TIMEOUT, GapReason.EXECUTION_ERROR})


class RunOutcome(FrozenModel):
    """The single terminal record of one run. `run_id` is volatile and never serialized."""

    run_id: str = Field(default_factory=new_id, exclude=True)
    exit_code: ExitCode
    status: RunStatus
    decision: Decision
    findings: list[Finding] = Field(default_factory=list)
    markers: list[ScopeMarker] = Field(default_factory=list)
    judgments: JudgmentReport = Field(default_factory=JudgmentReport)
    verdicts: list[Verdict] = Field(default_factory=list)
    execution_records: list[ExecutionRecord] = Field(default_factory=list)
    coverage_enforcement: CoverageEnforcement
    consistency_validation: ConsistencyValidation
    contract_validation: ContractValidation = Field(default_factory=ContractValidation)
    run_summary: RunSummary = Field(default_factory=RunSummary)
    silences: dict[str, Any] = Field(default_factory=dict)
    artifacts: dict[str, Any] = Field(default_factory=dict)

    def canonical(self) -> bytes:
        return canonical_json(self)


# ─── Artifacts ───────────────────────────────────────────────────


def _counts(values: Sequence[str]) -> dict[str, int]:
    return dict(sorted(Counter(values).items()))


def build_artifacts(
    findings: Sequence[Finding],
    judgments: JudgmentReport,
    verdicts: Sequence[Verdict],
    records: Sequence[ExecutionRecord],
    coverage: CoverageEnforcement,
    run_summary: RunSummary,
    silences: Mapping[str, Any] | None = None,
    decision: Decision | None = None,
) -> dict[str, dict[str, Any]]:
    """
    The four output artifacts as plain JSON-ready dicts.

    Without a decision the summary carries no status fields; this is the
    form the artifact contracts are checked against.
    """
    findings_json = [f.model_dump(mode="json") for f in findings]
    report = coverage.report

    summary: dict[str, Any] = {
        "contract_version": CONTRACT_VERSION,
        "total_findings": run_summary.total_findings,
        "findings_counts": dict(run_summary.findings_counts),
        "judgments": judgments.summary.model_dump(mode="json"),
        "verdicts": count_verdicts(verdicts),
        "coverage": {
            "status": str(coverage.status),
            "passed": coverage.passed,
            "coverage_ratio": report.coverage_ratio,
            "coverage_percent": report.coverage_percent,
        },
        "silences": dict((silences or {}).get("summary", {})),
        "incomplete_reasons": list(run_summary.incomplete_reasons),
    }
    if decision is not None:
        summary.update(
            {
                "status": str(decision.status),
                "exit_code": int(decision.exit_code),
                "decision": str(decision.decision),
                "rule": decision.rule,
                "reasons": list(decision.reasons),
            }
        )

    return {
        FINDINGS_ARTIFACT: {
            "contract_version": CONTRACT_VERSION,
            "findings": findings_json,
            "stats": {
                "total": len(findings_json),
                "by_outcome": _counts([str(f.outcome) for f in findings]),
                "by_status": _counts(
                    [str(f.confidence.status) if f.confidence else "UNSCORED" for f in findings]
                ),
                "by_type": _counts([f.type for f in findings]),
            },
        },
        SUMMARY_ARTIFACT: summary,
        COVERAGE_ARTIFACT: {
            "contract_version": CONTRACT_VERSION,
            **report.model_dump(mode="json"),
            "status": str(coverage.status),
            "passed": coverage.passed,
            "min_coverage": coverage.min_coverage,
            "threshold_explicit": coverage.threshold_explicit,
            "failure_reason": coverage.failure_reason,
            "records": [r.model_dump(mode="json") for r in records],
        },
        JUDGMENTS_ARTIFACT: {
            "contract_version": CONTRACT_VERSION,
            "judgments": [j.model_dump(mode="json") for j in judgments.by_priority],
            "summary": judgments.summary.model_dump(mode="json"),
            "verdicts": [v.model_dump(mode="json") for v in verdicts],
        },
    }


# ─── Pipeline ────────────────────────────────────────────────────


class VerdictPipeline:
    """
    Runs one evidence-to-verdict pass. Holds configuration only; every
    call builds its own ledger, so runs never share state.
    """

    def __init__(self, config: VerdictConfig | None = None) -> None:
        self._config = config or VerdictConfig()
        self._confidence = ConfidenceEngine(self._config.confidence)
        self._logger = logger.bind(system="pipeline", component="verdict_pipeline")

    def run(
        self,
        traces: Sequence[Trace | Mapping[str, Any]],
        expectations: Sequence[Expectation | Mapping[str, Any]] = (),
        *,
        manifest: Manifest | Mapping[str, Any] | None = None,
        silence_events: Sequence[Mapping[str, Any]] = (),
        determinism: DeterminismVerdict = DeterminismVerdict.DETERMINISTIC,
        infra_failure: str | None = None,
    ) -> RunOutcome:
        # ── STAGE 1: Intake ─────────────────────────────────────────
        trace_list = [Trace.model_validate(t) for t in traces]
        expectation_list = [Expectation.model_validate(e) for e in expectations]
        context = Manifest.model_validate(manifest or {})
        ledger = SilenceLedger()
        ledger.record_batch(silence_events)

        self._logger.info(
            "pipeline_start",
            traces=len(trace_list),
            expectations=len(expectation_list),
            upstream_silences=len(silence_events),
        )

        # ── STAGE 2: Scope ──────────────────────────────────────────
        out_of_scope = detect_scope_markers(trace_list, context).out_of_scope_indexes

        # ── STAGE 3: Resolution ─────────────────────────────────────
        resolver = ExpectationResolver(
            ledger,
            supported_stores=self._config.classifier.supported_state_stores,
            base_origin=context.base_origin,
        )
        resolution = resolver.resolve(expectation_list, trace_list, out_of_scope)
        resolutions = [*resolution.proven, *resolution.observed]
        proofs = {r.trace_index: r.proof for r in resolutions if r.trace_index is not None}

        # ── STAGE 4: Classification ─────────────────────────────────
        classifier = SilentFailureClassifier(self._config.classifier, ledger)
        classification = classifier.classify(trace_list, context, proofs)

        # ── STAGE 5: Expectation findings ───────────────────────────
        # First declaration wins, as in the resolver
        known: dict[str, Expectation] = {}
        for expectation in (*expectation_list, *resolution.observed_expectations):
            known.setdefault(expectation.id, expectation)
        expectation_findings = _expectation_findings(
            resolutions, known, trace_list, classification.findings
        )

        # ── STAGE 6: Enrichment ─────────────────────────────────────
        verified_traces = {
            r.trace_index for r in resolutions if r.outcome == ResolutionOutcome.VERIFIED
        }
        findings = [
            self._enrich(f, trace_list, context, determinism, verified=f.trace_index in verified_traces)
            for f in classification.findings
        ]
        findings.extend(
            self._enrich(f, trace_list, context, determinism, expectation=known.get(f.expectation_id or ""))
            for f in expectation_findings
        )

        # ── STAGE 7: Judgments ──────────────────────────────────────
        judgments = transform_findings_to_judgments(findings)
        classified_traces = {f.trace_index for f in classification.findings}
        verdicts = sort_verdicts(
            [
                v
                for r in resolution.proven
                if (v := _verdict_for(r, classified_traces)) is not None
            ]
        )

        # ── STAGE 8: Execution ──────────────────────────────────────
        records = [_execution_record(r) for r in resolution.proven]
        validate_execution_completeness([r.expectation_id for r in resolution.proven], records)

        # ── STAGE 9: Coverage & consistency ─────────────────────────
        coverage = enforce_coverage(records, self._config.coverage)
        try:
            consistency = enforce_consistency(records, verdicts)
        except EvidenceLawViolation as exc:
            self._logger.warning("evidence_law_violation_captured", violations=len(exc.violations))
            consistency = ConsistencyValidation(valid=False, violations=exc.violations)

        judgment_code = max(verdict_exit_code(verdicts), judgment_exit_code(judgments.by_priority))

        # ── STAGE 10: Artifacts & decision ──────────────────────────
        silences = ledger.export()
        silence_summary = ledger.summary()
        draft_summary = build_run_summary(findings, coverage, silence_summary)
        draft = build_artifacts(findings, judgments, verdicts, records, coverage, draft_summary, silences)
        try:
            contracts = enforce_contracts(draft)
        except ContractViolationError as exc:
            contracts = ContractValidation(valid=False, violations=exc.violations)

        decision = decide(
            DecisionInputs(
                judgment_code=judgment_code,
                coverage=coverage,
                consistency=consistency,
                contracts=contracts,
                infra_failure=infra_failure is not None,
                infra_reason=infra_failure or "",
            )
        )

        run_summary = build_run_summary(findings, coverage, silence_summary, contracts)
        if decision.decision != DecisionLabel.INCOMPLETE:
            run_summary = run_summary.model_copy(update={"incomplete_reasons": []})
        artifacts = build_artifacts(
            findings, judgments, verdicts, records, coverage, run_summary, silences, decision
        )

        self._logger.info(
            "pipeline_complete",
            findings=len(findings),
            verdicts=len(verdicts),
            exit_code=int(decision.exit_code),
            status=str(decision.status),
            decision=str(decision.decision),
        )
        return RunOutcome(
            exit_code=decision.exit_code,
            status=decision.status,
            decision=decision,
            findings=findings,
            markers=classification.markers,
            judgments=judgments,
            verdicts=verdicts,
            execution_records=records,
            coverage_enforcement=coverage,
            consistency_validation=consistency,
            contract_validation=contracts,
            run_summary=run_summary,
            silences=silences,
            artifacts=artifacts,
        )

    def _enrich(
        self,
        finding: Finding,
        traces: Sequence[Trace],
        manifest: Manifest,
        determinism: DeterminismVerdict,
        *,
        verified: bool = False,
        expectation: Expectation | None = None,
    ) -> Finding:
        """
        Attach causes, confidence and signals.

        A classifier finding on a trace whose expectation was verified is
        scored as VERIFIED_WITH_ERRORS. A failed PROVEN expectation asks
        for CONFIRMED status and carries its source reference.
        """
        trace = traces[finding.trace_index] if finding.trace_index is not None else None

        requested = FindingStatus.SUSPECTED
        source_ref = None
        if finding.outcome == FindingOutcome.COVERAGE_GAP:
            requested = FindingStatus.INFORMATIONAL
        elif expectation is not None and finding.proof == ExpectationProof.PROVEN:
            requested = FindingStatus.CONFIRMED
            source_ref = expectation.source_ref

        enriched = attach_causes(finding)
        enriched = self._confidence.score_finding(
            enriched,
            trace,
            requested_status=requested,
            determinism=determinism,
            verification_status=VerificationStatus.VERIFIED_WITH_ERRORS if verified else None,
            source_ref=source_ref,
        )
        return enrich_finding_with_signals(enriched, trace, manifest)


def run_pipeline(
    traces: Sequence[Trace | Mapping[str, Any]],
    expectations: Sequence[Expectation | Mapping[str, Any]] = (),
    *,
    config: VerdictConfig | None = None,
    **options: Any,
) -> RunOutcome:
    """Run one pass with a fresh pipeline. See VerdictPipeline.run for options."""
    return VerdictPipeline(config).run(traces, expectations, **options)


# ─── Stage helpers ───────────────────────────────────────────────

_PROVEN_SUFFIX = "_silent_failure"


def _expectation_evidence(
    resolution: Resolution,
    expectation: Expectation | None,
    trace: Trace | None,
) -> dict[str, Any]:
    if trace is None:
        return {
            "budget_exceeded": resolution.reason == GapReason.BUDGET_EXCEEDED,
            "expectation_id": resolution.expectation_id,
        }
    evidence = {
        **observations(trace),
        "expectation_id": resolution.expectation_id,
        "expectation_outcome": str(resolution.outcome),
        "expectation_reason": resolution.reason,
    }
    if expectation is not None:
        if expectation.target_path:
            evidence["target_path"] = expectation.target_path
        if expectation.expected_request_url:
            evidence["expected_request_url"] = expectation.expected_request_url
    return evidence


def _expectation_findings(
    resolutions: Sequence[Resolution],
    known: Mapping[str, Expectation],
    traces: Sequence[Trace],
    existing: Sequence[Finding],
) -> list[Finding]:
    """Findings for expectations that failed or could not be evaluated."""
    seen: Counter[tuple[int | None, str]] = Counter((f.trace_index, f.type) for f in existing)
    findings: list[Finding] = []
    for resolution in resolutions:
        if resolution.outcome == ResolutionOutcome.VERIFIED:
            continue
        if resolution.reason == GapReason.OUT_OF_SCOPE:
            continue

        expectation = known.get(resolution.expectation_id)
        trace = traces[resolution.trace_index] if resolution.trace_index is not None else None
        proven = resolution.proof == ExpectationProof.PROVEN

        if resolution.outcome == ResolutionOutcome.COVERAGE_GAP:
            finding_type, outcome = "coverage_gap", FindingOutcome.COVERAGE_GAP
            reason = f"Expectation {resolution.expectation_id} could not be evaluated: {resolution.reason}"
        elif proven:
            finding_type = f"{resolution.expectation_type}{_PROVEN_SUFFIX}"
            outcome = FindingOutcome.SILENT_FAILURE
            reason = f"Expected {resolution.expectation_type} did not happen: {resolution.reason}"
        else:
            finding_type, outcome = "observed_break", FindingOutcome.UNMET_EXPECTATION
            reason = f"Observed {resolution.expectation_type} expectation not met: {resolution.reason}"

        seen[(resolution.trace_index, finding_type)] += 1
        findings.append(
            Finding(
                id=finding_id(resolution.trace_index, finding_type, seen[(resolution.trace_index, finding_type)]),
                type=finding_type,
                outcome=outcome,
                reason=reason,
                evidence=_expectation_evidence(resolution, expectation, trace),
                interaction=trace.interaction if trace is not None else Interaction(),
                trace_index=resolution.trace_index,
                expectation_id=resolution.expectation_id,
                proof=resolution.proof,
                url=trace.before_url if trace is not None else "",
            )
        )
    return findings


def _verdict_for(resolution: Resolution, classified_traces: set[int | None]) -> Verdict | None:
    """Verdict for one PROVEN expectation, or None when it was skipped."""
    if resolution.skipped:
        return None
    match resolution.outcome:
        case ResolutionOutcome.VERIFIED:
            outcome = (
                ObservationOutcome.PARTIAL_SUCCESS
                if resolution.trace_index in classified_traces
                else ObservationOutcome.SUCCESS
            )
        case ResolutionOutcome.SILENT_FAILURE:
            outcome = ObservationOutcome.SILENT_FAILURE
        case _:
            outcome = ObservationOutcome.AMBIGUOUS

    refs = [f"outcome:{resolution.outcome}"]
    if resolution.reason:
        refs.append(f"reason:{resolution.reason}")
    if resolution.trace_index is not None:
        refs.append(f"trace:{resolution.trace_index}")
    return create_verdict(resolution.expectation_id, str(resolution.expectation_type), outcome, refs)


def _execution_record(resolution: Resolution) -> ExecutionRecord:
    refs = [f"trace:{resolution.trace_index}"] if resolution.trace_index is not None else []
    if resolution.reason in _SKIP_REASONS:
        return create_execution_record(
            resolution.expectation_id, None, _SKIP_REASONS[resolution.reason], refs
        )
    observed = not (
        resolution.outcome == ResolutionOutcome.COVERAGE_GAP and resolution.reason in _UNOBSERVED_GAPS
    )
    return create_execution_record(resolution.expectation_id, observed, evidence_refs=refs)
