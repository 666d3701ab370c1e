"""
VerdictOS -- Silent-Failure Classifier

Turns traces into typed findings. The scope boundary runs first and is a
hard filter: out-of-scope traces yield a marker and nothing else. Every
in-scope trace is then run through its applicable rules in declared
order, so identical traces always produce identical finding arrays.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from verdictos.config import ClassifierConfig
from verdictos.primitives.common import ExpectationProof
from verdictos.primitives.finding import Finding, FindingOutcome, finding_id
from verdictos.primitives.trace import Manifest, Trace, is_true, sequence
from verdictos.systems.classifier.rules import evaluate_rule, rules_for
from verdictos.systems.classifier.scope import detect_scope_markers
from verdictos.systems.classifier.types import ClassificationResult, RuleHit
from verdictos.systems.silence import SilenceLedger, SilenceReason

logger = structlog.get_logger()

_SUBMIT_TYPES = ("form", "submit")


def observations(trace: Trace) -> dict[str, Any]:
    """
    The shared evidence every finding carries, named so the cause catalog
    and the confidence engine can read it without knowing the rule.
    """
    ui_feedback = trace.ui_feedback_detected
    return {
        "interaction_performed": True,
        "interaction_type": trace.interaction.type or None,
        "before_url": trace.before_url,
        "after_url": trace.after_url,
        "url_changed": trace.url_changed,
        "dom_changed": trace.dom_changed,
        "ui_changed": trace.ui_changed,
        "ui_feedback": ui_feedback,
        "user_feedback": ui_feedback or is_true(trace.sensors, "aria.changed"),
        "network_activity": trace.has_network,
        "network_request_occurred": trace.has_network,
        "network_failure": trace.network_failed,
        "navigation_occurred": trace.navigation_occurred,
        "console_errors": trace.console_errors,
        "state_mutation": bool(sequence(trace.sensors, "state.changed")),
        "submit_interaction": trace.interaction.type in _SUBMIT_TYPES,
        "success_feedback": is_true(trace.sensors, "uiSignals.after.successFeedbackDetected"),
        "error_feedback": is_true(trace.sensors, "uiSignals.after.errorFeedbackDetected"),
        "inline_validation_feedback": is_true(trace.sensors, "uiSignals.after.validationFeedbackDetected"),
    }


class SilentFailureClassifier:
    """
    Applies the scope boundary and the rule catalog to a batch of traces.
    """

    def __init__(self, config: ClassifierConfig | None = None, ledger: SilenceLedger | None = None) -> None:
        self._config = config or ClassifierConfig()
        self._ledger = ledger
        self._logger = logger.bind(system="classifier", component="classifier")

    def classify(
        self,
        traces: Sequence[Trace],
        manifest: Manifest | None = None,
        proofs: Mapping[int, ExpectationProof] | None = None,
    ) -> ClassificationResult:
        """
        Classify every trace.

        `proofs` maps trace index to the strength of the expectation the
        resolver established for it. Traces absent from it are UNPROVEN.
        """
        manifest = manifest or Manifest()
        proofs = proofs or {}
        scope = detect_scope_markers(traces, manifest)
        out_of_scope = scope.out_of_scope_indexes

        if self._ledger is not None:
            for marker in scope.markers:
                self._ledger.record(
                    scope="trace",
                    reason=SilenceReason.POST_AUTH_BOUNDARY,
                    description=f"Trace {marker.trace_index} is outside the pre-auth boundary: {marker.type}",
                    context={"trace_index": marker.trace_index, "marker": marker.type},
                    expectation_id=traces[marker.trace_index].expectation_id,
                )

        findings: list[Finding] = []
        for index, trace in enumerate(traces):
            if index in out_of_scope:
                continue
            findings.extend(
                self.classify_trace(trace, index, proofs.get(index, ExpectationProof.UNPROVEN))
            )

        self._logger.info(
            "traces_classified",
            traces=len(traces),
            out_of_scope=len(out_of_scope),
            findings=len(findings),
        )
        return ClassificationResult(findings=findings, markers=scope.markers, skips=scope.skips)

    def classify_trace(
        self,
        trace: Trace,
        index: int,
        proof: ExpectationProof = ExpectationProof.UNPROVEN,
    ) -> list[Finding]:
        """Findings for one in-scope trace, in rule order."""
        hits: list[RuleHit] = []
        for rule in rules_for(trace.interaction.type):
            hits.extend(evaluate_rule(rule, trace, self._config))
        if not hits:
            return []

        shared = observations(trace)
        seen: Counter[str] = Counter()
        findings: list[Finding] = []
        for hit in hits:
            finding_type = str(hit.rule)
            seen[finding_type] += 1
            findings.append(
                Finding(
                    id=finding_id(index, finding_type, seen[finding_type]),
                    type=finding_type,
                    outcome=FindingOutcome.SILENT_FAILURE,
                    reason=hit.reason,
                    evidence={**shared, **hit.evidence},
                    interaction=trace.interaction,
                    trace_index=index,
                    expectation_id=trace.expectation_id,
                    proof=proof,
                    url=trace.before_url,
                )
            )
        return findings
