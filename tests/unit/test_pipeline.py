"""
Tests for the Evidence-to-Verdict Pipeline.

Covers:
  - Clean runs passing with full coverage
  - Byte-identical output for identical inputs
  - PROVEN failures, timeouts and budget exhaustion reaching the decision
  - Post-auth traces flowing through as scope markers and legal skips
  - Artifact shapes matching the findings list
"""

from __future__ import annotations

from typing import Any

import orjson

from verdictos.config import CoverageConfig, VerdictConfig
from verdictos.pipeline import RunOutcome, VerdictPipeline, build_artifacts, run_pipeline
from verdictos.primitives.common import ExitCode
from verdictos.primitives.finding import FindingOutcome
from verdictos.systems.decision import DecisionLabel, RunStatus, validate_artifacts
from verdictos.systems.judgment import VerdictType


def _make_trace(exp_id: str | None = None, after: str = "http://app.test/home", **kwargs: Any) -> dict:
    data: dict[str, Any] = {
        "interaction": {"type": "click", "selector": f"#{exp_id or 'btn'}"},
        "beforeUrl": "http://app.test/home",
        "afterUrl": after,
    }
    if exp_id is not None:
        data["expectationId"] = exp_id
    data.update(kwargs)
    return data


def _make_nav(exp_id: str, target: str = "/about") -> dict:
    return {
        "id": exp_id,
        "type": "navigation",
        "fromPath": "/home",
        "targetPath": target,
        "proof": "PROVEN_EXPECTATION",
        "sourceRef": "src/App.jsx:10",
    }


def _verified_run(**kwargs: Any) -> RunOutcome:
    traces = [
        _make_trace("exp-1", after="http://app.test/about"),
        _make_trace("exp-2", after="http://app.test/pricing"),
    ]
    expectations = [_make_nav("exp-1"), _make_nav("exp-2", "/pricing")]
    return run_pipeline(traces, expectations, **kwargs)


class TestCleanRun:
    def test_verified_promises_pass(self):
        outcome = _verified_run()
        assert outcome.exit_code == ExitCode.SUCCESS
        assert outcome.status == RunStatus.SUCCESS
        assert outcome.decision.decision == DecisionLabel.PASS
        assert outcome.findings == []
        assert [v.judgment for v in outcome.verdicts] == [VerdictType.PASS, VerdictType.PASS]
        assert outcome.coverage_enforcement.report.coverage_ratio == 1.0
        assert outcome.consistency_validation.valid
        assert outcome.contract_validation.valid

    def test_summary_artifact_carries_decision(self):
        summary = _verified_run().artifacts["summary.json"]
        assert summary["exit_code"] == 0
        assert summary["status"] == "SUCCESS"
        assert summary["decision"] == "PASS"
        assert summary["incomplete_reasons"] == []

    def test_infra_failure_wins(self):
        outcome = _verified_run(infra_failure="browser crashed")
        assert outcome.exit_code == ExitCode.INFRA_FAILURE
        assert outcome.decision.rule == 1


class TestDeterminism:
    def test_identical_inputs_identical_bytes(self):
        first, second = _verified_run(), _verified_run()
        assert first.run_id != second.run_id
        assert first.canonical() == second.canonical()

    def test_run_id_not_serialized(self):
        outcome = _verified_run()
        assert outcome.run_id.encode() not in outcome.canonical()

    def test_failed_run_is_stable(self):
        traces = [_make_trace("exp-1")]
        runs = [run_pipeline(traces, [_make_nav("exp-1")]).canonical() for _ in range(3)]
        assert len(set(runs)) == 1


class TestFailures:
    def test_proven_navigation_without_effect(self):
        outcome = run_pipeline([_make_trace("exp-1")], [_make_nav("exp-1")])
        [finding] = outcome.findings
        assert finding.id == "finding-0-navigation_silent_failure-1"
        assert finding.outcome == FindingOutcome.SILENT_FAILURE
        assert finding.evidence["target_path"] == "/about"
        assert finding.confidence is not None
        assert outcome.verdicts[0].judgment == VerdictType.FAILURE_SILENT
        assert outcome.exit_code == ExitCode.FAILURE_SILENT
        assert outcome.decision.decision == DecisionLabel.FAILURE_CONFIRMED

    def test_timeout_is_attempted_but_not_observed(self):
        trace = _make_trace("exp-1", policy={"timeout": True})
        outcome = run_pipeline([trace], [_make_nav("exp-1")])
        [record] = outcome.execution_records
        assert record.attempted and not record.observed
        assert outcome.coverage_enforcement.report.attempted_not_observed == 1
        assert outcome.exit_code == ExitCode.INCOMPLETE
        assert "observation_incomplete" in outcome.run_summary.incomplete_reasons

    def test_budget_exceeded_becomes_gap_and_silence(self):
        traces = [_make_trace("exp-1", after="http://app.test/about")]
        outcome = run_pipeline(traces, [_make_nav("exp-1"), _make_nav("exp-2", "/pricing")])

        gaps = [f for f in outcome.findings if f.outcome == FindingOutcome.COVERAGE_GAP]
        assert [f.id for f in gaps] == ["finding-run-coverage_gap-1"]
        assert gaps[0].evidence == {"budget_exceeded": True, "expectation_id": "exp-2"}

        skipped = [r for r in outcome.execution_records if r.skipped]
        assert [r.skip_reason for r in skipped] == ["budget_exceeded"]
        assert "interaction_limit_exceeded" in outcome.silences["summary"]["by_reason"]
        assert outcome.exit_code == ExitCode.INCOMPLETE
        assert "partial_attempts" in outcome.run_summary.incomplete_reasons

    def test_explicit_threshold_lets_budget_gap_pass(self):
        config = VerdictConfig(coverage=CoverageConfig(min_coverage=0.5))
        traces = [_make_trace("exp-1", after="http://app.test/about")]
        outcome = run_pipeline(traces, [_make_nav("exp-1"), _make_nav("exp-2", "/pricing")], config=config)
        assert outcome.coverage_enforcement.passed
        assert outcome.exit_code == ExitCode.SUCCESS


class TestDeclarations:
    def test_duplicate_id_runs_to_a_decision(self):
        traces = [_make_trace("exp-1", after="http://app.test/about")]
        outcome = run_pipeline(traces, [_make_nav("exp-1"), _make_nav("exp-1", "/pricing")])
        assert [v.promise_id for v in outcome.verdicts] == ["exp-1"]
        assert [r.promise_id for r in outcome.execution_records] == ["exp-1"]
        assert outcome.silences["summary"]["by_reason"]["duplicate_expectation"] == 1
        assert not outcome.findings

    def test_expectations_without_ids_are_accounted(self):
        undeclared = [
            {k: v for k, v in _make_nav("x", target).items() if k != "id"}
            for target in ("/about", "/pricing")
        ]
        outcome = run_pipeline([], undeclared)
        gaps = [f for f in outcome.findings if f.outcome == FindingOutcome.COVERAGE_GAP]
        ids = [f.evidence["expectation_id"] for f in gaps]
        assert len(set(ids)) == 2
        assert all(i.startswith("exp-navigation-") for i in ids)
        assert outcome.exit_code == ExitCode.INCOMPLETE


class TestScope:
    def test_forbidden_trace_is_marked_and_legally_skipped(self):
        traces = [
            _make_trace("exp-1", after="http://app.test/about"),
            _make_trace("exp-2", httpStatus=403),
        ]
        outcome = run_pipeline(traces, [_make_nav("exp-1"), _make_nav("exp-2", "/admin")])

        [marker] = outcome.markers
        assert marker.trace_index == 1
        assert all(f.trace_index != 1 for f in outcome.findings)
        assert {r.promise_id: r.skip_reason for r in outcome.execution_records if r.skipped} == {
            "exp-2": "out_of_scope"
        }
        assert [v.promise_id for v in outcome.verdicts] == ["exp-1"]
        assert outcome.coverage_enforcement.report.legally_skipped == 1
        assert outcome.exit_code == ExitCode.SUCCESS

    def test_upstream_silences_are_exported(self):
        events = [{"scope": "page", "reason": "page_limit_exceeded", "description": "Page cap reached"}]
        outcome = _verified_run(silence_events=events)
        reasons = [e["reason"] for e in outcome.silences["entries"]]
        assert "page_limit_exceeded" in reasons


class TestArtifacts:
    def test_findings_stats_match_list(self):
        outcome = run_pipeline([_make_trace("exp-1")], [_make_nav("exp-1")])
        findings = outcome.artifacts["findings.json"]
        assert findings["stats"]["total"] == len(findings["findings"]) == len(outcome.findings)
        assert findings["stats"]["by_type"] == {"navigation_silent_failure": 1}

    def test_coverage_ratio_bounded(self):
        coverage = _verified_run().artifacts["coverage.json"]
        assert 0.0 <= coverage["coverage_ratio"] <= 1.0
        assert len(coverage["records"]) == 2

    def test_artifacts_satisfy_contracts(self):
        outcome = run_pipeline([_make_trace("exp-1")], [_make_nav("exp-1")])
        assert validate_artifacts(outcome.artifacts).valid
        orjson.dumps(outcome.artifacts)

    def test_draft_artifacts_have_no_status(self):
        outcome = _verified_run()
        draft = build_artifacts(
            outcome.findings,
            outcome.judgments,
            outcome.verdicts,
            outcome.execution_records,
            outcome.coverage_enforcement,
            outcome.run_summary,
        )
        assert "status" not in draft["summary.json"]

    def test_pipeline_instance_is_reusable(self):
        pipeline = VerdictPipeline()
        traces = [_make_trace("exp-1", after="http://app.test/about")]
        first = pipeline.run(traces, [_make_nav("exp-1")])
        second = pipeline.run(traces, [_make_nav("exp-1")])
        assert first.silences == second.silences
