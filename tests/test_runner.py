"""Tests for EvalRunner: winner rule, batch flow, failure policies and graceful stop."""

from __future__ import annotations

import pytest

from commitment_eval.core.attempt_runner import AttemptRunner
from commitment_eval.core.commit_format import COMMIT_END_MARKER, COMMIT_START_MARKER
from commitment_eval.core.errors import (
    ConfigurationError,
    GenerationError,
    InvariantViolation,
    JudgeUnavailableError,
)
from commitment_eval.core.meta_evaluator import MetaEvaluator
from commitment_eval.core.models import (
    AttemptMetrics,
    EvalResult,
    FailureType,
    Fixture,
    SuccessOutcome,
    Winner,
)
from commitment_eval.core.runner import EvalRunner, FailurePolicy, determine_winner
from commitment_eval.fixtures.loader import load_fixture
from commitment_eval.generators.base import Generator
from commitment_eval.judge.base import AttemptScore, Judge, MetaEvaluation
from commitment_eval.judge.heuristic import HeuristicJudge
from commitment_eval.reporting.base import Reporter
from commitment_eval.reporting.file_reporter import FileReporter


def _uniform(n: int, score: float) -> SuccessOutcome:
    m = AttemptMetrics(clarity=score, conventional_format=score, scope=score, specificity=score)
    return SuccessOutcome.from_metrics(n, f"fix: attempt {n} output", m)


def _result(score: float) -> EvalResult:
    return EvalResult(
        attempts=(_uniform(1, score), _uniform(2, score), _uniform(3, score)),
        best_attempt=1,
        consistency_score=10.0,
        error_rate_impact=0.0,
        final_score=score,
        success_rate="3/3",
        reasoning="Consistent.",
    )


def _fixture(name: str) -> Fixture:
    return Fixture(name=name, diff=f"diff for {name}", status="M  src/app.py\n")


class StubAttemptRunner:
    """Returns three uniform successes per agent, or raises a scripted error."""

    def __init__(self, scores: dict[str, float], errors: dict[tuple[str, str], Exception] | None = None):
        self.scores = scores
        self.errors = errors or {}
        self.calls: list[tuple[str, str]] = []

    def run_attempts(self, agent, fixture):
        self.calls.append((fixture.name, agent))
        error = self.errors.get((fixture.name, agent))
        if error is not None:
            raise error
        s = self.scores[agent]
        return (_uniform(1, s), _uniform(2, s), _uniform(3, s))


class RecordingReporter(Reporter):
    def __init__(self, fail_on: tuple[str, str] | None = None, on_save=None):
        self.saved: list[tuple[str, str, float]] = []
        self.reports: list[list] = []
        self.fail_on = fail_on
        self.on_save = on_save

    def save_results(self, result, fixture, agent):
        if (fixture, agent) == self.fail_on:
            raise OSError("disk full")
        self.saved.append((fixture, agent, result.final_score))
        if self.on_save is not None:
            self.on_save(fixture, agent)

    def generate_report(self, comparisons):
        self.reports.append(list(comparisons))


class OfflineJudge(HeuristicJudge):
    """Heuristic scoring and no meta-evaluation, so results use the fallback mean."""


def _runner(scores=None, errors=None, reporter=None, **kwargs):
    attempt_runner = StubAttemptRunner(scores or {"claude": 8.5, "codex": 7.0}, errors)
    reporter = reporter or RecordingReporter()
    runner = EvalRunner(attempt_runner, MetaEvaluator(OfflineJudge()), reporter, **kwargs)
    return runner, attempt_runner, reporter


class TestDetermineWinner:
    def test_higher_score_wins(self):
        assert determine_winner(_result(8.5), _result(7.0)) == Winner.AGENT_A
        assert determine_winner(_result(7.0), _result(8.5)) == Winner.AGENT_B

    def test_close_scores_tie(self):
        assert determine_winner(_result(8.5), _result(8.3)) == Winner.TIE
        assert determine_winner(_result(0.0), _result(0.0)) == Winner.TIE

    def test_threshold_is_strict(self):
        assert determine_winner(_result(8.5), _result(8.0)) == Winner.AGENT_A

    def test_missing_result(self):
        assert determine_winner(None, _result(8.0)) is None
        assert determine_winner(_result(8.0), None) is None

    def test_custom_threshold(self):
        assert determine_winner(_result(8.5), _result(7.0), tie_threshold=2.0) == Winner.TIE


class TestEvalRunnerConstruction:
    @pytest.mark.parametrize("agents", [("claude",), ("claude", "claude"), ("a", "b", "c")])
    def test_requires_two_distinct_agents(self, agents):
        with pytest.raises(ConfigurationError):
            _runner(agents=agents)

    def test_policy_from_string(self):
        runner, _, _ = _runner(failure_policy="skip_fixture")
        assert runner.failure_policy is FailurePolicy.SKIP_FIXTURE


class TestEvalRunnerBatch:
    def test_runs_fixtures_in_order(self):
        runner, attempts, reporter = _runner()
        comparisons = runner.run([_fixture("one"), _fixture("two")])

        assert [c.fixture for c in comparisons] == ["one", "two"]
        assert attempts.calls == [
            ("one", "claude"),
            ("one", "codex"),
            ("two", "claude"),
            ("two", "codex"),
        ]
        assert [(f, a) for f, a, _ in reporter.saved] == attempts.calls
        assert all(c.winner == Winner.AGENT_A for c in comparisons)
        assert comparisons[0].winner_name == "claude"

    def test_report_generated_once(self):
        runner, _, reporter = _runner()
        comparisons = runner.run([_fixture("one"), _fixture("two")])
        assert len(reporter.reports) == 1
        assert reporter.reports[0] == comparisons

    def test_empty_batch_still_reports(self):
        runner, _, reporter = _runner()
        assert runner.run([]) == []
        assert reporter.reports == [[]]

    def test_tie(self):
        runner, _, _ = _runner(scores={"claude": 8.5, "codex": 8.3})
        (comparison,) = runner.run([_fixture("one")])
        assert comparison.winner == Winner.TIE

    def test_agent_order_follows_config(self):
        runner, attempts, _ = _runner(agents=("codex", "claude"))
        (comparison,) = runner.run([_fixture("one")])
        assert attempts.calls == [("one", "codex"), ("one", "claude")]
        assert comparison.agent_a == "codex"
        assert comparison.winner == Winner.AGENT_B


class TestRunFixture:
    def test_single_agent(self):
        runner, attempts, reporter = _runner()
        comparison = runner.run_fixture(_fixture("one"), agent="codex")
        assert attempts.calls == [("one", "codex")]
        assert comparison.agent_a_result is None
        assert comparison.agent_b_result.final_score == pytest.approx(7.0)
        assert comparison.winner is None
        assert reporter.reports == []

    def test_unknown_agent(self):
        runner, _, _ = _runner()
        with pytest.raises(ConfigurationError):
            runner.run_fixture(_fixture("one"), agent="gemini")

    def test_run_with_agent_filter(self):
        runner, attempts, _ = _runner()
        comparisons = runner.run([_fixture("one"), _fixture("two")], agent="claude")
        assert attempts.calls == [("one", "claude"), ("two", "claude")]
        assert all(c.winner is None for c in comparisons)


class TestFailurePolicy:
    def test_continue_records_gap(self):
        reporter = RecordingReporter(fail_on=("one", "claude"))
        runner, attempts, _ = _runner(reporter=reporter)
        comparisons = runner.run([_fixture("one"), _fixture("two")])

        assert comparisons[0].agent_a_result is None
        assert comparisons[0].agent_b_result is not None
        assert comparisons[0].winner is None
        assert comparisons[1].winner == Winner.AGENT_A
        assert ("one", "codex") in attempts.calls
        # The failed save never made it into the saved results
        assert ("one", "claude") not in [(f, a) for f, a, _ in reporter.saved]

    def test_skip_fixture_leaves_remaining_agents(self):
        errors = {("one", "claude"): RuntimeError("agent crashed")}
        runner, attempts, _ = _runner(errors=errors, failure_policy=FailurePolicy.SKIP_FIXTURE)
        comparisons = runner.run([_fixture("one"), _fixture("two")])

        assert ("one", "codex") not in attempts.calls
        assert comparisons[0].agent_a_result is None
        assert comparisons[0].agent_b_result is None
        assert comparisons[1].agent_a_result is not None
        assert comparisons[1].agent_b_result is not None

    def test_abort_reraises(self):
        errors = {("one", "codex"): RuntimeError("agent crashed")}
        runner, _, reporter = _runner(errors=errors, failure_policy=FailurePolicy.ABORT)
        with pytest.raises(RuntimeError, match="agent crashed"):
            runner.run([_fixture("one"), _fixture("two")])
        assert reporter.reports == []

    @pytest.mark.parametrize("policy", list(FailurePolicy))
    def test_invariant_violation_always_propagates(self, policy):
        errors = {("one", "claude"): InvariantViolation("broken contract")}
        runner, _, _ = _runner(errors=errors, failure_policy=policy)
        with pytest.raises(InvariantViolation):
            runner.run([_fixture("one")])


class TestGracefulStop:
    def test_stop_after_in_flight_agent(self):
        holder = {}

        def stop_after_first(fixture, agent):
            holder["runner"].request_stop()

        reporter = RecordingReporter(on_save=stop_after_first)
        runner, attempts, _ = _runner(reporter=reporter)
        holder["runner"] = runner

        comparisons = runner.run([_fixture("one"), _fixture("two")])

        assert attempts.calls == [("one", "claude")]
        assert len(comparisons) == 1
        assert comparisons[0].agent_a_result is not None
        assert comparisons[0].agent_b_result is None
        assert comparisons[0].winner is None
        assert reporter.reports == [comparisons]
        assert runner.stop_requested

    def test_stop_before_run(self):
        runner, attempts, reporter = _runner()
        runner.request_stop()
        assert runner.run([_fixture("one")]) == []
        assert attempts.calls == []
        assert reporter.reports == [[]]


class FakeLoader:
    def __init__(self, fixtures: dict[str, Fixture]):
        self.fixtures = fixtures
        self.modes: list[str | None] = []

    def load(self, name, mode=None):
        self.modes.append(mode)
        if name not in self.fixtures:
            raise ConfigurationError.missing_fixture(name)
        return self.fixtures[name]

    def list(self, mode=None):
        return sorted(self.fixtures)


class TestRunNamed:
    def test_missing_fixture_is_skipped(self):
        loader = FakeLoader({"one": _fixture("one"), "two": _fixture("two")})
        runner, _, _ = _runner()
        comparisons = runner.run_named(["one", "missing", "two"], loader)
        assert [c.fixture for c in comparisons] == ["one", "two"]

    def test_run_all_uses_listing(self):
        loader = FakeLoader({"b": _fixture("b"), "a": _fixture("a")})
        runner, _, _ = _runner()
        comparisons = runner.run_all(loader, mode="mocked")
        assert [c.fixture for c in comparisons] == ["a", "b"]
        assert loader.modes == ["mocked", "mocked"]


# --- End-to-end with the bundled fixture ---

GOOD = (
    "fix(parser): handle None input in parse_input\n\n"
    "- Default missing text to an empty string\n"
    "- Keep the empty-input ValueError"
)


class CannedGenerator(Generator):
    def __init__(self, text: str):
        self.text = text

    def generate(self, task, context):
        return self.text


class TestEndToEndSimple:
    def test_simple_fixture(self, tmp_path):
        generators = {
            "claude": CannedGenerator(f"{COMMIT_START_MARKER}\n{GOOD}\n{COMMIT_END_MARKER}"),
            "codex": CannedGenerator("fix: stuff"),
        }
        judge = HeuristicJudge()
        reporter = FileReporter(tmp_path, run_name="run")
        runner = EvalRunner(
            AttemptRunner(generators.__getitem__, judge),
            MetaEvaluator(judge),
            reporter,
        )

        (comparison,) = runner.run([load_fixture("simple")])

        claude = comparison.agent_a_result
        codex = comparison.agent_b_result
        assert claude.success_rate == "3/3"
        assert claude.final_score == pytest.approx(9.5)
        assert claude.fallback is True
        assert codex.final_score == pytest.approx(6.75)
        assert comparison.winner == Winner.AGENT_A
        assert (tmp_path / "run" / "simple-claude.json").exists()
        assert (tmp_path / "run" / "simple-codex.json").exists()
        assert (tmp_path / "latest-report.md").exists()

    def test_all_attempts_failing(self, tmp_path):
        class Missing(Generator):
            def generate(self, task, context):
                raise GenerationError.unavailable("ghost", "ghost")

        judge = HeuristicJudge()
        runner = EvalRunner(
            AttemptRunner(lambda agent: Missing(), judge),
            MetaEvaluator(judge),
            FileReporter(tmp_path),
        )
        (comparison,) = runner.run([load_fixture("simple")])

        for result in (comparison.agent_a_result, comparison.agent_b_result):
            assert result.success_rate == "0/3"
            assert result.final_score == 0.0
            assert result.best_attempt is None
            assert result.error_rate_impact == -10.0
        assert comparison.winner == Winner.TIE


class SequenceGenerator(Generator):
    def __init__(self, texts):
        self.texts = list(texts)

    def generate(self, task, context):
        return self.texts.pop(0)


class PartialJudge(Judge):
    """Scores by message; meta-evaluates only clean 3/3 runs and is unreachable otherwise."""

    def __init__(self, scores: dict[str, float]):
        self.scores = scores
        self.meta_calls = 0

    def score_attempt(self, commit_message, diff, status, fixture_name=""):
        s = self.scores[commit_message]
        return AttemptScore(
            metrics=AttemptMetrics(clarity=s, conventional_format=s, scope=s, specificity=s)
        )

    def meta_evaluate(self, attempts, diff, fixture_name):
        self.meta_calls += 1
        if not all(isinstance(a, SuccessOutcome) for a in attempts):
            raise JudgeUnavailableError("connection refused")
        return MetaEvaluation(
            consistency_score=9.0,
            error_rate_impact=0.0,
            final_score=8.5,
            success_rate="3/3",
            reasoning="Three consistent, well-scoped messages.",
            best_attempt=1,
        )


class TestMixedJudgePaths:
    def test_primary_for_one_agent_fallback_for_the_other(self):
        b_message = "fix: update parser input handling"
        generators = {
            "claude": SequenceGenerator([GOOD, GOOD, GOOD]),
            "codex": SequenceGenerator([b_message, "updated the parser", b_message]),
        }
        judge = PartialJudge({GOOD: 9.0, b_message: 7.0})
        reporter = RecordingReporter()
        runner = EvalRunner(
            AttemptRunner(generators.__getitem__, judge),
            MetaEvaluator(judge),
            reporter,
        )

        (comparison,) = runner.run([load_fixture("simple")])

        claude = comparison.agent_a_result
        assert claude.fallback is False
        assert claude.final_score == 8.5
        assert claude.consistency_score == 9.0
        assert claude.success_rate == "3/3"

        codex = comparison.agent_b_result
        assert codex.fallback is True
        assert codex.success_rate == "2/3"
        assert codex.attempts[1].failure_type == FailureType.VALIDATION
        assert codex.final_score == pytest.approx(7.0)
        assert codex.error_rate_impact == -1.0
        assert codex.best_attempt == 1
        assert codex.reasoning.startswith("[FALLBACK]")

        assert comparison.winner == Winner.AGENT_A
        assert judge.meta_calls == 2
        assert [(f, a) for f, a, _ in reporter.saved] == [("simple", "claude"), ("simple", "codex")]
        assert len(reporter.reports) == 1
