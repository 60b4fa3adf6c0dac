"""Tests for the evaluation data model and its invariants."""

from __future__ import annotations

import pytest

from commitment_eval.core.errors import InvariantViolation
from commitment_eval.core.models import (
    AttemptMetrics,
    EvalComparison,
    EvalResult,
    FailureOutcome,
    FailureType,
    Fixture,
    SuccessOutcome,
    Winner,
    check_attempts,
    outcome_from_dict,
    success_rate_for,
)


def _metrics(score: float = 8.0) -> AttemptMetrics:
    return AttemptMetrics(clarity=score, conventional_format=score, scope=score, specificity=score)


def _success(n: int, score: float = 8.0) -> SuccessOutcome:
    return SuccessOutcome.from_metrics(n, "fix: handle empty input", _metrics(score))


def _failure(n: int, failure_type: FailureType = FailureType.GENERATION) -> FailureOutcome:
    return FailureOutcome(attempt_number=n, failure_type=failure_type, failure_reason="boom")


# --- AttemptMetrics ---


class TestAttemptMetrics:
    def test_mean(self):
        m = AttemptMetrics(clarity=8.0, conventional_format=9.0, scope=8.5, specificity=8.5)
        assert m.mean() == pytest.approx(8.5)

    def test_bounds_inclusive(self):
        AttemptMetrics(clarity=0, conventional_format=10, scope=0.0, specificity=10.0)

    @pytest.mark.parametrize("bad", [-0.1, 10.01, float("nan"), "8", None, True])
    def test_rejects_out_of_range_or_non_numeric(self, bad):
        with pytest.raises(InvariantViolation):
            AttemptMetrics(clarity=bad, conventional_format=8, scope=8, specificity=8)

    def test_from_dict_missing_key(self):
        with pytest.raises(InvariantViolation, match="specificity"):
            AttemptMetrics.from_dict({"clarity": 8, "conventional_format": 8, "scope": 8})


# --- Attempt outcomes ---


class TestSuccessOutcome:
    def test_from_metrics_sets_mean(self):
        m = AttemptMetrics(clarity=8.0, conventional_format=9.0, scope=8.0, specificity=9.0)
        s = SuccessOutcome.from_metrics(1, "feat: add parser", m, response_time_ms=120)
        assert s.overall_score == pytest.approx(8.5)
        assert s.status == "success"
        assert s.response_time_ms == 120

    def test_overall_score_must_match_mean(self):
        with pytest.raises(InvariantViolation, match="mean"):
            SuccessOutcome(
                attempt_number=1,
                commit_message="fix: x y z",
                metrics=_metrics(8.0),
                overall_score=9.0,
            )

    def test_empty_message_rejected(self):
        with pytest.raises(InvariantViolation):
            SuccessOutcome.from_metrics(1, "   ", _metrics())

    @pytest.mark.parametrize("n", [0, 4, -1])
    def test_attempt_number_range(self, n):
        with pytest.raises(InvariantViolation):
            _success(n)


class TestFailureOutcome:
    def test_accepts_raw_string_type(self):
        f = FailureOutcome(attempt_number=2, failure_type="cleaning", failure_reason="x")
        assert f.failure_type is FailureType.CLEANING
        assert f.status == "failure"

    def test_unknown_type_rejected(self):
        with pytest.raises(InvariantViolation, match="failure_type"):
            FailureOutcome(attempt_number=1, failure_type="bogus", failure_reason="x")

    def test_empty_reason_rejected(self):
        with pytest.raises(InvariantViolation):
            FailureOutcome(attempt_number=1, failure_type=FailureType.VALIDATION, failure_reason="")

    def test_dict_round_trip(self):
        f = _failure(3, FailureType.API_ERROR)
        assert outcome_from_dict(f.to_dict()) == f

    def test_unknown_status(self):
        with pytest.raises(InvariantViolation, match="status"):
            outcome_from_dict({"status": "pending", "attempt_number": 1})


# --- Attempt sequences ---


class TestCheckAttempts:
    def test_valid(self):
        check_attempts([_success(1), _failure(2), _success(3)])

    @pytest.mark.parametrize("count", [0, 2, 4])
    def test_wrong_count(self, count):
        attempts = [_success(i % 3 + 1) for i in range(count)]
        with pytest.raises(InvariantViolation) as exc_info:
            check_attempts(attempts)
        assert exc_info.value.code == "INVALID_ATTEMPT_COUNT"

    def test_out_of_order(self):
        with pytest.raises(InvariantViolation, match="position 1"):
            check_attempts([_success(2), _success(1), _success(3)])

    def test_not_an_outcome(self):
        with pytest.raises(InvariantViolation):
            check_attempts([_success(1), {"status": "success"}, _success(3)])

    def test_success_rate(self):
        assert success_rate_for([_success(1), _failure(2), _success(3)]) == "2/3"
        assert success_rate_for([_failure(1), _failure(2), _failure(3)]) == "0/3"


# --- EvalResult ---


class TestEvalResult:
    def _result(self, **overrides) -> EvalResult:
        fields = dict(
            attempts=(_success(1, 8.0), _success(2, 9.0), _failure(3)),
            best_attempt=2,
            consistency_score=7.0,
            error_rate_impact=-1.0,
            final_score=7.5,
            success_rate="2/3",
            reasoning="Two good attempts, one failure.",
        )
        fields.update(overrides)
        return EvalResult(**fields)

    def test_valid(self):
        r = self._result()
        assert len(r.successes) == 2
        assert len(r.failures) == 1
        assert r.fallback is False

    def test_success_rate_mismatch(self):
        with pytest.raises(InvariantViolation, match="success_rate"):
            self._result(success_rate="3/3")

    def test_best_attempt_must_be_success(self):
        with pytest.raises(InvariantViolation, match="best_attempt"):
            self._result(best_attempt=3)

    def test_best_attempt_required_with_successes(self):
        with pytest.raises(InvariantViolation):
            self._result(best_attempt=None)

    def test_positive_error_rate_impact(self):
        with pytest.raises(InvariantViolation, match="error_rate_impact"):
            self._result(error_rate_impact=0.5)

    def test_empty_reasoning(self):
        with pytest.raises(InvariantViolation, match="reasoning"):
            self._result(reasoning="  ")

    def test_zero_successes(self):
        r = EvalResult(
            attempts=(_failure(1), _failure(2), _failure(3)),
            best_attempt=None,
            consistency_score=0.0,
            error_rate_impact=-10.0,
            final_score=0.0,
            success_rate="0/3",
            reasoning="All attempts failed.",
        )
        assert r.successes == []

    def test_zero_successes_requires_zero_final_score(self):
        with pytest.raises(InvariantViolation, match="final_score"):
            EvalResult(
                attempts=(_failure(1), _failure(2), _failure(3)),
                consistency_score=0.0,
                error_rate_impact=-10.0,
                final_score=2.0,
                success_rate="0/3",
                reasoning="All attempts failed.",
            )

    def test_dict_round_trip(self):
        r = self._result()
        assert EvalResult.from_dict(r.to_dict()) == r

    def test_attempts_stored_as_tuple(self):
        r = self._result(attempts=[_success(1, 8.0), _success(2, 9.0), _failure(3)])
        assert isinstance(r.attempts, tuple)


# --- EvalComparison ---


class TestEvalComparison:
    def _result(self, score: float) -> EvalResult:
        return EvalResult(
            attempts=(_success(1, score), _success(2, score), _success(3, score)),
            best_attempt=1,
            consistency_score=10.0,
            error_rate_impact=0.0,
            final_score=score,
            success_rate="3/3",
            reasoning="Consistent.",
        )

    def test_winner_requires_both_results(self):
        with pytest.raises(InvariantViolation, match="winner"):
            EvalComparison(
                fixture="simple",
                agent_a="claude",
                agent_b="codex",
                agent_a_result=self._result(8.0),
                winner=Winner.AGENT_A,
            )

    def test_winner_name(self):
        c = EvalComparison(
            fixture="simple",
            agent_a="claude",
            agent_b="codex",
            agent_a_result=self._result(8.0),
            agent_b_result=self._result(7.0),
            winner=Winner.AGENT_A,
        )
        assert c.winner_name == "claude"
        assert c.result_for("codex").final_score == 7.0

    def test_tie_and_missing_winner_names(self):
        tie = EvalComparison(
            fixture="simple",
            agent_a="claude",
            agent_b="codex",
            agent_a_result=self._result(8.0),
            agent_b_result=self._result(8.0),
            winner="tie",
        )
        assert tie.winner is Winner.TIE
        assert tie.winner_name == "tie"
        gap = EvalComparison(fixture="simple", agent_a="claude", agent_b="codex")
        assert gap.winner_name is None

    def test_result_for_unknown_agent(self):
        c = EvalComparison(fixture="simple", agent_a="claude", agent_b="codex")
        with pytest.raises(KeyError):
            c.result_for("gemini")

    def test_dict_round_trip_with_gap(self):
        c = EvalComparison(
            fixture="simple",
            agent_a="claude",
            agent_b="codex",
            agent_a_result=self._result(8.0),
        )
        assert EvalComparison.from_dict(c.to_dict()) == c


class TestFixture:
    def test_changed_files(self):
        f = Fixture(name="x", diff="", status="M  src/a.py\nA  src/b.py\n?? notes.txt\n\n")
        assert f.changed_files() == ["src/a.py", "src/b.py", "notes.txt"]
