"""Holistic scoring of an agent's three attempts on one fixture.

Primary path: ask the Judge for a meta-evaluation and check every value
against the attempts. Fallback path: when the Judge is unavailable or its
answer is unusable, compute a deterministic result from the attempts alone.
Any Judge exception other than InvariantViolation takes the fallback path.

Public API:
    MetaEvaluator: Turns three attempt outcomes into an EvalResult
    FALLBACK_CONSISTENCY_SCORE: Consistency reported by the fallback path
    FALLBACK_REASONING: Reasoning text reported by the fallback path
    fallback_error_rate_impact: Fixed penalty table used by the fallback path
    fallback_result: The deterministic fallback computation
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..judge.base import Judge, MetaEvaluation
from .errors import InvariantViolation, JudgeOutputError
from .models import (
    AttemptOutcome,
    EvalResult,
    FailureOutcome,
    SuccessOutcome,
    check_attempts,
    success_rate_for,
)

logger = logging.getLogger(__name__)

FALLBACK_CONSISTENCY_SCORE = 0.0
FALLBACK_REASONING = (
    "[FALLBACK] Meta-evaluation unavailable. Final score is the mean of successful "
    "attempt scores; error rate impact uses the fixed failure penalty table; "
    "consistency was not assessed."
)

# failures -> penalty, mirroring the ranges the judge is asked to use
_FALLBACK_PENALTIES = {0: 0.0, 1: -1.0, 2: -3.0, 3: -10.0}


def fallback_error_rate_impact(failures: int) -> float:
    """Penalty for ``failures`` failed attempts (0 to 3)."""
    try:
        return _FALLBACK_PENALTIES[failures]
    except KeyError as e:
        raise InvariantViolation(f"Failure count must be 0-3, got {failures}") from e


def fallback_result(attempts: Sequence[AttemptOutcome]) -> EvalResult:
    """Deterministic EvalResult computed from the attempts alone."""
    successes = [a for a in attempts if isinstance(a, SuccessOutcome)]
    failures = [a for a in attempts if isinstance(a, FailureOutcome)]

    if successes:
        final_score = sum(s.overall_score for s in successes) / len(successes)
        # max() keeps the first of equal scores, so ties go to the lower number
        best_attempt: int | None = max(successes, key=lambda s: s.overall_score).attempt_number
    else:
        final_score = 0.0
        best_attempt = None

    return EvalResult(
        attempts=tuple(attempts),
        best_attempt=best_attempt,
        consistency_score=FALLBACK_CONSISTENCY_SCORE,
        error_rate_impact=fallback_error_rate_impact(len(failures)),
        final_score=final_score,
        success_rate=success_rate_for(attempts),
        reasoning=FALLBACK_REASONING,
        fallback=True,
    )


def _result_from_judge(attempts: Sequence[AttemptOutcome], meta: MetaEvaluation) -> EvalResult:
    """Build an EvalResult from the Judge's answer, rejecting inconsistent values."""
    expected_rate = success_rate_for(attempts)
    if meta.success_rate != expected_rate:
        raise JudgeOutputError(
            f"Judge success_rate {meta.success_rate!r} does not match attempts ({expected_rate})"
        )
    try:
        return EvalResult(
            attempts=tuple(attempts),
            best_attempt=meta.best_attempt,
            consistency_score=meta.consistency_score,
            error_rate_impact=meta.error_rate_impact,
            final_score=meta.final_score,
            success_rate=meta.success_rate,
            reasoning=meta.reasoning,
        )
    except InvariantViolation as e:
        raise JudgeOutputError(f"Judge meta-evaluation is inconsistent: {e}") from e


class MetaEvaluator:
    """Score three attempts holistically with the Judge, or deterministically without it.

    Args:
        judge: Judge providing meta-evaluations
    """

    def __init__(self, judge: Judge):
        self.judge = judge

    def evaluate(
        self,
        attempts: Sequence[AttemptOutcome],
        diff: str,
        fixture_name: str,
    ) -> EvalResult:
        """Return the EvalResult for ``attempts``.

        Raises:
            InvariantViolation: If attempts are not exactly 3, numbered 1, 2, 3
        """
        check_attempts(attempts)

        try:
            meta = self.judge.meta_evaluate(attempts, diff, fixture_name)
            result = _result_from_judge(attempts, meta)
        except InvariantViolation:
            raise
        except Exception as e:
            logger.warning(
                "Meta-evaluation for %s failed (%s), using fallback scoring: %s",
                fixture_name,
                getattr(e, "code", type(e).__name__),
                str(e).splitlines()[0] if str(e) else type(e).__name__,
            )
            return fallback_result(attempts)

        logger.debug(
            "Meta-evaluation for %s: %.2f (%s)",
            fixture_name,
            result.final_score,
            result.success_rate,
        )
        return result


__all__ = [
    "MetaEvaluator",
    "FALLBACK_CONSISTENCY_SCORE",
    "FALLBACK_REASONING",
    "fallback_error_rate_impact",
    "fallback_result",
]
