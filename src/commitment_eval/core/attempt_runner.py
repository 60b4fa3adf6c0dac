"""Runs three independent commit message attempts for one agent on one fixture.

Philosophy:
- Every attempt runs: a failure is recorded as a FailureOutcome and never
  stops the attempts after it
- Same checks for every agent: cleaning, artifact detection and
  conventional-commit validation happen here, not in the Generator
- Collaborator errors end at this boundary: Generator and Judge failures
  become data, only InvariantViolation escapes

Public API:
    AttemptRunner: Produces exactly 3 ordered attempt outcomes
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from ..generators.base import GenerationContext, GenerationTask, Generator
from ..judge.base import Judge
from ..judge.heuristic import HeuristicJudge
from .commit_format import (
    categorize_error,
    clean_ai_response,
    find_artifacts,
    validate_conventional_commit,
)
from .errors import InvariantViolation
from .models import (
    ATTEMPTS_PER_AGENT,
    AttemptOutcome,
    FailureOutcome,
    FailureType,
    Fixture,
    SuccessOutcome,
)

logger = logging.getLogger(__name__)


def _check_fixture(fixture: Fixture) -> None:
    if not isinstance(fixture, Fixture):
        raise InvariantViolation(f"Expected a Fixture, got {type(fixture).__name__}")
    if not isinstance(fixture.name, str) or not fixture.name.strip():
        raise InvariantViolation("Fixture name must be a non-empty string")
    if not isinstance(fixture.diff, str):
        raise InvariantViolation(f"Fixture {fixture.name!r} diff must be a string")
    if not isinstance(fixture.status, str):
        raise InvariantViolation(f"Fixture {fixture.name!r} status must be a string")


class AttemptRunner:
    """Execute the fixed number of attempts for an agent and score each one.

    Args:
        generator_for: Returns the Generator for an agent name
        judge: Judge used to score successful attempts
        fallback_scorer: Judge used when ``judge`` raises
        workdir: Working directory handed to Generators
    """

    def __init__(
        self,
        generator_for: Callable[[str], Generator],
        judge: Judge,
        fallback_scorer: Judge | None = None,
        workdir: str = "/tmp",
    ):
        self.generator_for = generator_for
        self.judge = judge
        self.fallback_scorer = fallback_scorer or HeuristicJudge()
        self.workdir = workdir

    def run_attempts(self, agent_name: str, fixture: Fixture) -> tuple[AttemptOutcome, ...]:
        """Run attempts 1, 2, 3 in order and return their outcomes.

        Raises:
            InvariantViolation: If the fixture is malformed
        """
        _check_fixture(fixture)
        generator = self.generator_for(agent_name)

        task = GenerationTask(
            title=f"Changes for {fixture.name}",
            description=fixture.description or f"Describe the staged changes in {fixture.name}",
            produces=fixture.changed_files(),
        )
        context = GenerationContext(diff=fixture.diff, status=fixture.status, workdir=self.workdir)

        outcomes: list[AttemptOutcome] = []
        for attempt_number in range(1, ATTEMPTS_PER_AGENT + 1):
            logger.info(
                "%s on %s: attempt %d/%d",
                agent_name,
                fixture.name,
                attempt_number,
                ATTEMPTS_PER_AGENT,
            )
            outcome = self._run_one(attempt_number, agent_name, generator, task, context, fixture)
            if isinstance(outcome, SuccessOutcome):
                logger.info(
                    "  attempt %d succeeded: %.2f/10 (%dms)",
                    attempt_number,
                    outcome.overall_score,
                    outcome.response_time_ms,
                )
            else:
                logger.warning(
                    "  attempt %d failed (%s): %s",
                    attempt_number,
                    outcome.failure_type.value,
                    outcome.failure_reason.splitlines()[0],
                )
            outcomes.append(outcome)

        return tuple(outcomes)

    def _run_one(
        self,
        attempt_number: int,
        agent_name: str,
        generator: Generator,
        task: GenerationTask,
        context: GenerationContext,
        fixture: Fixture,
    ) -> AttemptOutcome:
        start = time.time()

        def elapsed_ms() -> int:
            return int((time.time() - start) * 1000)

        def failure(failure_type: FailureType, reason: str) -> FailureOutcome:
            return FailureOutcome(
                attempt_number=attempt_number,
                failure_type=failure_type,
                failure_reason=reason,
                response_time_ms=elapsed_ms(),
            )

        try:
            raw = generator.generate(task, context)
        except InvariantViolation:
            raise
        except Exception as e:
            return failure(categorize_error(e), str(e) or type(e).__name__)

        if not isinstance(raw, str):
            return failure(
                FailureType.GENERATION,
                f"Agent returned {type(raw).__name__} instead of text",
            )
        if not raw.strip():
            return failure(FailureType.GENERATION, "Agent returned an empty response")

        message = clean_ai_response(raw)
        artifacts = find_artifacts(message)
        if artifacts:
            return failure(
                FailureType.CLEANING,
                f"Response still contains AI artifacts after cleaning: {', '.join(artifacts)}",
            )
        if not message:
            return failure(FailureType.CLEANING, "Response was empty after cleaning")
        if not validate_conventional_commit(message):
            header = message.split("\n", 1)[0][:100]
            return failure(
                FailureType.VALIDATION,
                f"Invalid conventional commit format: {header!r}",
            )

        score = self._score(message, fixture)
        if score is None:
            return failure(FailureType.API_ERROR, "No judge could score the commit message")

        return SuccessOutcome.from_metrics(
            attempt_number=attempt_number,
            commit_message=message,
            metrics=score.metrics,
            response_time_ms=elapsed_ms(),
            feedback=score.feedback,
        )

    def _score(self, message: str, fixture: Fixture):
        try:
            return self.judge.score_attempt(message, fixture.diff, fixture.status, fixture.name)
        except InvariantViolation:
            raise
        except Exception as e:
            logger.warning(
                "%s could not score attempt, using %s: %s",
                self.judge.name,
                self.fallback_scorer.name,
                e,
            )
        try:
            return self.fallback_scorer.score_attempt(
                message, fixture.diff, fixture.status, fixture.name
            )
        except InvariantViolation:
            raise
        except Exception as e:
            logger.warning("Fallback scorer %s failed: %s", self.fallback_scorer.name, e)
            return None


__all__ = ["AttemptRunner"]
