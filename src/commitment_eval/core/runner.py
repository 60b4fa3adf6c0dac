"""Evaluation runner comparing two commit message agents across fixtures.

Philosophy:
- Same treatment for both agents: each gets 3 attempts per fixture, then a
  holistic meta-evaluation
- Sequential and deterministic: fixtures in input order, agents in
  configured order, attempts 1-3
- Keep going by default: an unexpected error on one agent is recorded as a
  gap in the comparison, governed by FailurePolicy
- Stoppable: request_stop() finishes the in-flight agent, then stops cleanly
  and still writes the batch report

Public API:
    EvalRunner: Runs fixtures through AttemptRunner, MetaEvaluator and Reporter
    FailurePolicy: What to do when evaluating one agent raises unexpectedly
    determine_winner: Head-to-head winner rule
    TIE_THRESHOLD: Default score gap below which a comparison is a tie

Usage:
    commitment-eval run --fixture simple
    commitment-eval run --mode live --agents claude,gemini
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Iterable, Iterator, Protocol, Sequence

from ..reporting.base import Reporter
from .attempt_runner import AttemptRunner
from .errors import ConfigurationError, InvariantViolation
from .meta_evaluator import MetaEvaluator
from .models import EvalComparison, EvalResult, Fixture, Winner

logger = logging.getLogger(__name__)

TIE_THRESHOLD = 0.5
DEFAULT_AGENTS = ("claude", "codex")


class FailurePolicy(str, Enum):
    """How EvalRunner reacts to an unexpected error while evaluating one agent."""

    CONTINUE = "continue"
    SKIP_FIXTURE = "skip_fixture"
    ABORT = "abort"


class FixtureSource(Protocol):
    """Anything that can load fixtures by name and list the available ones."""

    def load(self, name: str, mode: str | None = None) -> Fixture: ...

    def list(self, mode: str | None = None) -> list[str]: ...


def determine_winner(
    a: EvalResult | None,
    b: EvalResult | None,
    tie_threshold: float = TIE_THRESHOLD,
) -> Winner | None:
    """Winner of a head-to-head comparison.

    Tie when the final scores differ by less than ``tie_threshold``,
    otherwise the higher final score wins. None when either result is missing.
    """
    if a is None or b is None:
        return None
    if abs(a.final_score - b.final_score) < tie_threshold:
        return Winner.TIE
    return Winner.AGENT_A if a.final_score > b.final_score else Winner.AGENT_B


class EvalRunner:
    """Compare two agents on a batch of fixtures.

    For every fixture and each agent: run 3 attempts, meta-evaluate them,
    persist the result. Then pick a winner and, once per batch, generate
    the report.

    Args:
        attempt_runner: Runs and scores the 3 attempts
        meta_evaluator: Turns the attempts into an EvalResult
        reporter: Persists results and writes the batch report
        agents: The two agent names to compare, in evaluation order
        failure_policy: Reaction to unexpected errors (default: continue)
        tie_threshold: Score gap below which a comparison is a tie

    Example::

        runner = EvalRunner(attempt_runner, MetaEvaluator(judge), FileReporter(".eval-results"))
        comparisons = runner.run([load_fixture("simple")])
    """

    def __init__(
        self,
        attempt_runner: AttemptRunner,
        meta_evaluator: MetaEvaluator,
        reporter: Reporter,
        agents: Sequence[str] = DEFAULT_AGENTS,
        failure_policy: FailurePolicy | str = FailurePolicy.CONTINUE,
        tie_threshold: float = TIE_THRESHOLD,
    ):
        agents = tuple(agents)
        if len(agents) != 2 or agents[0] == agents[1]:
            raise ConfigurationError(
                f"Exactly two distinct agents are required, got {list(agents)}",
                code="INVALID_AGENTS",
            )
        self.attempt_runner = attempt_runner
        self.meta_evaluator = meta_evaluator
        self.reporter = reporter
        self.agents: tuple[str, str] = (agents[0], agents[1])
        self.failure_policy = FailurePolicy(failure_policy)
        self.tie_threshold = tie_threshold
        self._stop = threading.Event()

    # -- stop handling -----------------------------------------------------

    def request_stop(self) -> None:
        """Stop after the in-flight agent evaluation. Safe to call from a signal handler."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    # -- batch entry points ------------------------------------------------

    def run(self, fixtures: Iterable[Fixture], agent: str | None = None) -> list[EvalComparison]:
        """Evaluate every fixture and generate the batch report.

        Args:
            fixtures: Fixtures in evaluation order
            agent: Evaluate only this agent (the other side is left empty)

        Returns:
            One EvalComparison per evaluated fixture, in input order
        """
        comparisons: list[EvalComparison] = []
        for fixture in fixtures:
            if self.stop_requested:
                logger.warning("Stop requested, skipping remaining fixtures")
                break
            comparisons.append(self.run_fixture(fixture, agent=agent))

        logger.info("Evaluated %d fixture(s), generating report", len(comparisons))
        self.reporter.generate_report(comparisons)
        return comparisons

    def run_named(
        self,
        names: Iterable[str],
        loader: FixtureSource,
        mode: str | None = None,
        agent: str | None = None,
    ) -> list[EvalComparison]:
        """Load fixtures by name and run them. Unloadable fixtures are skipped."""
        return self.run(self._load_each(names, loader, mode), agent=agent)

    def run_all(
        self,
        loader: FixtureSource,
        mode: str | None = None,
        agent: str | None = None,
    ) -> list[EvalComparison]:
        """Run every fixture the loader can find."""
        names = loader.list(mode)
        if not names:
            logger.warning("No fixtures found")
        return self.run_named(names, loader, mode=mode, agent=agent)

    def _load_each(
        self,
        names: Iterable[str],
        loader: FixtureSource,
        mode: str | None,
    ) -> Iterator[Fixture]:
        for name in names:
            if self.stop_requested:
                return
            try:
                yield loader.load(name, mode)
            except ConfigurationError as e:
                logger.warning("Skipping fixture %s: %s", name, str(e).splitlines()[0])

    # -- single fixture ----------------------------------------------------

    def run_fixture(self, fixture: Fixture, agent: str | None = None) -> EvalComparison:
        """Evaluate one fixture for both agents, or only ``agent``.

        Does not generate the batch report.
        """
        if agent is not None and agent not in self.agents:
            raise ConfigurationError(
                f"Unknown agent {agent!r}; configured agents are {list(self.agents)}",
                code="INVALID_AGENTS",
            )
        agents = (agent,) if agent else self.agents
        logger.info("Fixture %s: evaluating %s", fixture.name, ", ".join(agents))

        results: dict[str, EvalResult] = {}
        for name in agents:
            if self.stop_requested:
                logger.warning("Stop requested, %s not evaluated on %s", name, fixture.name)
                break
            try:
                results[name] = self._evaluate_agent(name, fixture)
            except InvariantViolation:
                raise
            except Exception as e:
                if self.failure_policy == FailurePolicy.ABORT:
                    raise
                logger.error("Evaluating %s on %s failed: %s", name, fixture.name, e)
                if self.failure_policy == FailurePolicy.SKIP_FIXTURE:
                    logger.error("Skipping the rest of fixture %s", fixture.name)
                    break

        agent_a, agent_b = self.agents
        a_result = results.get(agent_a)
        b_result = results.get(agent_b)
        comparison = EvalComparison(
            fixture=fixture.name,
            agent_a=agent_a,
            agent_b=agent_b,
            agent_a_result=a_result,
            agent_b_result=b_result,
            winner=determine_winner(a_result, b_result, self.tie_threshold),
        )
        self._log_comparison(comparison)
        return comparison

    def _evaluate_agent(self, agent: str, fixture: Fixture) -> EvalResult:
        attempts = self.attempt_runner.run_attempts(agent, fixture)
        result = self.meta_evaluator.evaluate(attempts, fixture.diff, fixture.name)
        self.reporter.save_results(result, fixture.name, agent)
        logger.info(
            "%s on %s: %.2f/10 (%s)%s",
            agent,
            fixture.name,
            result.final_score,
            result.success_rate,
            " [fallback]" if result.fallback else "",
        )
        return result

    @staticmethod
    def _log_comparison(comparison: EvalComparison) -> None:
        if comparison.winner is None:
            logger.info("Fixture %s: incomplete, no winner", comparison.fixture)
        elif comparison.winner == Winner.TIE:
            logger.info("Fixture %s: tie", comparison.fixture)
        else:
            logger.info("Fixture %s: winner %s", comparison.fixture, comparison.winner_name)


__all__ = [
    "EvalRunner",
    "FailurePolicy",
    "FixtureSource",
    "determine_winner",
    "TIE_THRESHOLD",
    "DEFAULT_AGENTS",
]
