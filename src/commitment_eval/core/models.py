"""Data model for multi-attempt commit message evaluation.

Every value produced by the pipeline is a frozen dataclass that validates
itself on construction, so an out-of-range score or an inconsistent
EvalResult can never exist. Violations raise InvariantViolation.

An attempt outcome is a tagged union: SuccessOutcome or FailureOutcome,
discriminated by ``status``. Use ``isinstance`` (or ``is_success``) to
narrow it.

Public API:
    ATTEMPTS_PER_AGENT: Fixed number of attempts per agent per fixture (3)
    FailureType: Categories of failed attempts
    AttemptMetrics: Four 0-10 quality scores for one commit message
    SuccessOutcome / FailureOutcome / AttemptOutcome: Result of one attempt
    EvalResult: Holistic result for one agent on one fixture
    Winner / EvalComparison: Head-to-head result for one fixture
    Fixture: A recorded or live change scenario
    success_rate_for: "K/3" string for a sequence of attempts
    check_attempts / check_eval_result: Invariant checks
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Sequence, Union

from .errors import InvariantViolation

ATTEMPTS_PER_AGENT = 3
SCORE_MIN = 0.0
SCORE_MAX = 10.0

# overall_score must equal the metric mean up to float noise
_MEAN_TOLERANCE = 1e-6


class FailureType(str, Enum):
    """Why an attempt failed.

    - cleaning: artifacts (markers, thinking tags, preambles) survived cleaning
    - validation: cleaned text is not a conventional commit
    - generation: the agent ran but produced nothing usable (timeout, empty output)
    - api_error: the agent CLI/API could not be reached
    """

    CLEANING = "cleaning"
    VALIDATION = "validation"
    GENERATION = "generation"
    API_ERROR = "api_error"


def _check_score(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise InvariantViolation(f"{name} must be a number, got {value!r}")
    if not SCORE_MIN <= value <= SCORE_MAX:
        raise InvariantViolation(
            f"{name} must be within [{SCORE_MIN:g}, {SCORE_MAX:g}], got {value!r}"
        )


def _check_attempt_number(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvariantViolation(f"attempt_number must be an int, got {value!r}")
    if not 1 <= value <= ATTEMPTS_PER_AGENT:
        raise InvariantViolation(
            f"attempt_number must be within 1..{ATTEMPTS_PER_AGENT}, got {value}"
        )


@dataclass(frozen=True)
class AttemptMetrics:
    """Quality scores (0-10) for a single commit message."""

    clarity: float
    conventional_format: float
    scope: float
    specificity: float

    NAMES: ClassVar[tuple[str, ...]] = ("clarity", "conventional_format", "scope", "specificity")

    def __post_init__(self) -> None:
        for name in self.NAMES:
            _check_score(name, getattr(self, name))

    def mean(self) -> float:
        """Arithmetic mean of the four metrics."""
        return (self.clarity + self.conventional_format + self.scope + self.specificity) / 4

    def to_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in self.NAMES}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttemptMetrics:
        try:
            return cls(**{name: data[name] for name in cls.NAMES})
        except KeyError as e:
            raise InvariantViolation(f"Metrics are missing {e.args[0]!r}") from e


@dataclass(frozen=True)
class SuccessOutcome:
    """An attempt that produced a valid, scored commit message."""

    attempt_number: int
    commit_message: str
    metrics: AttemptMetrics
    overall_score: float
    response_time_ms: int = 0
    feedback: str = ""

    status: ClassVar[str] = "success"

    def __post_init__(self) -> None:
        _check_attempt_number(self.attempt_number)
        if not self.commit_message or not self.commit_message.strip():
            raise InvariantViolation("commit_message must not be empty")
        _check_score("overall_score", self.overall_score)
        if abs(self.overall_score - self.metrics.mean()) > _MEAN_TOLERANCE:
            raise InvariantViolation(
                f"overall_score {self.overall_score!r} is not the mean of the metrics "
                f"({self.metrics.mean()!r})"
            )

    @classmethod
    def from_metrics(
        cls,
        attempt_number: int,
        commit_message: str,
        metrics: AttemptMetrics,
        response_time_ms: int = 0,
        feedback: str = "",
    ) -> SuccessOutcome:
        """Build a success whose overall_score is the mean of ``metrics``."""
        return cls(
            attempt_number=attempt_number,
            commit_message=commit_message,
            metrics=metrics,
            overall_score=metrics.mean(),
            response_time_ms=response_time_ms,
            feedback=feedback,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "attempt_number": self.attempt_number,
            "commit_message": self.commit_message,
            "metrics": self.metrics.to_dict(),
            "overall_score": self.overall_score,
            "response_time_ms": self.response_time_ms,
            "feedback": self.feedback,
        }


@dataclass(frozen=True)
class FailureOutcome:
    """An attempt that failed, with its category and reason."""

    attempt_number: int
    failure_type: FailureType
    failure_reason: str
    response_time_ms: int = 0

    status: ClassVar[str] = "failure"

    def __post_init__(self) -> None:
        _check_attempt_number(self.attempt_number)
        # Accept the raw string value too
        try:
            object.__setattr__(self, "failure_type", FailureType(self.failure_type))
        except ValueError as e:
            raise InvariantViolation(f"Unknown failure_type: {self.failure_type!r}") from e
        if not self.failure_reason or not self.failure_reason.strip():
            raise InvariantViolation("failure_reason must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "attempt_number": self.attempt_number,
            "failure_type": self.failure_type.value,
            "failure_reason": self.failure_reason,
            "response_time_ms": self.response_time_ms,
        }


AttemptOutcome = Union[SuccessOutcome, FailureOutcome]


def is_success(outcome: AttemptOutcome) -> bool:
    return isinstance(outcome, SuccessOutcome)


def outcome_from_dict(data: dict[str, Any]) -> AttemptOutcome:
    """Rebuild an attempt outcome from its ``to_dict`` form."""
    status = data.get("status")
    if status == SuccessOutcome.status:
        return SuccessOutcome(
            attempt_number=data["attempt_number"],
            commit_message=data["commit_message"],
            metrics=AttemptMetrics.from_dict(data["metrics"]),
            overall_score=data["overall_score"],
            response_time_ms=int(data.get("response_time_ms", 0)),
            feedback=str(data.get("feedback", "")),
        )
    if status == FailureOutcome.status:
        return FailureOutcome(
            attempt_number=data["attempt_number"],
            failure_type=data["failure_type"],
            failure_reason=data["failure_reason"],
            response_time_ms=int(data.get("response_time_ms", 0)),
        )
    raise InvariantViolation(f"Unknown attempt status: {status!r}")


def success_rate_for(attempts: Sequence[AttemptOutcome]) -> str:
    """Return the "K/3" success rate for ``attempts``."""
    successes = sum(1 for a in attempts if isinstance(a, SuccessOutcome))
    return f"{successes}/{ATTEMPTS_PER_AGENT}"


def check_attempts(attempts: Sequence[Any]) -> None:
    """Check there are exactly 3 outcomes numbered 1, 2, 3 in order."""
    if len(attempts) != ATTEMPTS_PER_AGENT:
        raise InvariantViolation.invalid_attempt_count(len(attempts), ATTEMPTS_PER_AGENT)
    for index, attempt in enumerate(attempts):
        if not isinstance(attempt, (SuccessOutcome, FailureOutcome)):
            raise InvariantViolation(
                f"Attempt {index + 1} is not an attempt outcome: {type(attempt).__name__}"
            )
        if attempt.attempt_number != index + 1:
            raise InvariantViolation(
                f"Attempt at position {index + 1} has attempt_number {attempt.attempt_number}"
            )


def check_eval_result(result: EvalResult) -> None:
    """Raise InvariantViolation if ``result`` breaks any EvalResult invariant."""
    check_attempts(result.attempts)

    expected_rate = success_rate_for(result.attempts)
    if result.success_rate != expected_rate:
        raise InvariantViolation(
            f"success_rate {result.success_rate!r} does not match attempts ({expected_rate})"
        )

    _check_score("final_score", result.final_score)
    _check_score("consistency_score", result.consistency_score)
    if (
        isinstance(result.error_rate_impact, bool)
        or not isinstance(result.error_rate_impact, (int, float))
        or math.isnan(result.error_rate_impact)
        or result.error_rate_impact > 0
    ):
        raise InvariantViolation(
            f"error_rate_impact must be <= 0, got {result.error_rate_impact!r}"
        )

    successes = [a for a in result.attempts if isinstance(a, SuccessOutcome)]
    if not successes:
        if result.best_attempt is not None:
            raise InvariantViolation(
                f"best_attempt must be absent when all attempts failed, got {result.best_attempt}"
            )
        if result.final_score != 0:
            raise InvariantViolation(
                f"final_score must be 0 when all attempts failed, got {result.final_score}"
            )
    else:
        if result.best_attempt is None:
            raise InvariantViolation("best_attempt is required when any attempt succeeded")
        _check_attempt_number(result.best_attempt)
        if not isinstance(result.attempts[result.best_attempt - 1], SuccessOutcome):
            raise InvariantViolation(
                f"best_attempt {result.best_attempt} does not reference a successful attempt"
            )

    if not result.reasoning or not result.reasoning.strip():
        raise InvariantViolation("reasoning must not be empty")


@dataclass(frozen=True)
class EvalResult:
    """Holistic result of one agent's three attempts on one fixture."""

    attempts: tuple[AttemptOutcome, ...]
    consistency_score: float
    error_rate_impact: float
    final_score: float
    success_rate: str
    reasoning: str
    best_attempt: int | None = None
    fallback: bool = False  # True when produced by deterministic fallback scoring

    def __post_init__(self) -> None:
        object.__setattr__(self, "attempts", tuple(self.attempts))
        check_eval_result(self)

    @property
    def successes(self) -> list[SuccessOutcome]:
        return [a for a in self.attempts if isinstance(a, SuccessOutcome)]

    @property
    def failures(self) -> list[FailureOutcome]:
        return [a for a in self.attempts if isinstance(a, FailureOutcome)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempts": [a.to_dict() for a in self.attempts],
            "best_attempt": self.best_attempt,
            "consistency_score": self.consistency_score,
            "error_rate_impact": self.error_rate_impact,
            "final_score": self.final_score,
            "success_rate": self.success_rate,
            "reasoning": self.reasoning,
            "fallback": self.fallback,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EvalResult:
        return cls(
            attempts=tuple(outcome_from_dict(a) for a in data["attempts"]),
            best_attempt=data.get("best_attempt"),
            consistency_score=data["consistency_score"],
            error_rate_impact=data["error_rate_impact"],
            final_score=data["final_score"],
            success_rate=data["success_rate"],
            reasoning=data["reasoning"],
            fallback=bool(data.get("fallback", False)),
        )


class Winner(str, Enum):
    AGENT_A = "agent_a"
    AGENT_B = "agent_b"
    TIE = "tie"


@dataclass(frozen=True)
class EvalComparison:
    """Head-to-head comparison of two agents on one fixture.

    ``winner`` is None exactly when either side has no result.
    """

    fixture: str
    agent_a: str
    agent_b: str
    agent_a_result: EvalResult | None = None
    agent_b_result: EvalResult | None = None
    winner: Winner | None = None

    def __post_init__(self) -> None:
        if not self.fixture:
            raise InvariantViolation("Comparison fixture name must not be empty")
        if self.winner is not None:
            object.__setattr__(self, "winner", Winner(self.winner))
            if self.agent_a_result is None or self.agent_b_result is None:
                raise InvariantViolation(
                    f"Comparison for {self.fixture!r} names a winner but is missing a result"
                )

    def result_for(self, agent: str) -> EvalResult | None:
        if agent == self.agent_a:
            return self.agent_a_result
        if agent == self.agent_b:
            return self.agent_b_result
        raise KeyError(agent)

    @property
    def winner_name(self) -> str | None:
        """Agent name of the winner, "tie", or None."""
        if self.winner is None:
            return None
        if self.winner == Winner.TIE:
            return "tie"
        return self.agent_a if self.winner == Winner.AGENT_A else self.agent_b

    def to_dict(self) -> dict[str, Any]:
        return {
            "fixture": self.fixture,
            "agent_a": self.agent_a,
            "agent_b": self.agent_b,
            "agent_a_result": self.agent_a_result.to_dict() if self.agent_a_result else None,
            "agent_b_result": self.agent_b_result.to_dict() if self.agent_b_result else None,
            "winner": self.winner.value if self.winner else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EvalComparison:
        a_raw = data.get("agent_a_result")
        b_raw = data.get("agent_b_result")
        winner = data.get("winner")
        return cls(
            fixture=data["fixture"],
            agent_a=data["agent_a"],
            agent_b=data["agent_b"],
            agent_a_result=EvalResult.from_dict(a_raw) if a_raw else None,
            agent_b_result=EvalResult.from_dict(b_raw) if b_raw else None,
            winner=Winner(winner) if winner else None,
        )


@dataclass(frozen=True)
class Fixture:
    """A fixed change scenario: staged diff plus porcelain status."""

    name: str
    diff: str
    status: str
    description: str = ""
    expected_type: str = ""

    def changed_files(self) -> list[str]:
        """File paths listed in the porcelain status ("XY path" lines)."""
        files = []
        for line in self.status.splitlines():
            if len(line.strip()) == 0 or len(line) <= 3:
                continue
            path = line[3:].strip()
            if path:
                files.append(path)
        return files


__all__ = [
    "ATTEMPTS_PER_AGENT",
    "SCORE_MIN",
    "SCORE_MAX",
    "FailureType",
    "AttemptMetrics",
    "SuccessOutcome",
    "FailureOutcome",
    "AttemptOutcome",
    "is_success",
    "outcome_from_dict",
    "success_rate_for",
    "check_attempts",
    "check_eval_result",
    "EvalResult",
    "Winner",
    "EvalComparison",
    "Fixture",
]
