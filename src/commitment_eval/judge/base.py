"""Judge interface for scoring commit messages.

A Judge answers two questions:
- score_attempt: how good is this single commit message (four 0-10 metrics)?
- meta_evaluate: looking at all three attempts together, how reliable is the agent?

Judges raise JudgeError subclasses on failure. They never return placeholder
scores; callers decide how to fall back.

Public API:
    AttemptScore: Metrics plus free-text feedback for one message
    MetaEvaluation: Holistic judgment of three attempts (unvalidated)
    Judge: Abstract interface for judges
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from ..core.models import AttemptMetrics, AttemptOutcome


@dataclass(frozen=True)
class AttemptScore:
    """Judge's score for a single commit message."""

    metrics: AttemptMetrics
    feedback: str = ""


@dataclass(frozen=True)
class MetaEvaluation:
    """Judge's holistic answer for three attempts.

    Values are exactly what the judge returned; MetaEvaluator checks them
    against the attempts before building an EvalResult.
    """

    consistency_score: float
    error_rate_impact: float
    final_score: float
    success_rate: str
    reasoning: str
    best_attempt: int | None = None


class Judge(ABC):
    """Interface for commit message judges."""

    @abstractmethod
    def score_attempt(
        self,
        commit_message: str,
        diff: str,
        status: str,
        fixture_name: str = "",
    ) -> AttemptScore:
        """Score one commit message against its change context."""

    @abstractmethod
    def meta_evaluate(
        self,
        attempts: Sequence[AttemptOutcome],
        diff: str,
        fixture_name: str,
    ) -> MetaEvaluation:
        """Judge all attempts of one agent on one fixture together."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


__all__ = ["AttemptScore", "MetaEvaluation", "Judge"]
