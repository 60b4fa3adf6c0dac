"""Judges that score commit messages and meta-evaluate attempts."""

from __future__ import annotations

from .anthropic_judge import DEFAULT_JUDGE_MODEL, AnthropicJudge
from .base import AttemptScore, Judge, MetaEvaluation
from .heuristic import HeuristicJudge

__all__ = [
    "Judge",
    "AttemptScore",
    "MetaEvaluation",
    "AnthropicJudge",
    "HeuristicJudge",
    "DEFAULT_JUDGE_MODEL",
]
