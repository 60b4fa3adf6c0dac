"""Core evaluation logic: data model, attempt runner, meta-evaluator and runner."""

from __future__ import annotations

from .errors import (
    ConfigurationError,
    EvaluationError,
    GenerationError,
    GenerationErrorKind,
    InvariantViolation,
    JudgeError,
    JudgeOutputError,
    JudgeUnavailableError,
)
from .models import (
    ATTEMPTS_PER_AGENT,
    AttemptMetrics,
    AttemptOutcome,
    EvalComparison,
    EvalResult,
    FailureOutcome,
    FailureType,
    Fixture,
    SuccessOutcome,
    Winner,
)
from .commit_format import (
    categorize_error,
    clean_ai_response,
    find_artifacts,
    validate_conventional_commit,
)
from .attempt_runner import AttemptRunner
from .meta_evaluator import MetaEvaluator
from .runner import EvalRunner, FailurePolicy, determine_winner

__all__ = [
    "ATTEMPTS_PER_AGENT",
    "AttemptMetrics",
    "AttemptOutcome",
    "SuccessOutcome",
    "FailureOutcome",
    "FailureType",
    "EvalResult",
    "EvalComparison",
    "Winner",
    "Fixture",
    "EvaluationError",
    "ConfigurationError",
    "InvariantViolation",
    "GenerationError",
    "GenerationErrorKind",
    "JudgeError",
    "JudgeUnavailableError",
    "JudgeOutputError",
    "clean_ai_response",
    "find_artifacts",
    "validate_conventional_commit",
    "categorize_error",
    "AttemptRunner",
    "MetaEvaluator",
    "EvalRunner",
    "FailurePolicy",
    "determine_winner",
]
