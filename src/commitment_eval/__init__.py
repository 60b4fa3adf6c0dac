"""commitment-eval: Head-to-head evaluation of AI commit message agents.

Runs each agent three times per fixture, scores every attempt on four
quality metrics, meta-evaluates the attempts for reliability, and picks a
winner per fixture.

Public API:
    EvalRunner: Compare two agents across fixtures
    AttemptRunner: Run and score the three attempts of one agent
    MetaEvaluator: Holistic scoring with deterministic fallback
    Generator: Interface to make any commit message agent benchmarkable
    Judge: Interface for commit message judges
    Reporter: Interface for persisting results
    EvalResult / EvalComparison: Result data model
    load_fixture: Load a fixture by name
"""

from __future__ import annotations

__version__ = "0.1.0"

from .core.errors import (
    ConfigurationError,
    EvaluationError,
    GenerationError,
    GenerationErrorKind,
    InvariantViolation,
    JudgeError,
    JudgeOutputError,
    JudgeUnavailableError,
)
from .core.models import (
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
from .core.attempt_runner import AttemptRunner
from .core.meta_evaluator import MetaEvaluator
from .core.runner import EvalRunner, FailurePolicy, determine_winner
from .config import EvalConfig
from .fixtures.loader import FixtureLoader, list_fixtures, load_fixture
from .generators.base import GenerationContext, GenerationTask, Generator
from .generators.subprocess_generator import SubprocessGenerator
from .judge.anthropic_judge import AnthropicJudge
from .judge.base import AttemptScore, Judge, MetaEvaluation
from .judge.heuristic import HeuristicJudge
from .reporting.base import Reporter
from .reporting.file_reporter import FileReporter

__all__ = [
    # Data model
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
    # Errors
    "EvaluationError",
    "ConfigurationError",
    "InvariantViolation",
    "GenerationError",
    "GenerationErrorKind",
    "JudgeError",
    "JudgeUnavailableError",
    "JudgeOutputError",
    # Pipeline
    "AttemptRunner",
    "MetaEvaluator",
    "EvalRunner",
    "FailurePolicy",
    "determine_winner",
    "EvalConfig",
    # Collaborators
    "Generator",
    "GenerationTask",
    "GenerationContext",
    "SubprocessGenerator",
    "Judge",
    "AttemptScore",
    "MetaEvaluation",
    "AnthropicJudge",
    "HeuristicJudge",
    "Reporter",
    "FileReporter",
    "FixtureLoader",
    "load_fixture",
    "list_fixtures",
]
