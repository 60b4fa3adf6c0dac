"""Error taxonomy for the evaluation pipeline.

Every error carries a short ``code`` and a message laid out as
"what happened" followed by "How to fix" hints.

Propagation rules:
- GenerationError is absorbed by AttemptRunner into a failure outcome
- JudgeError is absorbed by MetaEvaluator (fallback scoring) and by
  AttemptRunner (fallback scorer)
- ConfigurationError aborts the affected fixture or the whole run
- InvariantViolation always propagates; it signals a programming defect

Public API:
    EvaluationError: Base class for all pipeline errors
    ConfigurationError: Missing fixture, missing credentials, bad configuration
    InvariantViolation: Caller or collaborator broke a data-model contract
    GenerationErrorKind: Distinguishable Generator failure kinds
    GenerationError: A single generation attempt failed
    JudgeError: The Judge could not produce a usable answer
    JudgeUnavailableError: The Judge could not be reached or refused the call
    JudgeOutputError: The Judge answered with unusable output
"""

from __future__ import annotations

from enum import Enum


class EvaluationError(Exception):
    """Base class for evaluation pipeline errors."""

    code = "EVALUATION_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


def _with_hints(what: str, hints: list[str]) -> str:
    lines = [what, "", "How to fix:"]
    lines.extend(f"- {hint}" for hint in hints)
    return "\n".join(lines)


class ConfigurationError(EvaluationError):
    """Configuration problem that prevents a fixture or a run from starting."""

    code = "CONFIGURATION_ERROR"

    @classmethod
    def missing_fixture(cls, fixture_name: str, reason: str = "") -> ConfigurationError:
        what = f'Fixture not found: "{fixture_name}".'
        if reason:
            what += f"\n\nReason: {reason}"
        return cls(
            _with_hints(
                what,
                [
                    "Check the fixture name spelling",
                    "Verify the fixture directory exists under the fixtures directory",
                    "Ensure it has metadata.yaml (or metadata.json), mock-diff.txt "
                    "and mock-status.txt",
                ],
            ),
            code="MISSING_FIXTURE",
        )

    @classmethod
    def missing_credentials(cls, env_var: str, collaborator: str) -> ConfigurationError:
        return cls(
            _with_hints(
                f"{collaborator} requires the {env_var} environment variable.",
                [
                    f'export {env_var}="your-key-here"',
                    "Or run with --offline to use deterministic heuristic scoring",
                ],
            ),
            code="MISSING_CREDENTIALS",
        )


class InvariantViolation(EvaluationError):
    """A value broke an invariant of the evaluation data model."""

    code = "INVARIANT_VIOLATION"

    @classmethod
    def invalid_attempt_count(cls, received: int, expected: int) -> InvariantViolation:
        return cls(
            _with_hints(
                f"Invalid attempt count: expected {expected} attempts but received {received}.",
                [
                    f"Ensure AttemptRunner executes all {expected} attempts",
                    "Check that failures don't stop subsequent attempts",
                ],
            ),
            code="INVALID_ATTEMPT_COUNT",
        )


class GenerationErrorKind(str, Enum):
    """Why a Generator call failed."""

    UNAVAILABLE = "unavailable"
    EXECUTION_FAILED = "execution_failed"
    TIMEOUT = "timeout"
    MALFORMED_OUTPUT = "malformed_output"


class GenerationError(EvaluationError):
    """A Generator failed to produce a commit message."""

    code = "GENERATION_FAILED"

    def __init__(self, message: str, kind: GenerationErrorKind, agent_name: str = ""):
        super().__init__(message)
        self.kind = kind
        self.agent_name = agent_name

    @classmethod
    def unavailable(cls, agent_name: str, command: str) -> GenerationError:
        return cls(
            _with_hints(
                f'Agent "{agent_name}" is unavailable: command not found: {command}',
                [
                    f"Install the {agent_name} CLI and make sure it is on PATH",
                    f"Or set EVAL_AGENT_{agent_name.upper()}_COMMAND to the right command",
                ],
            ),
            kind=GenerationErrorKind.UNAVAILABLE,
            agent_name=agent_name,
        )

    @classmethod
    def execution_failed(cls, agent_name: str, detail: str) -> GenerationError:
        return cls(
            f'Agent "{agent_name}" execution failed: {detail}',
            kind=GenerationErrorKind.EXECUTION_FAILED,
            agent_name=agent_name,
        )

    @classmethod
    def timeout(cls, agent_name: str, seconds: float) -> GenerationError:
        return cls(
            f'Agent "{agent_name}" timed out after {seconds:.1f}s',
            kind=GenerationErrorKind.TIMEOUT,
            agent_name=agent_name,
        )

    @classmethod
    def malformed_output(cls, agent_name: str, detail: str) -> GenerationError:
        return cls(
            f'Agent "{agent_name}" returned malformed output: {detail}',
            kind=GenerationErrorKind.MALFORMED_OUTPUT,
            agent_name=agent_name,
        )


class JudgeError(EvaluationError):
    """The Judge could not produce a usable evaluation."""

    code = "JUDGE_FAILED"


class JudgeUnavailableError(JudgeError):
    """Network, auth, rate limit or timeout failure talking to the Judge."""

    code = "JUDGE_UNAVAILABLE"


class JudgeOutputError(JudgeError):
    """The Judge replied, but its output was unparseable or inconsistent."""

    code = "JUDGE_INVALID_OUTPUT"


__all__ = [
    "EvaluationError",
    "ConfigurationError",
    "InvariantViolation",
    "GenerationErrorKind",
    "GenerationError",
    "JudgeError",
    "JudgeUnavailableError",
    "JudgeOutputError",
]
