"""LLM judge for commit messages backed by the Anthropic API.

Scores single commit messages on four 0-10 metrics and meta-evaluates the
three attempts of one agent on one fixture.
Philosophy: Single responsibility - just judging, no fallback logic.
Failures surface as JudgeUnavailableError (API unreachable) or
JudgeOutputError (the reply was not the JSON we asked for).

Public API:
    AnthropicJudge: Judge implementation using Claude
    DEFAULT_JUDGE_MODEL: Model used when JUDGE_MODEL is unset
"""

from __future__ import annotations

import json
import logging
import math
import os
import re
from typing import Any, Sequence

from ..core.errors import ConfigurationError, InvariantViolation, JudgeOutputError, JudgeUnavailableError
from ..core.models import AttemptMetrics, AttemptOutcome, FailureOutcome, SuccessOutcome
from .base import AttemptScore, Judge, MetaEvaluation

logger = logging.getLogger(__name__)

DEFAULT_JUDGE_MODEL = "claude-sonnet-4-5-20250929"

_ATTEMPT_SYSTEM = """You are an expert code reviewer evaluating commit message quality.

Score the commit message on four dimensions, each from 0 to 10:

1. clarity: How clear and understandable is the message?
   - 10: Crystal clear, no ambiguity
   - 5: Somewhat clear but could be improved
   - 0: Confusing or unclear
2. specificity: Level of detail and precision
   - 10: Right level of detail for the change
   - 5: Too vague or too detailed
   - 0: Missing specifics or overwhelming detail
3. conventional_format: Adherence to Conventional Commits
   - 10: Perfect format (type(scope): description, blank line, body)
   - 5: Correct type but poor structure
   - 0: No conventional format
4. scope: Appropriate scope and focus
   - 10: Focused on exactly what the diff changes
   - 5: Scope could be more focused
   - 0: No clear scope or far too broad

Return ONLY a JSON object with this structure:
{"clarity": 8.5, "specificity": 8.0, "conventional_format": 9.0, "scope": 8.0, "feedback": "One or two sentences"}"""

_META_SYSTEM = """You are an expert evaluator analyzing the reliability and consistency of an AI commit message generator.

You are shown 3 attempts by the same agent on the same change. Determine:

1. final_score (0-10):
   - Consider ALL 3 attempts, successes AND failures
   - Failures are penalized: 2/3 success is NOT the average of 2 scores
   - 3/3 success with scores 8, 8.5, 9 -> about 8.5-9.0
   - 2/3 success with scores 8, 9 -> about 7.0-7.5
   - 1/3 success with score 8 -> about 4.0-5.0
   - 0/3 success -> exactly 0
2. consistency_score (0-10):
   - 0 if fewer than 2 successes
   - 10 if all successful attempts scored (nearly) the same
   - Lower as their scores spread apart
3. error_rate_impact (0 or negative):
   - 0 for 3/3 success
   - -0.5 to -1.0 for 1 failure
   - -2.0 to -3.0 for 2 failures
   - -10.0 for 3 failures
4. success_rate: count of successes formatted as "K/3"
5. best_attempt: attempt number (1, 2 or 3) of the highest scoring success, null if all failed
6. reasoning: explain the final score, the consistency and the failure impact.
   Required even when every attempt failed.

Return ONLY a JSON object with this structure:
{"final_score": 8.2, "consistency_score": 9.0, "error_rate_impact": 0.0, "success_rate": "3/3", "best_attempt": 2, "reasoning": "..."}"""

# Accept the camelCase spellings some models fall back to
_ALIASES = {
    "conventionalFormat": "conventional_format",
    "consistencyScore": "consistency_score",
    "errorRateImpact": "error_rate_impact",
    "finalScore": "final_score",
    "successRate": "success_rate",
    "bestAttempt": "best_attempt",
}


def _extract_json(text: str) -> dict:
    """Extract a JSON object from LLM response text.

    Handles common LLM response patterns:
    - Raw JSON: {"clarity": 8, ...}
    - Markdown fenced: ```json\\n{...}\\n```
    - JSON surrounded by prose

    Raises:
        JudgeOutputError: If no JSON object can be extracted
    """
    stripped = text.strip()

    try:
        data = json.loads(stripped)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    fenced = re.search(r"```(?:json)?\s*\n?(.*?)\n?\s*```", stripped, re.DOTALL)
    if fenced:
        try:
            data = json.loads(fenced.group(1).strip())
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    brace_match = re.search(r"\{.*\}", stripped, re.DOTALL)
    if brace_match:
        try:
            data = json.loads(brace_match.group(0))
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    raise JudgeOutputError(f"No valid JSON found in judge response: {stripped[:200]}")


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {_ALIASES.get(key, key): value for key, value in data.items()}


def _build_attempt_prompt(commit_message: str, diff: str, status: str, fixture_name: str) -> str:
    return f"""# Commit Message Evaluation

Fixture: {fixture_name or "(unnamed)"}

Commit message:
```
{commit_message}
```

Git status:
```
{status}
```

Git diff:
```diff
{diff}
```

Evaluate this commit message on all 4 dimensions."""


def _describe_attempt(attempt: AttemptOutcome) -> str:
    if isinstance(attempt, SuccessOutcome):
        m = attempt.metrics
        return (
            f"## Attempt {attempt.attempt_number}: SUCCESS\n"
            f"Overall score: {attempt.overall_score:.2f}/10 "
            f"(clarity {m.clarity}, specificity {m.specificity}, "
            f"conventional_format {m.conventional_format}, scope {m.scope})\n"
            f"Response time: {attempt.response_time_ms}ms\n\n"
            f"```\n{attempt.commit_message}\n```"
        )
    if not isinstance(attempt, FailureOutcome):
        raise InvariantViolation(f"Not an attempt outcome: {type(attempt).__name__}")
    return (
        f"## Attempt {attempt.attempt_number}: FAILURE\n"
        f"Failure type: {attempt.failure_type.value}\n"
        f"Reason: {attempt.failure_reason}"
    )


def _build_meta_prompt(attempts: Sequence[AttemptOutcome], diff: str, fixture_name: str) -> str:
    sections = "\n\n".join(_describe_attempt(a) for a in attempts)
    return f"""# Meta-Evaluation: {fixture_name}

Git diff:
```diff
{diff}
```

{sections}

Evaluate all 3 attempts together."""


def _float_field(data: dict[str, Any], key: str) -> float:
    if key not in data:
        raise JudgeOutputError(f"Judge response is missing {key!r}")
    value = data[key]
    if isinstance(value, bool):
        raise JudgeOutputError(f"Judge field {key!r} is not a number: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise JudgeOutputError(f"Judge field {key!r} is not a number: {value!r}") from e
    if not math.isfinite(number):
        raise JudgeOutputError(f"Judge field {key!r} is not a finite number: {value!r}")
    return number


class AnthropicJudge(Judge):
    """Judge that asks Claude to score commit messages.

    Requires the ``anthropic`` package and ``ANTHROPIC_API_KEY`` env var
    unless a client is passed in.

    Args:
        model: Model identifier (defaults to JUDGE_MODEL env var)
        api_key: API key (defaults to ANTHROPIC_API_KEY env var)
        client: Pre-built Anthropic client, mainly for tests
        max_tokens: Max tokens per judge reply
        timeout: Request timeout in seconds
        max_retries: Client-side retries for transient API errors
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        client: object | None = None,
        max_tokens: int = 1024,
        timeout: float = 60.0,
        max_retries: int = 2,
    ):
        self.model = model or os.environ.get("JUDGE_MODEL", DEFAULT_JUDGE_MODEL)
        self.max_tokens = max_tokens

        if client is None:
            api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ConfigurationError.missing_credentials("ANTHROPIC_API_KEY", "AnthropicJudge")

            import anthropic  # type: ignore[import-untyped]

            client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self._client = client

    def _complete(self, system: str, prompt: str) -> str:
        try:
            message = self._client.messages.create(  # type: ignore[attr-defined]
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.warning("Judge call to %s failed: %s", self.model, e)
            raise JudgeUnavailableError(f"Judge call to {self.model} failed: {e}") from e

        try:
            return message.content[0].text
        except (AttributeError, IndexError, TypeError) as e:
            raise JudgeOutputError(f"Judge returned no text content: {message!r}") from e

    def score_attempt(
        self,
        commit_message: str,
        diff: str,
        status: str,
        fixture_name: str = "",
    ) -> AttemptScore:
        """Score one commit message.

        Raises:
            JudgeUnavailableError: API call failed
            JudgeOutputError: Reply missing a metric or a metric outside 0-10
        """
        prompt = _build_attempt_prompt(commit_message, diff, status, fixture_name)
        data = _normalize_keys(_extract_json(self._complete(_ATTEMPT_SYSTEM, prompt)))
        # Some replies nest the four scores under "metrics"
        nested = data.get("metrics")
        scores = _normalize_keys(nested) if isinstance(nested, dict) else data

        values = {name: _float_field(scores, name) for name in AttemptMetrics.NAMES}
        try:
            metrics = AttemptMetrics(**values)
        except InvariantViolation as e:
            raise JudgeOutputError(f"Judge returned out-of-range metrics: {e}") from e

        feedback = data.get("feedback") or data.get("reasoning") or ""
        return AttemptScore(metrics=metrics, feedback=str(feedback))

    def meta_evaluate(
        self,
        attempts: Sequence[AttemptOutcome],
        diff: str,
        fixture_name: str,
    ) -> MetaEvaluation:
        """Ask Claude for a holistic judgment of all three attempts.

        Values are returned as given; consistency with the attempts is
        checked by MetaEvaluator.
        """
        prompt = _build_meta_prompt(attempts, diff, fixture_name)
        data = _normalize_keys(_extract_json(self._complete(_META_SYSTEM, prompt)))

        best = data.get("best_attempt")
        if best is not None:
            if (
                isinstance(best, bool)
                or not isinstance(best, (int, float))
                or not math.isfinite(best)
                or best != int(best)
            ):
                raise JudgeOutputError(f"Judge field 'best_attempt' is not an attempt number: {best!r}")
            best = int(best)

        success_rate = data.get("success_rate")
        if not isinstance(success_rate, str):
            raise JudgeOutputError(f"Judge field 'success_rate' is not a string: {success_rate!r}")

        reasoning = data.get("reasoning")
        if not isinstance(reasoning, str):
            raise JudgeOutputError("Judge response is missing 'reasoning'")

        return MetaEvaluation(
            consistency_score=_float_field(data, "consistency_score"),
            error_rate_impact=_float_field(data, "error_rate_impact"),
            final_score=_float_field(data, "final_score"),
            success_rate=success_rate,
            reasoning=reasoning,
            best_attempt=best,
        )


__all__ = ["AnthropicJudge", "DEFAULT_JUDGE_MODEL"]
