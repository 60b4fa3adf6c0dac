"""Cleaning, validation and failure categorisation for generated commit messages.

Pure functions only. AttemptRunner uses them to decide whether a raw
Generator reply becomes a success, a cleaning failure or a validation failure.

Public API:
    clean_ai_response: Strip markers, code fences, thinking blocks and preambles
    find_artifacts: List artifacts that survived cleaning
    validate_conventional_commit: Check the conventional-commit header
    categorize_error: Map an exception to a FailureType
"""

from __future__ import annotations

import errno
import re

from .errors import GenerationError, GenerationErrorKind
from .models import FailureType

COMMIT_START_MARKER = "<<<COMMIT_MESSAGE_START>>>"
COMMIT_END_MARKER = "<<<COMMIT_MESSAGE_END>>>"

CONVENTIONAL_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
    "perf",
    "build",
    "ci",
    "revert",
)

_CONVENTIONAL_HEADER = re.compile(
    r"^(?:" + "|".join(CONVENTIONAL_TYPES) + r")(?:\([^()\s][^()]*\))?!?:\s*\S"
)

_CODE_FENCE = re.compile(r"```[\w+-]*[ \t]*\n?(.*?)```", re.DOTALL)
_THINKING_BLOCK = re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE)
_THINKING_PREFIX = re.compile(r"\Athinking:.*?(?:\n\s*\n|\Z)", re.DOTALL | re.IGNORECASE)
_PREAMBLE_LINE = re.compile(
    r"^(?:"
    r"here(?:'s| is)\b.*\bcommit message\b.*"
    r"|(?:looking at|analyzing|based on|from) (?:the )?(?:staged )?(?:changes|git diff|diff)\b.*"
    r"|i can see\b.*"
    r"|let me\b.*"
    r")$",
    re.IGNORECASE,
)

# Checked in order; the first match wins
_API_ERROR_PATTERNS = (
    "command not found",
    "not found",
    "network error",
    "enoent",
    "econnrefused",
    "connection refused",
)
_CLEANING_PATTERNS = ("failed to clean", "thinking", "markdown code block", "artifact")
_VALIDATION_PATTERNS = (
    "invalid conventional commit",
    "does not follow conventional",
    "missing type",
    "invalid format",
)


def _strip_preamble(text: str) -> str:
    lines = text.split("\n")
    index = 0
    while index < len(lines) and (
        not lines[index].strip() or _PREAMBLE_LINE.match(lines[index].strip())
    ):
        index += 1
    remainder = "\n".join(lines[index:])
    # Nothing but preamble: leave it for find_artifacts to report
    return remainder if remainder.strip() else text


def clean_ai_response(text: str) -> str:
    """Remove common AI response artifacts from ``text``.

    - Keeps only the content between the commit message markers when both are
      present in order
    - Unwraps markdown code fences, keeping their content
    - Drops ``<thinking>`` blocks and a leading ``thinking:`` paragraph
    - Drops leading preamble lines ("Here's the commit message:", ...)
    - Collapses runs of 3+ newlines and trims whitespace
    """
    cleaned = text

    start = cleaned.find(COMMIT_START_MARKER)
    end = cleaned.find(COMMIT_END_MARKER)
    if start != -1 and end > start:
        cleaned = cleaned[start + len(COMMIT_START_MARKER) : end]

    cleaned = _CODE_FENCE.sub(r"\1", cleaned)
    cleaned = _THINKING_BLOCK.sub("", cleaned)
    cleaned = _THINKING_PREFIX.sub("", cleaned.lstrip())
    cleaned = _strip_preamble(cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def find_artifacts(text: str) -> list[str]:
    """Return the names of AI artifacts still present in ``text``."""
    found: list[str] = []
    if COMMIT_START_MARKER in text or COMMIT_END_MARKER in text:
        found.append("sentinel marker")
    if re.search(r"</?thinking>", text, re.IGNORECASE):
        found.append("thinking tag")
    if "```" in text:
        found.append("code fence")
    first_line = text.strip().split("\n", 1)[0].strip()
    if first_line and _PREAMBLE_LINE.match(first_line):
        found.append("preamble")
    return found


def validate_conventional_commit(message: str) -> bool:
    """True if the first line is ``type(scope)?!?: description``."""
    if not message:
        return False
    header = message.strip().split("\n", 1)[0]
    return bool(_CONVENTIONAL_HEADER.match(header))


def categorize_error(error: BaseException) -> FailureType:
    """Categorise an exception raised while generating a commit message.

    GenerationError kinds are authoritative. Anything else is matched by
    type first, then by message: api_error, cleaning, validation, and
    generation as the default.
    """
    if isinstance(error, GenerationError):
        if error.kind == GenerationErrorKind.UNAVAILABLE:
            return FailureType.API_ERROR
        return FailureType.GENERATION

    if isinstance(error, (FileNotFoundError, ConnectionError)):
        return FailureType.API_ERROR
    if isinstance(error, OSError) and error.errno == errno.ENOENT:
        return FailureType.API_ERROR
    if getattr(error, "code", None) == "ENOENT":
        return FailureType.API_ERROR

    message = str(error).lower()
    if any(p in message for p in _API_ERROR_PATTERNS):
        return FailureType.API_ERROR
    if any(p in message for p in _CLEANING_PATTERNS) or re.search(r"\bcot\b", message):
        return FailureType.CLEANING
    if any(p in message for p in _VALIDATION_PATTERNS):
        return FailureType.VALIDATION
    return FailureType.GENERATION


__all__ = [
    "COMMIT_START_MARKER",
    "COMMIT_END_MARKER",
    "CONVENTIONAL_TYPES",
    "clean_ai_response",
    "find_artifacts",
    "validate_conventional_commit",
    "categorize_error",
]
