"""Deterministic commit message scoring without an LLM.

Used for offline runs and as AttemptRunner's fallback scorer when the LLM
judge is unavailable. Scores come from the message structure only, so the
same message always gets the same metrics.

HeuristicJudge has no holistic judgment: meta_evaluate always raises
JudgeUnavailableError, which sends MetaEvaluator down its fallback path.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Sequence

from ..core.commit_format import validate_conventional_commit
from ..core.errors import JudgeUnavailableError
from ..core.models import AttemptMetrics, AttemptOutcome
from .base import AttemptScore, Judge, MetaEvaluation

_HEADER = re.compile(r"^(?P<type>\w+)(?:\((?P<scope>[^)]*)\))?!?:\s*(?P<description>.*)$")
_BULLET = re.compile(r"^\s*[-*]\s+\S")


def _clamp(value: float) -> float:
    return round(max(0.0, min(10.0, value)), 2)


def _status_stems(status: str) -> set[str]:
    stems = set()
    for line in status.splitlines():
        if len(line) > 3:
            stem = PurePosixPath(line[3:].strip()).stem.lower()
            if len(stem) >= 3:
                stems.add(stem)
    return stems


class HeuristicJudge(Judge):
    """Rule-based judge scoring header shape, body structure and file coverage."""

    def score_attempt(
        self,
        commit_message: str,
        diff: str,
        status: str,
        fixture_name: str = "",
    ) -> AttemptScore:
        lines = commit_message.strip().split("\n")
        header = lines[0].strip()
        body = [line for line in lines[1:] if line.strip()]
        bullets = [line for line in body if _BULLET.match(line)]
        notes: list[str] = []

        match = _HEADER.match(header)
        description = match.group("description").strip() if match else header
        scope = match.group("scope") if match else None
        words = description.split()

        # conventional_format
        conventional = 10.0 if validate_conventional_commit(header) else 2.0
        if len(header) > 72:
            conventional -= 2
            notes.append("header longer than 72 characters")
        if len(lines) > 1 and lines[1].strip():
            conventional -= 1
            notes.append("no blank line after header")
        if header.endswith("."):
            conventional -= 0.5

        # clarity
        clarity = 9.0
        if len(header) > 50:
            clarity -= 1
        if len(words) < 3:
            clarity -= 3
            notes.append("description is very short")
        if words and re.search(r"(ed|ing)$", words[0].lower()):
            clarity -= 1
            notes.append("description is not in imperative mood")

        # specificity
        specificity = 5.0 + min(3, len(bullets))
        stems = _status_stems(status)
        text = commit_message.lower()
        if stems and any(stem in text for stem in stems):
            specificity += 2

        # scope
        scope_score = 6.0
        if scope:
            scope_score += 2
        if 0 < len(bullets) <= 6:
            scope_score += 2
        elif len(bullets) > 6:
            notes.append("body lists more than six changes")

        metrics = AttemptMetrics(
            clarity=_clamp(clarity),
            conventional_format=_clamp(conventional),
            scope=_clamp(scope_score),
            specificity=_clamp(specificity),
        )
        feedback = "Heuristic score" + (f": {'; '.join(notes)}" if notes else "")
        return AttemptScore(metrics=metrics, feedback=feedback)

    def meta_evaluate(
        self,
        attempts: Sequence[AttemptOutcome],
        diff: str,
        fixture_name: str,
    ) -> MetaEvaluation:
        raise JudgeUnavailableError("HeuristicJudge does not provide holistic meta-evaluation")


__all__ = ["HeuristicJudge"]
