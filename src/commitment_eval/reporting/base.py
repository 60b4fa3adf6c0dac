"""Reporter interface for persisting evaluation results.

Public API:
    Reporter: Abstract interface used by EvalRunner
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from ..core.models import EvalComparison, EvalResult


class Reporter(ABC):
    """Persists per-agent results and writes the batch report."""

    @abstractmethod
    def save_results(self, result: EvalResult, fixture: str, agent: str) -> Path | None:
        """Persist one agent's result for one fixture. Returns where it was written."""

    @abstractmethod
    def generate_report(self, comparisons: Sequence[EvalComparison]) -> Path | None:
        """Write the human-readable report for a batch. Called once per batch."""

    def compare_with_baseline(self, comparison: EvalComparison) -> str | None:
        """Describe score changes against a stored baseline, or None without one."""
        return None


__all__ = ["Reporter"]
