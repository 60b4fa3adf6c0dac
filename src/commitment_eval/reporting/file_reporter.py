"""File-system reporter: JSON results, markdown report and baselines.

Layout under ``results_dir``::

    2026-10-18T14-03-22/                 one run directory per reporter
        simple-claude.json
        simple-codex.json
        report.md
    latest-simple-claude.json  -> 2026-10-18T14-03-22/simple-claude.json
    latest-report.md           -> 2026-10-18T14-03-22/report.md
    baseline-simple.json

``latest-*`` pointers are relative symlinks, or plain copies where the
file system does not support symlinks.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Sequence

from ..core.models import EvalComparison, EvalResult
from .base import Reporter
from .markdown import render_markdown_report

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_DIR = ".eval-results"


def _point_latest(target: Path, pointer: Path) -> None:
    """Make ``pointer`` refer to ``target``, replacing any previous pointer."""
    if pointer.is_symlink() or pointer.exists():
        pointer.unlink()
    try:
        pointer.symlink_to(os.path.relpath(target, pointer.parent))
    except OSError as e:
        logger.debug("Symlink %s failed (%s), copying instead", pointer, e)
        shutil.copyfile(target, pointer)


def _format_delta(agent: str, before: EvalResult, after: EvalResult) -> str:
    delta = after.final_score - before.final_score
    sign = "+" if delta > 0 else ""
    return (
        f"  {agent}: {sign}{delta:.2f} "
        f"({before.final_score:.2f} -> {after.final_score:.2f})"
    )


class FileReporter(Reporter):
    """Writes results to a timestamped run directory under ``results_dir``.

    Args:
        results_dir: Root directory for all runs and baselines
        run_name: Run directory name (defaults to the current timestamp)
    """

    def __init__(self, results_dir: str | Path = DEFAULT_RESULTS_DIR, run_name: str | None = None):
        self.results_dir = Path(results_dir)
        self.run_name = run_name or datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
        self._run_dir: Path | None = None

    @property
    def run_dir(self) -> Path:
        """The run directory, created on first use."""
        if self._run_dir is None:
            run_dir = self.results_dir / self.run_name
            suffix = 1
            while run_dir.exists():
                suffix += 1
                run_dir = self.results_dir / f"{self.run_name}-{suffix}"
            run_dir.mkdir(parents=True)
            self._run_dir = run_dir
            logger.info("Writing results to %s", run_dir)
        return self._run_dir

    def save_results(self, result: EvalResult, fixture: str, agent: str) -> Path:
        filename = f"{fixture}-{agent}.json"
        path = self.run_dir / filename
        with open(path, "w") as f:
            json.dump(
                {"fixture": fixture, "agent": agent, "result": result.to_dict()},
                f,
                indent=2,
            )
        _point_latest(path, self.results_dir / f"latest-{filename}")
        logger.debug("Saved %s", path)
        return path

    def generate_report(self, comparisons: Sequence[EvalComparison]) -> Path:
        path = self.run_dir / "report.md"
        path.write_text(render_markdown_report(comparisons))
        _point_latest(path, self.results_dir / "latest-report.md")
        logger.info("Report written to %s", path)
        return path

    def baseline_path(self, fixture: str) -> Path:
        return self.results_dir / f"baseline-{fixture}.json"

    def save_baseline(self, comparison: EvalComparison) -> Path:
        """Store ``comparison`` as the baseline for its fixture."""
        self.results_dir.mkdir(parents=True, exist_ok=True)
        path = self.baseline_path(comparison.fixture)
        with open(path, "w") as f:
            json.dump(comparison.to_dict(), f, indent=2)
        logger.info("Saved baseline for %s to %s", comparison.fixture, path)
        return path

    def load_baseline(self, fixture: str) -> EvalComparison | None:
        path = self.baseline_path(fixture)
        if not path.is_file():
            return None
        with open(path) as f:
            return EvalComparison.from_dict(json.load(f))

    def compare_with_baseline(self, comparison: EvalComparison) -> str | None:
        """Score deltas per agent against the stored baseline.

        Returns None when there is no baseline or no agent has a result on
        both sides.
        """
        baseline = self.load_baseline(comparison.fixture)
        if baseline is None:
            return None

        lines = []
        for agent in (comparison.agent_a, comparison.agent_b):
            current = comparison.result_for(agent)
            try:
                before = baseline.result_for(agent)
            except KeyError:
                continue
            if current is not None and before is not None:
                lines.append(_format_delta(agent, before, current))

        if not lines:
            return None
        return f"Baseline Comparison ({comparison.fixture}):\n" + "\n".join(lines)


__all__ = ["FileReporter", "DEFAULT_RESULTS_DIR"]
