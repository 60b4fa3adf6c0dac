"""Rendering of comparisons as a markdown report and a console summary."""

from __future__ import annotations

from typing import Sequence

from ..core.models import AttemptOutcome, EvalComparison, EvalResult, SuccessOutcome, Winner


def _format_attempt(attempt: AttemptOutcome) -> list[str]:
    lines = [f"#### Attempt {attempt.attempt_number}", ""]
    if isinstance(attempt, SuccessOutcome):
        m = attempt.metrics
        lines += [
            "**Status:** Success",
            f"**Response Time:** {attempt.response_time_ms}ms",
            "",
            "**Commit Message:**",
            "```",
            attempt.commit_message,
            "```",
            "",
            f"**Score:** {attempt.overall_score:.1f}",
            "",
            "| Metric | Score |",
            "| --- | --- |",
            f"| Clarity | {m.clarity:.1f} |",
            f"| Specificity | {m.specificity:.1f} |",
            f"| Conventional Format | {m.conventional_format:.1f} |",
            f"| Scope | {m.scope:.1f} |",
            "",
        ]
        if attempt.feedback:
            lines += [f"**Feedback:** {attempt.feedback}", ""]
    else:
        lines += [
            "**Status:** Failed",
            f"**Response Time:** {attempt.response_time_ms}ms",
            f"**Failure Type:** {attempt.failure_type.value}",
            f"**Failure Reason:** {attempt.failure_reason}",
            "",
        ]
    return lines


def _format_result(result: EvalResult) -> list[str]:
    lines = ["### Attempts", ""]
    for attempt in result.attempts:
        lines += _format_attempt(attempt)
    lines += [
        "### Meta-Evaluation" + (" (fallback)" if result.fallback else ""),
        "",
        "| Metric | Value |",
        "| --- | --- |",
        f"| Final Score | {result.final_score:.1f} |",
        f"| Consistency Score | {result.consistency_score:.1f} |",
        f"| Error Rate Impact | {result.error_rate_impact:.1f} |",
        f"| Success Rate | {result.success_rate} |",
        f"| Best Attempt | {result.best_attempt if result.best_attempt is not None else 'None'} |",
        "",
        "**Reasoning:**",
        "",
        result.reasoning,
        "",
    ]
    return lines


def _score_cell(result: EvalResult | None) -> str:
    return f"{result.final_score:.2f} ({result.success_rate})" if result else "n/a"


def render_markdown_report(comparisons: Sequence[EvalComparison]) -> str:
    """Render a batch of comparisons as one markdown document."""
    lines = ["# Evaluation Report", ""]
    if not comparisons:
        lines += ["No fixtures were evaluated.", ""]
        return "\n".join(lines)

    agent_a, agent_b = comparisons[0].agent_a, comparisons[0].agent_b
    lines += [
        "## Summary",
        "",
        f"| Fixture | {agent_a} | {agent_b} | Winner |",
        "| --- | --- | --- | --- |",
    ]
    for c in comparisons:
        lines.append(
            f"| {c.fixture} | {_score_cell(c.agent_a_result)} | "
            f"{_score_cell(c.agent_b_result)} | {c.winner_name or 'incomplete'} |"
        )
    lines.append("")

    for c in comparisons:
        lines += [f"## Fixture: {c.fixture}", ""]
        if c.winner == Winner.TIE:
            lines += ["**Winner:** Tie", ""]
        elif c.winner is not None:
            lines += [f"**Winner:** {c.winner_name}", ""]
        for agent, result in ((c.agent_a, c.agent_a_result), (c.agent_b, c.agent_b_result)):
            lines += [f"### {agent} Results", ""]
            if result is None:
                lines += ["No results available.", ""]
            else:
                lines += _format_result(result)

    return "\n".join(lines)


def print_summary(comparisons: Sequence[EvalComparison]) -> None:
    """Print a human-readable summary of a batch of comparisons."""
    print("\n" + "=" * 70)
    print("COMMIT MESSAGE EVALUATION SUMMARY")
    print("=" * 70)
    if not comparisons:
        print("No fixtures were evaluated.")
        return

    agent_a, agent_b = comparisons[0].agent_a, comparisons[0].agent_b
    print(f"{'Fixture':<24} {agent_a:>16} {agent_b:>16} {'Winner':>10}")
    print("-" * 70)
    for c in comparisons:
        print(
            f"{c.fixture:<24} {_score_cell(c.agent_a_result):>16} "
            f"{_score_cell(c.agent_b_result):>16} {c.winner_name or 'n/a':>10}"
        )
    print("-" * 70)

    wins: dict[str, int] = {}
    for c in comparisons:
        if c.winner_name:
            wins[c.winner_name] = wins.get(c.winner_name, 0) + 1
    if wins:
        print("Wins: " + ", ".join(f"{name}: {count}" for name, count in sorted(wins.items())))

    # Failed attempts
    for c in comparisons:
        for agent, result in ((c.agent_a, c.agent_a_result), (c.agent_b, c.agent_b_result)):
            if result is None:
                continue
            for failure in result.failures:
                reason = failure.failure_reason.splitlines()[0][:80]
                print(
                    f"  [{c.fixture}/{agent}] attempt {failure.attempt_number} "
                    f"{failure.failure_type.value}: {reason}"
                )


__all__ = ["render_markdown_report", "print_summary"]
