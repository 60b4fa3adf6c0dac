"""CLI entry point: commitment-eval

Subcommands:
    run       Compare two agents on one or more fixtures
    fixtures  List the available fixtures
    report    Print a saved result or report

Usage:
    commitment-eval run --fixture simple
    commitment-eval run --mode live --agents claude,gemini --failure-policy skip_fixture
    commitment-eval run --offline --save-baseline
    commitment-eval report .eval-results/latest-simple-claude.json
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from pathlib import Path

from .config import EvalConfig, parse_agents
from .core.errors import ConfigurationError
from .core.runner import EvalRunner, FailurePolicy
from .fixtures.loader import MODES

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _config_from_args(args: argparse.Namespace) -> EvalConfig:
    """Environment config with CLI flags applied on top."""
    config = EvalConfig.from_env()
    if args.agents:
        config.agents = parse_agents(args.agents)
    if args.mode:
        config.mode = args.mode
    if args.fixtures_dir:
        config.fixtures_dir = Path(args.fixtures_dir)
    if args.output_dir:
        config.results_dir = Path(args.output_dir)
    if args.offline:
        config.offline = True
    if args.failure_policy:
        config.failure_policy = FailurePolicy(args.failure_policy)
    if args.judge_model:
        config.judge_model = args.judge_model
    config.validate()
    return config


def build_runner(config: EvalConfig):
    """Wire generators, judge, reporter and runner from ``config``.

    Returns:
        Tuple of (EvalRunner, FileReporter, dict of created generators)

    Raises:
        ConfigurationError: If the judge has no credentials
    """
    from .core.attempt_runner import AttemptRunner
    from .core.meta_evaluator import MetaEvaluator
    from .generators.subprocess_generator import SubprocessGenerator
    from .judge.anthropic_judge import AnthropicJudge
    from .judge.heuristic import HeuristicJudge
    from .reporting.file_reporter import FileReporter

    if config.offline:
        judge = HeuristicJudge()
    else:
        judge = AnthropicJudge(model=config.judge_model)

    generators: dict[str, SubprocessGenerator] = {}

    def generator_for(agent: str) -> SubprocessGenerator:
        if agent not in generators:
            generators[agent] = SubprocessGenerator(
                agent,
                command=config.command_for(agent),
                timeout=config.generator_timeout,
            )
        return generators[agent]

    reporter = FileReporter(config.results_dir)
    runner = EvalRunner(
        AttemptRunner(generator_for, judge),
        MetaEvaluator(judge),
        reporter,
        agents=config.agents,
        failure_policy=config.failure_policy,
        tie_threshold=config.tie_threshold,
    )
    return runner, reporter, generators


def _install_stop_handlers(runner: EvalRunner) -> dict:
    """Route SIGINT/SIGTERM to a graceful stop. Returns the previous handlers."""

    def _handle(signum, frame):
        logger.warning(
            "Received %s, stopping after the current agent finishes",
            signal.Signals(signum).name,
        )
        runner.request_stop()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, _handle)
    return previous


def _cmd_run(args: argparse.Namespace) -> int:
    """Compare two agents on the selected fixtures."""
    from .fixtures.loader import FixtureLoader
    from .reporting.markdown import print_summary

    _configure_logging(args.verbose)

    try:
        config = _config_from_args(args)
        runner, reporter, generators = build_runner(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.agent and args.agent not in config.agents:
        print(
            f"Error: --agent {args.agent!r} is not one of the configured agents "
            f"{', '.join(config.agents)}",
            file=sys.stderr,
        )
        return 1

    loader = FixtureLoader(config.fixtures_dir, config.mode)
    previous_handlers = _install_stop_handlers(runner)
    try:
        if args.fixture:
            comparisons = runner.run_named(args.fixture, loader, agent=args.agent)
        else:
            comparisons = runner.run_all(loader, agent=args.agent)
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
        for generator in generators.values():
            generator.close()

    print_summary(comparisons)

    for comparison in comparisons:
        delta = reporter.compare_with_baseline(comparison)
        if delta:
            print(f"\n{delta}")
        if args.save_baseline:
            if comparison.winner is None:
                logger.warning("Not saving baseline for incomplete fixture %s", comparison.fixture)
            else:
                reporter.save_baseline(comparison)

    print(f"\nReport saved to {reporter.run_dir / 'report.md'}")

    if not comparisons and not runner.stop_requested:
        print("Error: No fixtures could be evaluated", file=sys.stderr)
        return 1
    return 0


def _cmd_fixtures(args: argparse.Namespace) -> int:
    """List available fixtures."""
    from .fixtures.loader import list_fixtures

    try:
        names = list_fixtures(args.mode, Path(args.fixtures_dir) if args.fixtures_dir else None)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    for name in names:
        print(name)
    return 0


def _cmd_report(args: argparse.Namespace) -> int:
    """Print a saved result JSON or markdown report."""
    report_path = Path(args.report_file)
    if not report_path.exists():
        print(f"Error: Report file not found: {report_path}", file=sys.stderr)
        return 1

    if report_path.suffix == ".md":
        print(report_path.read_text())
        return 0

    with open(report_path) as f:
        data = json.load(f)

    print(json.dumps(data, indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="commitment-eval",
        description="Head-to-head evaluation of AI commit message agents",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- run ---
    run_parser = subparsers.add_parser("run", help="Compare two agents on fixtures")
    run_parser.add_argument(
        "--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Verbose logging"
    )
    run_parser.add_argument(
        "--fixture", action="append", default=None, help="Fixture name (repeatable; default: all)"
    )
    run_parser.add_argument("--mode", choices=MODES, default=None, help="Fixture mode")
    run_parser.add_argument("--agent", default=None, help="Evaluate only this agent")
    run_parser.add_argument("--agents", default=None, help="Comma-separated pair of agents")
    run_parser.add_argument("--fixtures-dir", default=None, help="Fixture directory")
    run_parser.add_argument("--output-dir", default=None, help="Results directory")
    run_parser.add_argument("--judge-model", default=None, help="Model for the LLM judge")
    run_parser.add_argument(
        "--offline", action="store_true", help="Score with the heuristic judge (no API calls)"
    )
    run_parser.add_argument(
        "--failure-policy",
        choices=[p.value for p in FailurePolicy],
        default=None,
        help="What to do when an agent evaluation fails unexpectedly",
    )
    run_parser.add_argument(
        "--save-baseline", action="store_true", help="Store results as the new baseline"
    )

    # --- fixtures ---
    fix_parser = subparsers.add_parser("fixtures", help="List available fixtures")
    fix_parser.add_argument("--mode", choices=MODES, default="mocked", help="Fixture mode")
    fix_parser.add_argument("--fixtures-dir", default=None, help="Fixture directory")

    # --- report ---
    rpt_parser = subparsers.add_parser("report", help="Print a saved result or report")
    rpt_parser.add_argument("report_file", help="Path to a result JSON or report markdown file")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    handlers = {
        "run": _cmd_run,
        "fixtures": _cmd_fixtures,
        "report": _cmd_report,
    }

    handler = handlers.get(args.command)
    if handler:
        sys.exit(handler(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
