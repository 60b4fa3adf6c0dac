"""Run configuration read from environment variables.

CLI flags override these values; see ``cli.py``.

Environment:
    EVAL_AGENTS                 Comma-separated pair of agents (default: claude,codex)
    EVAL_AGENT_<NAME>_COMMAND   Command that runs an agent (e.g. "claude --print")
    JUDGE_MODEL                 Anthropic model used by the judge
    EVAL_OFFLINE                "1"/"true" to score with the heuristic judge only
    EVAL_RESULTS_DIR            Where results and reports are written
    EVAL_FIXTURES_DIR           Fixture directory (default: bundled fixtures)
    EVAL_MODE                   "mocked" or "live"
    EVAL_GENERATOR_TIMEOUT      Seconds per agent call
    EVAL_FAILURE_POLICY         continue, skip_fixture or abort
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .core.errors import ConfigurationError
from .core.runner import DEFAULT_AGENTS, TIE_THRESHOLD, FailurePolicy
from .fixtures.loader import MODES
from .judge.anthropic_judge import DEFAULT_JUDGE_MODEL
from .reporting.file_reporter import DEFAULT_RESULTS_DIR

DEFAULT_AGENT_COMMANDS: dict[str, list[str]] = {
    "claude": ["claude", "--print"],
    "codex": ["codex", "exec"],
    "gemini": ["gemini", "--prompt"],
}
DEFAULT_GENERATOR_TIMEOUT = 120.0

_TRUE_VALUES = ("1", "true", "yes", "on")


def parse_agents(value: str) -> tuple[str, ...]:
    """Split "a,b" into agent names, dropping blanks."""
    return tuple(name.strip() for name in value.split(",") if name.strip())


def _command_env_var(agent: str) -> str:
    return f"EVAL_AGENT_{agent.upper().replace('-', '_')}_COMMAND"


@dataclass
class EvalConfig:
    """Settings for one evaluation run."""

    agents: tuple[str, ...] = DEFAULT_AGENTS
    agent_commands: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_AGENT_COMMANDS.items()}
    )
    judge_model: str = DEFAULT_JUDGE_MODEL
    offline: bool = False
    results_dir: Path = Path(DEFAULT_RESULTS_DIR)
    fixtures_dir: Path | None = None
    mode: str = "mocked"
    generator_timeout: float = DEFAULT_GENERATOR_TIMEOUT
    failure_policy: FailurePolicy = FailurePolicy.CONTINUE
    tie_threshold: float = TIE_THRESHOLD

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EvalConfig:
        """Build a config from environment variables, defaults for anything unset."""
        env = os.environ if environ is None else environ
        config = cls()

        if env.get("EVAL_AGENTS"):
            config.agents = parse_agents(env["EVAL_AGENTS"])
        if env.get("JUDGE_MODEL"):
            config.judge_model = env["JUDGE_MODEL"]
        if env.get("EVAL_OFFLINE"):
            config.offline = env["EVAL_OFFLINE"].strip().lower() in _TRUE_VALUES
        if env.get("EVAL_RESULTS_DIR"):
            config.results_dir = Path(env["EVAL_RESULTS_DIR"])
        if env.get("EVAL_FIXTURES_DIR"):
            config.fixtures_dir = Path(env["EVAL_FIXTURES_DIR"])
        if env.get("EVAL_MODE"):
            config.mode = env["EVAL_MODE"]
        if env.get("EVAL_GENERATOR_TIMEOUT"):
            try:
                config.generator_timeout = float(env["EVAL_GENERATOR_TIMEOUT"])
            except ValueError as e:
                raise ConfigurationError(
                    f"EVAL_GENERATOR_TIMEOUT must be a number, got {env['EVAL_GENERATOR_TIMEOUT']!r}",
                    code="INVALID_CONFIG",
                ) from e
        if env.get("EVAL_FAILURE_POLICY"):
            config.failure_policy = _parse_policy(env["EVAL_FAILURE_POLICY"])

        for key, value in env.items():
            if key.startswith("EVAL_AGENT_") and key.endswith("_COMMAND") and value.strip():
                agent = key[len("EVAL_AGENT_") : -len("_COMMAND")].lower().replace("_", "-")
                config.agent_commands[agent] = shlex.split(value)

        return config

    def validate(self) -> None:
        """Raise ConfigurationError if the settings cannot drive a run."""
        if len(self.agents) != 2 or self.agents[0] == self.agents[1]:
            raise ConfigurationError(
                f"Exactly two distinct agents are required, got {list(self.agents)}",
                code="INVALID_AGENTS",
            )
        for agent in self.agents:
            self.command_for(agent)
        if self.mode not in MODES:
            raise ConfigurationError(
                f"Unknown fixture mode {self.mode!r}; expected one of {', '.join(MODES)}",
                code="INVALID_MODE",
            )
        if self.generator_timeout <= 0:
            raise ConfigurationError(
                f"Generator timeout must be positive, got {self.generator_timeout}",
                code="INVALID_CONFIG",
            )

    def command_for(self, agent: str) -> list[str]:
        command = self.agent_commands.get(agent)
        if not command:
            raise ConfigurationError(
                f"No command configured for agent {agent!r}.\n\n"
                f"How to fix:\n- Set {_command_env_var(agent)}",
                code="INVALID_AGENTS",
            )
        return list(command)


def _parse_policy(value: str) -> FailurePolicy:
    try:
        return FailurePolicy(value.strip().lower())
    except ValueError as e:
        choices = ", ".join(p.value for p in FailurePolicy)
        raise ConfigurationError(
            f"Unknown failure policy {value!r}; expected one of {choices}",
            code="INVALID_CONFIG",
        ) from e


__all__ = ["EvalConfig", "DEFAULT_AGENT_COMMANDS", "parse_agents"]
