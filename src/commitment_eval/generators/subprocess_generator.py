"""Generator for any commit message agent accessible via CLI subprocess.

Runs the agent as a subprocess, sends the prompt via stdin, and reads the
commit message from stdout. Supports any agent that can be invoked from
the command line (claude, codex, gemini, ...).

Usage::

    from commitment_eval.generators.subprocess_generator import SubprocessGenerator

    generator = SubprocessGenerator("claude", command=["claude", "--print"])
    text = generator.generate(task, context)
"""

from __future__ import annotations

import logging
import os
import subprocess

from ..core.commit_format import COMMIT_END_MARKER, COMMIT_START_MARKER
from ..core.errors import GenerationError
from .base import GenerationContext, GenerationTask, Generator

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIFF_CHARS = 8000


def build_prompt(
    task: GenerationTask,
    context: GenerationContext,
    max_diff_chars: int = DEFAULT_MAX_DIFF_CHARS,
) -> str:
    """Build the commit message prompt sent to a CLI agent."""
    diff = context.diff
    if len(diff) > max_diff_chars:
        diff = diff[:max_diff_chars] + "\n... (diff truncated)"
    files = "\n".join(f"- {f}" for f in task.produces) or "- (none listed)"

    return f"""Generate a commit message for these staged changes.

Task: {task.title}
Description: {task.description}

Changed files:
{files}

Git status:
{context.status}

Git diff:
```diff
{diff}
```

Requirements:
1. Follow Conventional Commits: type(scope): description
2. Title of 50 characters or less, imperative mood
3. Blank line, then a few bullet points covering the key changes
4. No preamble or explanation

Return ONLY the commit message between these markers:
{COMMIT_START_MARKER}
(commit message goes here)
{COMMIT_END_MARKER}"""


class SubprocessGenerator(Generator):
    """Generator for agents accessible via CLI subprocess.

    The agent is invoked once per attempt. The prompt is written to stdin
    and stdout is returned unmodified (apart from surrounding whitespace).

    Args:
        agent_name: Name of the agent being benchmarked (e.g. "claude")
        command: Command that runs the agent (e.g. ["claude", "--print"])
        timeout: Timeout in seconds for each subprocess call
        env: Additional environment variables for the subprocess
    """

    def __init__(
        self,
        agent_name: str,
        command: list[str],
        timeout: float = 120.0,
        env: dict[str, str] | None = None,
    ):
        if not command:
            raise ValueError("command must not be empty")
        self._agent_name = agent_name
        self._command = list(command)
        self._timeout = timeout
        self._env = env

    def generate(self, task: GenerationTask, context: GenerationContext) -> str:
        """Run the agent CLI and return its stdout."""
        prompt = build_prompt(task, context)
        env = dict(os.environ)
        if self._env:
            env.update(self._env)

        try:
            result = subprocess.run(
                self._command,
                input=prompt,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=env,
                cwd=context.workdir,
                start_new_session=True,
            )
        except subprocess.TimeoutExpired as e:
            logger.debug("%s timed out after %.1fs", self._agent_name, self._timeout)
            raise GenerationError.timeout(self._agent_name, self._timeout) from e
        except FileNotFoundError as e:
            logger.debug("Command not found: %s", self._command)
            raise GenerationError.unavailable(self._agent_name, self._command[0]) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()[:500]
            logger.debug("%s returned %d: %s", self._agent_name, result.returncode, stderr)
            raise GenerationError.execution_failed(
                self._agent_name, f"exit code {result.returncode}: {stderr or 'no stderr'}"
            )

        return (result.stdout or "").strip()

    @property
    def name(self) -> str:
        return self._agent_name


__all__ = ["SubprocessGenerator", "build_prompt"]
