"""Base generator interface for benchmarking any commit message agent.

Philosophy:
- Agent-agnostic: any backend that turns a change context into text is benchmarkable
- Raw output: generators return the agent's text as-is; cleaning and
  validation happen in AttemptRunner so they are scored the same for every agent
- Distinguishable failures: raise GenerationError with a kind, never return
  an error string as if it were a message

Public API:
    GenerationTask: What the commit is about
    GenerationContext: The change the agent should describe
    Generator: Abstract interface for commit message agents
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..core.errors import GenerationError, GenerationErrorKind


@dataclass(frozen=True)
class GenerationTask:
    """Task metadata describing the change being committed."""

    title: str
    description: str
    produces: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationContext:
    """Change context handed to the agent."""

    diff: str
    status: str
    workdir: str = "/tmp"


class Generator(ABC):
    """Interface for a commit message agent.

    Implement this to make your agent benchmarkable.

    Example::

        class MyAgent(Generator):
            def generate(self, task, context) -> str:
                return my_llm.complete(build_prompt(task, context))
    """

    @abstractmethod
    def generate(self, task: GenerationTask, context: GenerationContext) -> str:
        """Produce raw commit message text.

        Raises:
            GenerationError: with kind unavailable, execution_failed, timeout
                or malformed_output
        """

    def close(self) -> None:
        """Clean up resources."""

    @property
    def name(self) -> str:
        """Human-readable agent name."""
        return self.__class__.__name__


__all__ = [
    "GenerationTask",
    "GenerationContext",
    "Generator",
    "GenerationError",
    "GenerationErrorKind",
]
