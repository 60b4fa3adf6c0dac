"""Commit message generators for the evaluation harness.

Provides the Generator interface and a subprocess generator that drives
any agent CLI.
"""

from __future__ import annotations

from .base import GenerationContext, GenerationTask, Generator
from .subprocess_generator import SubprocessGenerator

__all__ = [
    "Generator",
    "GenerationTask",
    "GenerationContext",
    "SubprocessGenerator",
]
