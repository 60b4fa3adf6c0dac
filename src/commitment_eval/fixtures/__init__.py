"""Fixture discovery and loading, plus the bundled fixtures."""

from __future__ import annotations

from .loader import MODES, FixtureLoader, list_fixtures, load_fixture

__all__ = ["load_fixture", "list_fixtures", "FixtureLoader", "MODES"]
