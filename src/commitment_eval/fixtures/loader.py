"""Fixture loader.

Discovers and loads evaluation fixtures from the fixtures/ directory.
Each fixture is a directory holding a metadata file plus the change to
describe:

- mocked mode: ``<name>/`` with ``mock-diff.txt`` and ``mock-status.txt``
  (pre-recorded git output, fast and reproducible)
- live mode: ``<name>-live/``, a real git repository with staged changes;
  the loader runs ``git status --porcelain`` and ``git diff --cached`` in it

Metadata lives in ``metadata.yaml`` (or ``metadata.json``) with ``name``,
``description`` and ``expected_type``.

Public API:
    load_fixture(name, mode, fixtures_dir) -> Fixture
    list_fixtures(mode, fixtures_dir) -> list[str]
    FixtureLoader: Loader bound to a directory and default mode
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import yaml

from ..core.errors import ConfigurationError
from ..core.models import Fixture

logger = logging.getLogger(__name__)

# Directory containing bundled fixtures (same directory as this module)
_FIXTURES_DIR = Path(__file__).parent

MODES = ("mocked", "live")
_LIVE_SUFFIX = "-live"
_METADATA_FILES = ("metadata.yaml", "metadata.yml", "metadata.json")


def _check_mode(mode: str) -> None:
    if mode not in MODES:
        raise ConfigurationError(
            f"Unknown fixture mode {mode!r}; expected one of {', '.join(MODES)}",
            code="INVALID_MODE",
        )


def _fixture_path(name: str, mode: str, fixtures_dir: Path) -> Path:
    return fixtures_dir / (f"{name}{_LIVE_SUFFIX}" if mode == "live" else name)


def _read_metadata(fixture_path: Path) -> dict:
    """Read the fixture metadata. JSON is a subset of YAML, so one parser covers both."""
    for filename in _METADATA_FILES:
        path = fixture_path / filename
        if path.is_file():
            with open(path) as f:
                data = yaml.safe_load(f)
            if not isinstance(data, dict):
                raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")
            return data
    raise FileNotFoundError(f"No metadata file in {fixture_path}")


def _git(args: list[str], cwd: Path) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=30,
        check=True,
    )
    return result.stdout


def load_fixture(name: str, mode: str = "mocked", fixtures_dir: Path | None = None) -> Fixture:
    """Load a single fixture.

    Args:
        name: Fixture name (e.g. "simple"), without the ``-live`` suffix
        mode: "mocked" reads recorded git output, "live" runs git
        fixtures_dir: Override directory. Defaults to the bundled fixtures.

    Returns:
        Parsed Fixture.

    Raises:
        ConfigurationError: If the fixture is missing, unreadable, or git fails.
    """
    _check_mode(mode)
    search_dir = Path(fixtures_dir) if fixtures_dir else _FIXTURES_DIR
    fixture_path = _fixture_path(name, mode, search_dir)
    logger.debug("Loading %s fixture %s from %s", mode, name, fixture_path)

    if not fixture_path.is_dir():
        raise ConfigurationError.missing_fixture(name, f"{fixture_path} is not a directory")

    try:
        metadata = _read_metadata(fixture_path)
        if mode == "mocked":
            diff = (fixture_path / "mock-diff.txt").read_text()
            status = (fixture_path / "mock-status.txt").read_text()
        else:
            status = _git(["status", "--porcelain"], fixture_path)
            diff = _git(["diff", "--cached"], fixture_path)
    except (OSError, ValueError, yaml.YAMLError, subprocess.SubprocessError) as e:
        raise ConfigurationError.missing_fixture(name, str(e)) from e

    fixture_name = str(metadata.get("name") or name)
    if fixture_name != name:
        logger.warning(
            "Requested fixture %s but metadata contains name=%s in %s",
            name, fixture_name, fixture_path,
        )

    return Fixture(
        name=fixture_name,
        diff=diff,
        status=status,
        description=str(metadata.get("description", "")),
        expected_type=str(metadata.get("expected_type", metadata.get("expectedType", ""))),
    )


def list_fixtures(mode: str = "mocked", fixtures_dir: Path | None = None) -> list[str]:
    """Names of all fixtures available in ``mode``, sorted.

    Live fixtures are listed without their ``-live`` suffix.
    """
    _check_mode(mode)
    search_dir = Path(fixtures_dir) if fixtures_dir else _FIXTURES_DIR
    if not search_dir.is_dir():
        return []

    names = []
    for entry in sorted(search_dir.iterdir()):
        if not entry.is_dir() or entry.name.startswith(("_", ".")):
            continue
        is_live = entry.name.endswith(_LIVE_SUFFIX)
        if mode == "live" and is_live:
            names.append(entry.name[: -len(_LIVE_SUFFIX)])
        elif mode == "mocked" and not is_live:
            names.append(entry.name)
    return names


class FixtureLoader:
    """Fixture source bound to a directory and a default mode.

    Args:
        fixtures_dir: Directory to search. Defaults to the bundled fixtures.
        mode: Default mode for ``load`` and ``list``
    """

    def __init__(self, fixtures_dir: Path | None = None, mode: str = "mocked"):
        _check_mode(mode)
        self.fixtures_dir = Path(fixtures_dir) if fixtures_dir else _FIXTURES_DIR
        self.mode = mode

    def load(self, name: str, mode: str | None = None) -> Fixture:
        return load_fixture(name, mode or self.mode, self.fixtures_dir)

    def list(self, mode: str | None = None) -> list[str]:
        return list_fixtures(mode or self.mode, self.fixtures_dir)


__all__ = [
    "load_fixture",
    "list_fixtures",
    "FixtureLoader",
    "MODES",
]
