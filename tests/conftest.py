from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Ensure src/ is importable when the package is not installed
ROOT = TESTS_DIR.parent
for extra in (ROOT / "src",):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import WorkspaceBuilder  # noqa: E402

_QUAZAR_ENV = (
    "QUAZAR_CONFIG",
    "QUAZAR_DATA_HOME",
    "QUAZAR_BANKS_DIR",
    "QUAZAR_LOG_LEVEL",
    "QUAZAR_UNIQUE_ANSWER_ONLY",
)


@pytest.fixture(autouse=True)
def _isolate_quazar_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep tests away from the real ~/.quazar-data workspace."""

    for name in _QUAZAR_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("QUAZAR_DATA_HOME", str(tmp_path / "quazar-home"))
    yield


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _reset_quazar_loggers() -> Iterator[None]:
    """Undo handlers installed by ``configure_logger`` during CLI tests."""

    yield
    logger = logging.getLogger("quazar.quiz")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
