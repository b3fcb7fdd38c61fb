"""Shared fixtures for launcher tests.

Provides a quiet console, settings rooted in a temporary project directory,
and a configurable mock for every external command the launcher runs.
"""

import io
import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from grcinit.config import Settings
from grcinit.console import Console
from grcinit.tools import CommandRunner


def _make_result(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


# ---------------------------------------------------------------------------
# Console / settings
# ---------------------------------------------------------------------------

@pytest.fixture
def console():
    """Console with color disabled, writing into a StringIO.

    Read what was printed with ``console.stream.getvalue()``.
    """
    return Console(color_enabled=False, yes=False, stream=io.StringIO())


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "gigachad-grc"
    root.mkdir()
    return root


@pytest.fixture
def settings(project_root, monkeypatch):
    """Settings rooted in a temp checkout, ignoring any GRC_INIT_* in the shell."""
    for key in list(os.environ):
        if key.startswith("GRC_INIT_"):
            monkeypatch.delenv(key)
    return Settings(project_root=project_root)


@pytest.fixture
def runner(project_root):
    return CommandRunner(project_root)


# ---------------------------------------------------------------------------
# Subprocess mock fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Patch subprocess.run for every command the launcher runs.

    The mock returns returncode=0 and empty stdout/stderr by default.
    Tests can override via mock_subprocess.return_value or side_effect.
    """
    mock_result = _make_result()
    with patch("grcinit.tools.subprocess.run", return_value=mock_result) as mock_run:
        mock_run._default_result = mock_result
        yield mock_run


@pytest.fixture
def fake_sleep():
    """Records requested sleeps instead of waiting."""
    return AsyncMock()
