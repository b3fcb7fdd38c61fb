"""Tests for reset mode."""

from unittest.mock import MagicMock

from grcinit.reset import node_modules_dirs, reset_all
from grcinit.tools import Compose


def _make_result(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


def _populate(settings):
    settings.env_path.write_text("POSTGRES_PASSWORD=x\n")
    for directory in node_modules_dirs(settings.project_root):
        (directory / 'pkg').mkdir(parents=True)


class TestResetAll:

    def test_declined_touches_nothing(self, settings, runner, console, mock_subprocess):
        _populate(settings)

        assert reset_all(settings, Compose(runner), console) is False

        mock_subprocess.assert_not_called()
        assert settings.env_path.exists()
        assert all(d.is_dir() for d in node_modules_dirs(settings.project_root))
        assert "Aborted" in console.stream.getvalue()

    def test_confirmed_removes_everything(self, settings, runner, console, mock_subprocess):
        _populate(settings)
        (settings.project_root / 'frontend' / 'src').mkdir(parents=True)
        console.yes = True

        assert reset_all(settings, Compose(runner), console) is True

        mock_subprocess.assert_called_once()
        assert mock_subprocess.call_args.args[0] == ['docker', 'compose', 'down', '-v']
        assert not settings.env_path.exists()
        assert not any(d.exists() for d in node_modules_dirs(settings.project_root))
        # Sources next to node_modules survive
        assert (settings.project_root / 'frontend' / 'src').is_dir()

    def test_compose_failure_still_removes_files(self, settings, runner, console, mock_subprocess):
        _populate(settings)
        console.yes = True
        mock_subprocess.return_value = _make_result(1, stderr="Cannot connect to the Docker daemon")

        assert reset_all(settings, Compose(runner), console) is True

        assert not settings.env_path.exists()
        assert "Could not stop containers" in console.stream.getvalue()

    def test_nothing_to_remove(self, settings, runner, console, mock_subprocess):
        console.yes = True
        assert reset_all(settings, Compose(runner), console) is True
        assert "Reset complete" in console.stream.getvalue()

    def test_node_modules_dirs_cover_every_package(self, project_root):
        dirs = {str(d.relative_to(project_root)) for d in node_modules_dirs(project_root)}
        assert 'node_modules' in dirs
        assert 'frontend/node_modules' in dirs
        assert 'services/shared/node_modules' in dirs
        assert 'services/controls/node_modules' in dirs
        assert 'services/audit/node_modules' in dirs
