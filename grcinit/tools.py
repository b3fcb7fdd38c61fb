"""Thin wrappers around the external command-line tools the launcher drives."""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from grcinit.errors import ExternalToolFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1800  # image builds and npm installs can be slow
SECRET_FLAGS = ('-a', '--pass', '--password')


def redact(cmd: Sequence[str]) -> List[str]:
    """Copy of ``cmd`` with the value after any password flag masked."""
    redacted = list(cmd)
    for i, arg in enumerate(redacted[:-1]):
        if arg in SECRET_FLAGS:
            redacted[i + 1] = '***'
    return redacted


class CommandRunner:
    """Runs external commands relative to the project root."""

    def __init__(self, project_root: Path):
        self.project_root = project_root

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def run(
        self,
        cmd: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        capture: bool = True,
        timeout: Optional[int] = DEFAULT_TIMEOUT,
    ) -> subprocess.CompletedProcess:
        """Run a command and return the completed process, whatever its exit code.

        Raises FileNotFoundError when the executable does not exist.
        """
        workdir = cwd or self.project_root
        logger.debug("Running %s (cwd=%s)", " ".join(redact(cmd)), workdir)
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)
        return subprocess.run(
            list(cmd),
            cwd=str(workdir),
            env=full_env,
            capture_output=capture,
            text=True,
            timeout=timeout,
        )

    def succeeds(self, cmd: Sequence[str], cwd: Optional[Path] = None, timeout: int = 10) -> bool:
        """True when the command exists and exits 0."""
        try:
            return self.run(cmd, cwd=cwd, timeout=timeout).returncode == 0
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return False

    def output(self, cmd: Sequence[str], timeout: int = 10) -> Optional[str]:
        """Stripped stdout of a successful command, or None."""
        try:
            result = self.run(cmd, timeout=timeout)
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return None
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip()

    def check(
        self,
        cmd: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        hint: Optional[str] = None,
        capture: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run a command and raise ExternalToolFailure on a non-zero exit."""
        try:
            result = self.run(cmd, cwd=cwd, env=env, capture=capture)
        except FileNotFoundError:
            raise ExternalToolFailure(redact(cmd), 127, hint or f"'{cmd[0]}' is not installed")
        if result.returncode != 0:
            stderr = (result.stderr or "").strip() if capture else ""
            if stderr:
                logger.error("%s: %s", " ".join(redact(cmd)), stderr)
            raise ExternalToolFailure(redact(cmd), result.returncode, hint)
        return result


class Compose:
    """Docker Compose invocations for the project's stack.

    ``command`` is the resolved prefix, either ``docker compose`` or the
    standalone ``docker-compose`` binary.
    """

    def __init__(
        self,
        runner: CommandRunner,
        command: Sequence[str] = ('docker', 'compose'),
        files: Sequence[str] = (),
    ):
        self.runner = runner
        self.command = list(command)
        self.files = list(files)

    def with_files(self, *files: str) -> "Compose":
        return Compose(self.runner, self.command, files)

    def _base(self) -> List[str]:
        cmd = list(self.command)
        for name in self.files:
            cmd.extend(['-f', name])
        return cmd

    def describe(self, *args: str) -> str:
        """Human-readable command line, used in operator hints."""
        return " ".join(self._base() + list(args))

    def up(self, services: Sequence[str]) -> None:
        self.runner.check(
            self._base() + ['up', '-d', *services],
            hint=f"Check logs with: {self.describe('logs', '-f', *services[:1])}",
        )

    def exec_command(self, service: str, *args: str) -> List[str]:
        """Command line for running ``args`` inside a running service container."""
        return self._base() + ['exec', '-T', service, *args]

    def down(self, volumes: bool = False) -> None:
        cmd = self._base() + ['down']
        if volumes:
            cmd.append('-v')
        self.runner.check(cmd)

    def volume_exists(self, name: str) -> bool:
        return self.runner.succeeds(['docker', 'volume', 'inspect', name])


def detect_compose_command(runner: CommandRunner) -> Optional[List[str]]:
    """Prefer the Compose v2 plugin, fall back to standalone docker-compose."""
    if runner.succeeds(['docker', 'compose', 'version']):
        return ['docker', 'compose']
    if runner.which('docker-compose'):
        return ['docker-compose']
    return None
