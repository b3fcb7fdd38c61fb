"""The Vite dev server, run in the foreground for the demo modes."""

import asyncio
import logging
import os
import platform
import signal
from pathlib import Path
from typing import Optional

from grcinit.config import SHUTDOWN_TIMEOUT, STARTUP_GRACE
from grcinit.console import Console
from grcinit.errors import ExternalToolFailure
from grcinit.probes import Probe
from grcinit.tools import CommandRunner

logger = logging.getLogger(__name__)

DEV_COMMAND = ['npm', 'run', 'dev']
DEV_HINT = "Run 'npm run dev' in frontend/ to see why the dev server exited."


class FrontendServer:
    """Spawns ``npm run dev`` in its own process group and tears it down."""

    def __init__(self, frontend_dir: Path, runner: CommandRunner, console: Console):
        self.frontend_dir = frontend_dir
        self.runner = runner
        self.console = console
        self.process: Optional[asyncio.subprocess.Process] = None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self) -> None:
        if self.running:
            return

        if not (self.frontend_dir / 'node_modules').is_dir():
            self.console.substep("Installing frontend dependencies...")
            await asyncio.to_thread(
                self.runner.check, ['npm', 'install'], cwd=self.frontend_dir, capture=False,
            )

        self.console.substep("Starting Vite development server...")
        env = os.environ.copy()
        env['VITE_ENABLE_DEV_AUTH'] = 'true'
        try:
            # Own session: the server never holds the terminal, and the whole
            # npm -> vite tree can be signalled at once.
            self.process = await asyncio.create_subprocess_exec(
                *DEV_COMMAND,
                cwd=str(self.frontend_dir),
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except FileNotFoundError:
            raise ExternalToolFailure(DEV_COMMAND, 127, "'npm' is not installed")
        logger.debug("Frontend dev server started with pid %s", self.process.pid)

        # A broken install or a taken port makes npm exit within moments.
        try:
            await asyncio.wait_for(self.process.wait(), timeout=STARTUP_GRACE)
        except asyncio.TimeoutError:
            return
        self.raise_if_exited()

    def raise_if_exited(self) -> None:
        """Raise ExternalToolFailure if the spawned dev server has already exited."""
        if self.process is None or self.process.returncode is None:
            return
        logger.debug("Frontend dev server exited with %s", self.process.returncode)
        raise ExternalToolFailure(DEV_COMMAND, self.process.returncode, DEV_HINT)

    async def wait(self) -> Optional[int]:
        """Block until the dev server exits."""
        if self.process is None:
            return None
        return await self.process.wait()

    async def stop(self) -> None:
        """Stop the dev server and every process it spawned."""
        process = self.process
        if process is None or process.returncode is not None:
            return

        self.console.substep("Stopping frontend dev server...")
        self._signal(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            self.console.warning("Frontend did not exit, force killing...")
            self._signal(process, signal.SIGKILL if hasattr(signal, 'SIGKILL') else signal.SIGTERM)
            await process.wait()

    def _signal(self, process: asyncio.subprocess.Process, sig: int) -> None:
        try:
            if platform.system() != 'Windows':
                os.killpg(process.pid, sig)
            elif sig == signal.SIGTERM:
                process.terminate()
            else:
                process.kill()
        except ProcessLookupError:
            pass
        except (PermissionError, OSError):
            process.kill()


class DevServerProbe(Probe):
    """Wraps a readiness probe; fails at once when the dev server has died."""

    def __init__(self, server: FrontendServer, probe: Probe):
        self.server = server
        self.probe = probe
        self.description = probe.description

    async def check(self) -> bool:
        self.server.raise_if_exited()
        return await self.probe.check()
