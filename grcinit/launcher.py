"""Run a mode plan, and shut down cleanly on SIGINT/SIGTERM."""

import asyncio
import logging
import signal
import webbrowser
from typing import Optional

from grcinit.config import Settings
from grcinit.console import Console
from grcinit.modes import ModePlan, get_plan
from grcinit.report import print_report
from grcinit.sequencer import ReadinessSequencer
from grcinit.stages import LaunchContext
from grcinit.tools import CommandRunner

logger = logging.getLogger(__name__)


class SignalHandler:
    """Turns SIGINT/SIGTERM into an asyncio event."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self):
        self.shutdown_event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed = []
        self._previous = {}

    def setup(self) -> None:
        self._loop = asyncio.get_running_loop()
        for sig in self.SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.shutdown_event.set)
                self._installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no add_signal_handler
                self._previous[sig] = signal.signal(sig, self._handle_signal)

    def _handle_signal(self, signum, frame):
        assert self._loop is not None
        self._loop.call_soon_threadsafe(self.shutdown_event.set)

    def restore(self) -> None:
        if self._loop is not None:
            for sig in self._installed:
                self._loop.remove_signal_handler(sig)
        for sig, previous in self._previous.items():
            signal.signal(sig, previous)
        self._installed = []
        self._previous = {}

    async def wait_for_shutdown(self) -> None:
        await self.shutdown_event.wait()


class Launcher:
    """Executes one mode plan against a LaunchContext."""

    def __init__(self, ctx: LaunchContext, open_browser: bool = True):
        self.ctx = ctx
        self.open_browser = open_browser

    @classmethod
    def create(
        cls,
        settings: Settings,
        console: Console,
        open_browser: bool = True,
    ) -> "Launcher":
        runner = CommandRunner(settings.project_root)
        ctx = LaunchContext(
            settings=settings,
            console=console,
            runner=runner,
            sequencer=ReadinessSequencer(console),
        )
        return cls(ctx, open_browser=open_browser)

    async def run(self, mode: str) -> int:
        """Run every stage of ``mode`` in order, then report.

        Raises InvalidMode before anything else happens, and any
        LauncherError raised by a stage.
        """
        plan = get_plan(mode)
        self.ctx.storage = plan.storage

        for stage in plan.stages:
            logger.debug("Stage %s", stage.name)
            await stage.run(self.ctx)
            self.ctx.completed.append(stage.name)

        if plan.report:
            print_report(
                plan.report,
                self.ctx.settings,
                self.ctx.console,
                stop_command=self.ctx.app_compose().describe('down'),
            )

        if plan.foreground:
            await self._foreground(plan)
        return 0

    async def _foreground(self, plan: ModePlan) -> None:
        frontend = self.ctx.frontend
        if frontend is None or not frontend.running:
            return
        self.ctx.console.hint("Press Ctrl+C to stop...")
        if self.open_browser:
            webbrowser.open(self.ctx.settings.frontend_urls[0])
        code = await frontend.wait()
        logger.debug("Frontend dev server for %s exited with %s", plan.name, code)

    async def execute(self, mode: str, signals: Optional[SignalHandler] = None) -> int:
        """Run ``mode`` until it finishes or a shutdown signal arrives."""
        get_plan(mode)
        signals = signals or SignalHandler()
        signals.setup()
        task = asyncio.create_task(self.run(mode))
        waiter = asyncio.create_task(signals.wait_for_shutdown())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if task in done:
                return task.result()

            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            self.ctx.console.echo()
            self.ctx.console.warning("Shutting down...")
            await self._stop_frontend()
            if mode != 'reset':
                self.ctx.console.echo(
                    f"Run '{self.ctx.app_compose().describe('down')}' to stop all services."
                )
            return 0
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
            await self._stop_frontend()
            signals.restore()

    async def _stop_frontend(self) -> None:
        if self.ctx.frontend is not None:
            await self.ctx.frontend.stop()
