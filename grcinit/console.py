"""Colored operator output and prompts."""

import logging
import signal
import sys
import threading
from typing import Callable, Optional, TextIO

logger = logging.getLogger(__name__)

BOX_WIDTH = 67


# ANSI color codes
class Color:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'
    GRAY = '\033[90m'


def setup_logging(verbose: bool = False) -> None:
    """Route diagnostic logging to stderr; operator output stays on stdout."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )


class Console:
    """Step-oriented status output with optional color."""

    def __init__(
        self,
        color_enabled: bool = True,
        yes: bool = False,
        stream: Optional[TextIO] = None,
        input_func: Callable[[str], str] = input,
    ):
        self.color_enabled = color_enabled
        self.yes = yes
        self.stream = stream
        self._input = input_func

    def _colorize(self, text: str, color: str) -> str:
        if not self.color_enabled:
            return text
        return f"{color}{text}{Color.RESET}"

    def echo(self, text: str = "") -> None:
        print(text, file=self.stream or sys.stdout, flush=True)

    def step(self, message: str) -> None:
        self.echo(f"\n{self._colorize('▸', Color.BLUE)} {self._colorize(message, Color.BOLD)}")

    def substep(self, message: str) -> None:
        self.echo(f"  {self._colorize('→', Color.CYAN)} {message}")

    def success(self, message: str) -> None:
        self.echo(f"  {self._colorize('✓', Color.GREEN)} {message}")

    def warning(self, message: str) -> None:
        self.echo(f"  {self._colorize('⚠', Color.YELLOW)} {message}")

    def error(self, message: str) -> None:
        self.echo(f"  {self._colorize('✗', Color.RED)} {message}")

    def info(self, message: str) -> None:
        self.echo(f"  {self._colorize('ℹ', Color.MAGENTA)} {message}")

    def bullet(self, text: str, color: str = Color.CYAN) -> None:
        self.echo(f"   {self._colorize('•', color)} {text}")

    def heading(self, text: str) -> None:
        self.echo(self._colorize(text, Color.BOLD))

    def box(self, title: str, color: str = Color.CYAN) -> None:
        """Print a framed one-line title."""
        edge = '═' * BOX_WIDTH
        blank = '║' + ' ' * BOX_WIDTH + '║'
        inner = f"   {title}".ljust(BOX_WIDTH)
        self.echo()
        self.echo(self._colorize(f"╔{edge}╗", color))
        self.echo(self._colorize(blank, color))
        self.echo(self._colorize('║', color) + self._colorize(inner, Color.BOLD) + self._colorize('║', color))
        self.echo(self._colorize(blank, color))
        self.echo(self._colorize(f"╚{edge}╝", color))
        self.echo()

    def hint(self, text: str) -> None:
        self.echo(self._colorize(text, Color.YELLOW))

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def is_interactive(self) -> bool:
        return sys.stdin.isatty()

    def ask(self, prompt: str) -> Optional[str]:
        """Read a line from the operator, or None when stdin is not usable.

        Ctrl+C at the prompt counts as no answer. The default SIGINT handler
        is restored while waiting, since an event-loop signal handler cannot
        interrupt a blocking read.
        """
        swap = threading.current_thread() is threading.main_thread()
        if swap:
            previous = signal.signal(signal.SIGINT, signal.default_int_handler)
        try:
            return self._input(prompt)
        except (EOFError, KeyboardInterrupt):
            self.echo()
            return None
        finally:
            if swap:
                signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)

    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question. Declines when no operator can answer."""
        if self.yes:
            self.echo(self._colorize(f"{prompt} (auto-confirmed with --yes)", Color.GRAY))
            return True
        if not self.is_interactive():
            self.echo(self._colorize(f"{prompt} (declined: non-interactive mode)", Color.GRAY))
            logger.debug("Declined %r without a TTY", prompt)
            return False
        answer = self.ask(f"{prompt} (y/n) ")
        return answer is not None and answer.strip().lower() in ('y', 'yes')
