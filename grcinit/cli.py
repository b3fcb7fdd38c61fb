"""Command-line entry point: ``grc-init [MODE]``."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from grcinit.config import Settings
from grcinit.console import Color, Console, setup_logging
from grcinit.errors import InvalidMode, LauncherError
from grcinit.launcher import Launcher
from grcinit.lock import ProcessLock
from grcinit.modes import MODE_NAMES, MODES
from grcinit.report import print_banner

logger = logging.getLogger(__name__)

USAGE_MODES = """Modes:
  demo     Start demo (Docker services + frontend)
  dev      Set up local development environment
  docker   Start all services via Docker
  s3       Start with LocalStack S3 (no RustFS container)
  s3-dev   Dev setup with LocalStack S3 (no RustFS)
  reset    Remove containers, volumes, and dependencies

S3 Mode Requirements:
  - LocalStack must be running (docker run -d -p 4566:4566 localstack/localstack)
  - AWS CLI must be installed
  - Uses AWS profile: localstack
"""


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='grc-init',
        description='GigaChad GRC - Universal Initializer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=USAGE_MODES,
    )
    # No argparse choices: an unknown mode prints our usage and exits 1.
    parser.add_argument(
        'mode',
        nargs='?',
        help='One of: ' + ', '.join(MODE_NAMES) + ' (asks interactively when omitted)',
    )
    parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Answer yes to confirmation prompts',
    )
    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable colored output',
    )
    parser.add_argument(
        '--no-browser',
        action='store_true',
        help='Do not open the browser in demo and s3 modes',
    )
    parser.add_argument(
        '--project-root',
        type=Path,
        default=None,
        help='GigaChad GRC checkout to operate on (default: current directory)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log every command and probe to stderr',
    )
    return parser


def print_usage(console: Console) -> None:
    console.echo(f"Usage: grc-init [{'|'.join(MODE_NAMES)}]")
    console.echo()
    console.echo(USAGE_MODES.rstrip())


def interactive_mode(console: Console) -> Optional[str]:
    """Numbered menu; returns the chosen mode, or None for an invalid choice."""
    console.heading("What would you like to do?")
    console.echo()
    for number, plan in enumerate(MODES.values(), start=1):
        label = console._colorize(plan.label.ljust(13), Color.BOLD)
        console.echo(f"  {console._colorize(f'{number})', Color.CYAN)} {label} - {plan.description}")
    console.echo()

    choice = console.ask(f"Enter choice [1-{len(MODES)}]: ")
    if choice is None:
        return None
    choice = choice.strip()
    if choice.isdigit() and 1 <= int(choice) <= len(MODES):
        return MODE_NAMES[int(choice) - 1]
    return None


def main(argv: Optional[List[str]] = None) -> int:
    args = create_argument_parser().parse_args(argv)
    setup_logging(args.verbose)
    console = Console(
        color_enabled=not args.no_color and sys.stdout.isatty(),
        yes=args.yes,
    )

    print_banner(console)

    mode = args.mode
    if mode is None:
        if not console.is_interactive():
            console.error("No mode given and stdin is not a terminal")
            print_usage(console)
            return 1
        mode = interactive_mode(console)
        if mode is None:
            console.error("Invalid choice")
            return 1

    if mode not in MODES:
        error = InvalidMode(mode)
        console.error(error.message)
        print_usage(console)
        return error.exit_code

    try:
        overrides = {'project_root': args.project_root.resolve()} if args.project_root else {}
        settings = Settings(**overrides)
    except ValidationError as e:
        console.error(f"Invalid GRC_INIT_* configuration:\n{e}")
        return 1

    if not settings.project_root.is_dir():
        console.error(f"Project root not found: {settings.project_root}")
        console.hint("Run grc-init from a GigaChad GRC checkout or pass --project-root.")
        return 1

    lock = ProcessLock(settings.lock_path)
    try:
        acquired = lock.acquire()
    except OSError as e:
        console.error(f"Cannot create lock file {settings.lock_path}: {e.strerror}")
        return 1
    if not acquired:
        owner = f" (PID {lock.owner_pid})" if lock.owner_pid else ""
        console.error(f"Another grc-init is already running{owner}.")
        console.info(f"If this is stale, delete {settings.lock_path} and retry.")
        return 1

    with lock:
        launcher = Launcher.create(settings, console, open_browser=not args.no_browser)
        try:
            return asyncio.run(launcher.execute(mode))
        except LauncherError as e:
            console.echo()
            console.error(e.message)
            if e.hint:
                console.hint(e.hint)
            logger.debug("Aborted", exc_info=True)
            return e.exit_code


def run() -> None:
    sys.exit(main())
