"""Tear the local environment down to a clean slate."""

import logging
import shutil
from pathlib import Path
from typing import List

from grcinit.config import APP_SERVICES, Settings
from grcinit.console import Console
from grcinit.errors import ExternalToolFailure
from grcinit.tools import Compose

logger = logging.getLogger(__name__)


def node_modules_dirs(root: Path) -> List[Path]:
    dirs = [root / 'node_modules', root / 'frontend' / 'node_modules', root / 'scripts' / 'node_modules']
    dirs.extend(root / 'services' / service / 'node_modules' for service in ('shared',) + APP_SERVICES)
    return dirs


def reset_all(settings: Settings, compose: Compose, console: Console) -> bool:
    """Remove containers, volumes, the .env record and node_modules.

    Returns False, touching nothing, when the operator does not confirm.
    """
    console.step("Resetting everything...")
    console.warning("This will remove all containers, volumes, and generated files!")
    if not console.confirm("Are you sure?"):
        console.info("Aborted")
        return False

    console.substep("Stopping containers...")
    try:
        compose.down(volumes=True)
    except ExternalToolFailure as e:
        # Nothing may be running, or Docker may be gone; files still get removed.
        console.warning(f"Could not stop containers ({e.message})")

    console.substep(f"Removing {settings.env_file_name}...")
    settings.env_path.unlink(missing_ok=True)

    console.substep("Removing node_modules...")
    for directory in node_modules_dirs(settings.project_root):
        if directory.is_dir():
            logger.debug("Removing %s", directory)
            shutil.rmtree(directory)

    console.success("Reset complete. Run 'grc-init' to start fresh.")
    return True
