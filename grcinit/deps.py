"""npm dependency installation for local development."""

import json
import logging
from pathlib import Path

from grcinit.config import APP_SERVICES
from grcinit.console import Console
from grcinit.tools import CommandRunner

logger = logging.getLogger(__name__)


class DependencyInstaller:
    """Installs node modules for every package of the monorepo.

    ``services/shared`` goes first because the other services depend on
    its build output.
    """

    def __init__(self, project_root: Path, runner: CommandRunner, console: Console):
        self.root = project_root
        self.runner = runner
        self.console = console

    def install_all(self) -> None:
        self.console.step("Installing dependencies...")

        if (self.root / 'package.json').is_file():
            self.console.substep("Installing root dependencies...")
            self.npm_install(self.root)
            self.console.success("Root dependencies")

        self.install_shared()

        for service in APP_SERVICES:
            self.install_service(service)

        self.console.substep("Installing frontend dependencies...")
        self.npm_install(self.root / 'frontend')
        self.console.success("frontend")

        scripts = self.root / 'scripts'
        if (scripts / 'package.json').is_file():
            self.console.substep("Installing script dependencies...")
            self.npm_install(scripts)
            self.console.success("scripts")

    def npm_install(self, directory: Path) -> None:
        self.runner.check(
            ['npm', 'install', '--silent'],
            cwd=directory,
            hint=f"Run 'npm install' in {directory} to see the full error.",
        )

    def install_shared(self) -> None:
        shared = self.root / 'services' / 'shared'
        self.console.substep("Installing shared library...")
        self.npm_install(shared)
        if (shared / 'tsconfig.json').is_file():
            result = self.runner.run(['npm', 'run', 'build'], cwd=shared)
            if result.returncode != 0:
                self.console.warning("services/shared build failed; services may not compile")
        self.console.success("services/shared")

    def install_service(self, service: str) -> None:
        directory = self.root / 'services' / service
        self.console.substep(f"Installing {service} service...")
        self.npm_install(directory)

        if (directory / 'node_modules' / '.prisma' / 'client' / 'index.js').is_file():
            self.console.success(f"services/{service} (Prisma client exists)")
        elif _uses_prisma(directory / 'package.json'):
            result = self.runner.run(['npx', 'prisma', 'generate'], cwd=directory)
            if result.returncode == 0:
                self.console.success(f"services/{service} (Prisma generated)")
            else:
                self.console.warning(f"services/{service} (Prisma generate failed)")
        else:
            self.console.success(f"services/{service}")


def _uses_prisma(package_json: Path) -> bool:
    try:
        manifest = json.loads(package_json.read_text())
    except (OSError, ValueError):
        return False
    for section in ('dependencies', 'devDependencies'):
        deps = manifest.get(section) or {}
        if 'prisma' in deps or '@prisma/client' in deps:
            return True
    return False
