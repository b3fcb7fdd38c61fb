"""Prerequisite checks run before any side effect."""

import logging
from typing import List, Optional, Tuple

from grcinit.config import Settings
from grcinit.console import Console
from grcinit.errors import PrerequisiteMissing
from grcinit.tools import CommandRunner, detect_compose_command

logger = logging.getLogger(__name__)


class CheckError(Exception):
    """Required tool is missing; message is the remediation text."""
    pass


class DaemonNotRunning(Exception):
    """Docker is installed but its daemon does not answer."""
    pass


class PrerequisiteChecker:
    """Verifies the external tools each mode depends on.

    Missing tools are gathered across all checks and reported together;
    a stopped Docker daemon aborts immediately.
    """

    def __init__(self, runner: CommandRunner, settings: Settings, console: Console):
        self.runner = runner
        self.settings = settings
        self.console = console
        self.missing: List[str] = []
        self.compose_command: Optional[List[str]] = None

    def check_all(self) -> List[str]:
        """Run the base checks. Returns the resolved compose command prefix."""
        self.console.step("Checking prerequisites...")
        self.missing = []

        checks = [
            self.check_docker,
            self.check_compose,
            self.check_node,
            self.check_npm,
            self.check_git,
        ]
        for check in checks:
            try:
                check()
            except CheckError as e:
                self.missing.append(str(e))
            except DaemonNotRunning as e:
                raise PrerequisiteMissing(["Docker daemon"], str(e))

        self._raise_if_missing("Missing required tools:")
        if self.compose_command is None:
            raise PrerequisiteMissing(["Docker Compose"], "Install the Docker Compose plugin and re-run.")
        return self.compose_command

    def check_s3(self) -> None:
        """AWS CLI and the LocalStack profile, for the S3 modes."""
        self.console.step("Checking S3/LocalStack prerequisites...")
        self.missing = []
        try:
            self.check_aws_cli()
        except CheckError as e:
            self.missing.append(str(e))
        self._raise_if_missing("Missing required tools for S3 mode:")
        self.ensure_aws_profile()

    def _raise_if_missing(self, title: str) -> None:
        if not self.missing:
            return
        self.console.echo()
        self.console.error(title)
        for tool in self.missing:
            self.console.bullet(tool)
        self.console.echo()
        raise PrerequisiteMissing(self.missing, "Install the tools above and re-run.")

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def check_docker(self) -> None:
        version = self.runner.output(['docker', '--version'])
        if version is None:
            raise CheckError("Docker (https://docker.com/get-started)")
        if not self.runner.succeeds(['docker', 'info'], timeout=15):
            self.console.error("Docker is installed but not running. Please start Docker Desktop.")
            raise DaemonNotRunning("Start Docker Desktop (or the docker service) and re-run.")
        self.console.success(f"Docker {_docker_version(version)}")

    def check_compose(self) -> None:
        self.compose_command = detect_compose_command(self.runner)
        if self.compose_command is None:
            raise CheckError("Docker Compose")
        if self.compose_command == ['docker', 'compose']:
            version = self.runner.output(['docker', 'compose', 'version', '--short']) or ''
            self.console.success(f"Docker Compose {version}".rstrip())
        else:
            self.console.success("docker-compose")

    def check_node(self) -> None:
        version = self.runner.output(['node', '--version'])
        if version is None:
            raise CheckError("Node.js 18+ (https://nodejs.org)")
        major = _major_version(version)
        if major is not None and major >= self.settings.node_min_major:
            self.console.success(f"Node.js {version}")
        else:
            self.console.warning(f"Node.js {version} (v{self.settings.node_min_major}+ recommended)")

    def check_npm(self) -> None:
        version = self.runner.output(['npm', '--version'])
        if version is None:
            raise CheckError("npm")
        self.console.success(f"npm {version}")

    def check_git(self) -> None:
        # Optional, reported only when present.
        version = self.runner.output(['git', '--version'])
        if version:
            self.console.success(f"Git {version.split()[-1]}")

    def check_aws_cli(self) -> None:
        version = self.runner.output(['aws', '--version'])
        if version is None:
            raise CheckError("AWS CLI (https://aws.amazon.com/cli/)")
        self.console.success(f"AWS CLI {_aws_version(version)}")

    def ensure_aws_profile(self) -> None:
        """Create the LocalStack profile with dummy credentials if it is missing."""
        profile = self.settings.aws_profile
        if self.runner.succeeds(['aws', 'configure', 'list', '--profile', profile]):
            self.console.success(f"AWS profile '{profile}' configured")
            return

        self.console.warning(f"AWS profile '{profile}' not found")
        self.console.info("Creating LocalStack profile with default settings...")
        for key, value in _profile_values(self.settings.aws_region):
            self.runner.check(['aws', 'configure', 'set', key, value, '--profile', profile])
        self.console.success(f"Created AWS profile '{profile}'")


def _profile_values(region: str) -> List[Tuple[str, str]]:
    return [
        ('aws_access_key_id', 'test'),
        ('aws_secret_access_key', 'test'),
        ('region', region),
    ]


def _docker_version(output: str) -> str:
    # "Docker version 24.0.7, build afdd53b"
    parts = output.split()
    if len(parts) >= 3:
        return parts[2].rstrip(',')
    return output


def _aws_version(output: str) -> str:
    # "aws-cli/2.15.0 Python/3.11.6 Linux/6.5.0 exe/x86_64"
    first = output.split()[0] if output else ''
    return first.split('/', 1)[-1]


def _major_version(version: str) -> Optional[int]:
    try:
        return int(version.strip().lstrip('v').split('.')[0])
    except (ValueError, IndexError):
        logger.debug("Unparseable version string %r", version)
        return None
