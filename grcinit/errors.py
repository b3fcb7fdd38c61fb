"""Launcher error taxonomy.

Every error carries a one-line message and an optional remediation hint that
the CLI prints underneath it. All of them exit with status 1.
"""

from typing import Optional, Sequence


class LauncherError(Exception):
    """Base class for failures that stop the launcher."""

    exit_code = 1

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class PrerequisiteMissing(LauncherError):
    """A required external tool is absent or not running."""

    def __init__(self, missing: Sequence[str], hint: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(
            "Missing required tools: " + ", ".join(self.missing),
            hint,
        )


class ConfigConflict(LauncherError):
    """A fresh configuration would not match data that is already persisted."""


class ConfigError(LauncherError):
    """The configuration record could not be produced or read."""


class DependencyTimeout(LauncherError):
    """A service group did not report ready within its attempt budget."""

    def __init__(self, group: str, attempts: int, hint: Optional[str] = None):
        self.group = group
        self.attempts = attempts
        super().__init__(f"{group} failed to become ready after {attempts} attempts", hint)


class ExternalToolFailure(LauncherError):
    """A delegated command returned a failure exit status."""

    def __init__(self, command: Sequence[str], returncode: int, hint: Optional[str] = None):
        self.command = list(command)
        self.returncode = returncode
        super().__init__(
            f"Command failed with exit code {returncode}: {' '.join(self.command)}",
            hint,
        )


class ProbeError(LauncherError):
    """The readiness probe itself is broken (as opposed to 'not ready yet')."""


class InvalidMode(LauncherError):
    """The requested mode is not one of the known modes."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Unknown mode: {mode!r}")
