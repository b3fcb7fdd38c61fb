"""Readiness probes.

A probe answers one question, "is it ready right now?", and must not have
side effects. ``check()`` returns False for anything that looks like the
target is still starting (connection refused, non-zero exit, 503). It raises
ProbeError only when the probe itself cannot work, such as a missing
executable or a malformed URL, because retrying would never help.
"""

import asyncio
import logging
import subprocess
from typing import Optional, Sequence

import httpx

from grcinit.errors import ProbeError
from grcinit.tools import CommandRunner, redact

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 5.0  # seconds per HTTP request


class Probe:
    """Base class for readiness checks."""

    description = "probe"

    async def check(self) -> bool:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.description}>"


class CommandProbe(Probe):
    """Ready when a command exits 0 (and prints ``expect_output`` if given)."""

    def __init__(
        self,
        runner: CommandRunner,
        cmd: Sequence[str],
        expect_output: Optional[str] = None,
        timeout: int = 10,
        description: Optional[str] = None,
    ):
        self.runner = runner
        self.cmd = list(cmd)
        self.expect_output = expect_output
        self.timeout = timeout
        self.description = description or " ".join(redact(self.cmd))

    async def check(self) -> bool:
        try:
            result = await asyncio.to_thread(self.runner.run, self.cmd, timeout=self.timeout)
        except FileNotFoundError:
            raise ProbeError(
                f"Probe command not found: {self.cmd[0]}",
                f"Install {self.cmd[0]} or fix the probe for this group.",
            )
        except subprocess.TimeoutExpired:
            logger.debug("Probe %s timed out", self.description)
            return False

        if result.returncode != 0:
            logger.debug("Probe %s exited %s", self.description, result.returncode)
            return False
        if self.expect_output is not None:
            return self.expect_output in (result.stdout or "")
        return True


class HttpProbe(Probe):
    """Ready when GET ``url`` answers with a 2xx status."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport
        self.description = url

    async def check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.url)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise ProbeError(f"Invalid health check URL {self.url!r}: {e}")
        except httpx.TransportError as e:
            # Refused connections and timeouts while the server boots
            logger.debug("Probe %s: %s", self.url, type(e).__name__)
            return False
        return response.is_success


class AnyProbe(Probe):
    """Ready when at least one alternative is ready, checked in order."""

    def __init__(self, probes: Sequence[Probe]):
        self.probes = list(probes)
        self.description = " or ".join(p.description for p in self.probes)

    async def check(self) -> bool:
        for probe in self.probes:
            if await probe.check():
                return True
        return False


class AllProbe(Probe):
    """Ready when every member is ready; members are checked concurrently."""

    def __init__(self, probes: Sequence[Probe]):
        self.probes = list(probes)
        self.description = " and ".join(p.description for p in self.probes)

    async def check(self) -> bool:
        results = await asyncio.gather(*(p.check() for p in self.probes))
        return all(results)
