"""Start service groups in order, gating each on its readiness probes."""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Type

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, retry_if_result, stop_after_attempt, wait_fixed

from grcinit.console import Console
from grcinit.errors import DependencyTimeout
from grcinit.probes import AllProbe, Probe

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class Policy(str, Enum):
    """What running out of attempts means for the rest of the bring-up."""
    HARD = 'hard'
    SOFT = 'soft'


class GroupStatus(str, Enum):
    PENDING = 'pending'
    READY = 'ready'
    FAILED = 'failed'


@dataclass
class ServiceGroup:
    """Services started together and gated by the same probes.

    ``start`` must be safe to call when the services already run; it may be
    a plain function or a coroutine function. A group without probes is
    ready as soon as it has started.
    """

    name: str
    start: Optional[Callable[[], Any]] = None
    probes: Sequence[Probe] = ()
    policy: Policy = Policy.HARD
    attempts: int = 30
    interval: float = 2.0
    hint: Optional[str] = None
    timeout_message: Optional[str] = None

    @property
    def probe(self) -> Optional[Probe]:
        if not self.probes:
            return None
        if len(self.probes) == 1:
            return self.probes[0]
        return AllProbe(self.probes)


@dataclass
class GroupResult:
    name: str
    status: GroupStatus = GroupStatus.PENDING
    attempts: int = 0


@dataclass
class PollOutcome:
    ready: bool
    attempts: int


async def poll_until_ready(
    check: Callable[[], Awaitable[bool]],
    attempts: int,
    interval: float,
    sleep: Sleep = asyncio.sleep,
    retry_on: Tuple[Type[BaseException], ...] = (),
) -> PollOutcome:
    """Call ``check`` until it returns True, at most ``attempts`` times.

    Waits ``interval`` seconds between calls and never after the last one.
    Exceptions of a type in ``retry_on`` count as "not ready"; any other
    exception propagates at once.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    calls = 0

    async def _counted() -> bool:
        nonlocal calls
        calls += 1
        return await check()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ready: not ready) | retry_if_exception_type(retry_on),
        sleep=sleep,
    )
    try:
        await retrying(_counted)
    except RetryError:
        return PollOutcome(ready=False, attempts=calls)
    return PollOutcome(ready=True, attempts=calls)


class ReadinessSequencer:
    """Brings groups up strictly one after another."""

    def __init__(self, console: Console, sleep: Sleep = asyncio.sleep):
        self.console = console
        self.sleep = sleep

    async def bring_up(self, groups: Sequence[ServiceGroup]) -> List[GroupResult]:
        """Start and gate each group in order.

        Raises DependencyTimeout when a hard group is not ready in time,
        and ExternalToolFailure when a start action fails; later groups are
        not started in either case.
        """
        results = []
        for group in groups:
            results.append(await self.bring_up_group(group))
        return results

    async def bring_up_group(self, group: ServiceGroup) -> GroupResult:
        result = GroupResult(group.name)

        if group.start is not None:
            # Blocking starts run in a worker thread so signals stay responsive.
            if inspect.iscoroutinefunction(group.start):
                await group.start()
            else:
                await asyncio.to_thread(group.start)

        probe = group.probe
        if probe is None:
            result.status = GroupStatus.READY
            return result

        self.console.substep(f"Waiting for {group.name} to be ready...")
        outcome = await poll_until_ready(probe.check, group.attempts, group.interval, self.sleep)
        result.attempts = outcome.attempts
        logger.debug("%s: ready=%s after %d attempts", group.name, outcome.ready, outcome.attempts)

        if outcome.ready:
            result.status = GroupStatus.READY
            self.console.success(f"{group.name} is ready")
            return result

        result.status = GroupStatus.FAILED
        if group.policy is Policy.HARD:
            self.console.error(group.timeout_message or f"{group.name} failed to start")
            raise DependencyTimeout(group.name, outcome.attempts, group.hint)

        self.console.warning(group.timeout_message or f"{group.name} not responding yet")
        if group.hint:
            self.console.info(group.hint)
        return result
