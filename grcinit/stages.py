"""Bring-up stages and the service groups they gate on.

Each stage is an async callable taking the LaunchContext, which carries
everything the stages share: settings, the materialized configuration
record, the resolved compose command and the spawned dev server.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from grcinit.config import (
    APP_SERVICES,
    APP_SERVICES_BUDGET,
    COMPOSE_FILE,
    COMPOSE_S3_OVERLAY,
    FRONTEND_CONTAINER_BUDGET,
    FRONTEND_DEV_BUDGET,
    INFRASTRUCTURE,
    INFRASTRUCTURE_S3,
    LOCALSTACK_INTERVAL,
    POSTGRES_BUDGET,
    REDIS_BUDGET,
    RUSTFS_BUDGET,
    Settings,
)
from grcinit.console import Console
from grcinit.deps import DependencyInstaller
from grcinit.envfile import STORAGE_RUSTFS, STORAGE_S3, ConfigMaterializer, EnvRecord
from grcinit.frontend import DevServerProbe, FrontendServer
from grcinit.preflight import PrerequisiteChecker
from grcinit.probes import AnyProbe, CommandProbe, HttpProbe
from grcinit.reset import reset_all
from grcinit.sequencer import Policy, ReadinessSequencer, ServiceGroup
from grcinit.storage import BucketManager
from grcinit.tools import CommandRunner, Compose, detect_compose_command

logger = logging.getLogger(__name__)

DEFAULT_REDIS_PASSWORD = 'redis_secret'

LOCALSTACK_HINT = """Please start LocalStack first:

   # Using Docker:
   docker run -d --name localstack -p 4566:4566 localstack/localstack

   # Or using LocalStack CLI:
   pip install localstack
   localstack start -d"""


@dataclass
class LaunchContext:
    settings: Settings
    console: Console
    runner: CommandRunner
    sequencer: ReadinessSequencer
    compose: Compose = None  # type: ignore[assignment]
    storage: str = STORAGE_RUSTFS
    env: Optional[EnvRecord] = None
    frontend: Optional[FrontendServer] = None
    completed: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.compose is None:
            self.compose = Compose(self.runner)

    def app_compose(self) -> Compose:
        """Compose for the app services; S3 mode layers the LocalStack overlay."""
        if self.storage == STORAGE_S3:
            return self.compose.with_files(COMPOSE_FILE, COMPOSE_S3_OVERLAY)
        return self.compose


@dataclass(frozen=True)
class Stage:
    name: str
    run: Callable[[LaunchContext], Awaitable[None]]


# ============================================================================
# Service groups
# ============================================================================

def _start(compose: Compose, *services: str) -> Callable[[], None]:
    def start() -> None:
        compose.up(list(services))
    return start


def postgres_group(ctx: LaunchContext) -> ServiceGroup:
    attempts, interval = POSTGRES_BUDGET
    return ServiceGroup(
        name='PostgreSQL',
        start=_start(ctx.compose, 'postgres'),
        probes=[CommandProbe(
            ctx.runner,
            ctx.compose.exec_command('postgres', 'pg_isready', '-U', ctx.settings.postgres_user),
            description='pg_isready',
        )],
        policy=Policy.HARD,
        attempts=attempts,
        interval=interval,
        hint=f"Check logs with: {ctx.compose.describe('logs', 'postgres')}",
    )


def redis_group(ctx: LaunchContext) -> ServiceGroup:
    attempts, interval = REDIS_BUDGET
    password = DEFAULT_REDIS_PASSWORD
    if ctx.env is not None:
        password = ctx.env.get('REDIS_PASSWORD') or DEFAULT_REDIS_PASSWORD
    return ServiceGroup(
        name='Redis',
        start=_start(ctx.compose, 'redis'),
        probes=[CommandProbe(
            ctx.runner,
            ctx.compose.exec_command('redis', 'redis-cli', '--no-auth-warning', '-a', password, 'ping'),
            expect_output='PONG',
            description='redis-cli ping',
        )],
        policy=Policy.HARD,
        attempts=attempts,
        interval=interval,
        hint=f"Check logs with: {ctx.compose.describe('logs', 'redis')}",
    )


def keycloak_group(ctx: LaunchContext) -> ServiceGroup:
    # Keycloak takes minutes to boot and nothing here needs it yet.
    return ServiceGroup(name='Keycloak', start=_start(ctx.compose, 'keycloak'))


def rustfs_group(ctx: LaunchContext) -> ServiceGroup:
    attempts, interval = RUSTFS_BUDGET
    timeout = ctx.settings.probe_request_timeout
    return ServiceGroup(
        name='RustFS',
        start=_start(ctx.compose, 'rustfs'),
        probes=[AnyProbe([HttpProbe(url, timeout) for url in ctx.settings.rustfs_health_urls])],
        policy=Policy.SOFT,
        attempts=attempts,
        interval=interval,
        timeout_message="RustFS not responding yet",
        hint=f"Check logs with: {ctx.compose.describe('logs', '-f', 'rustfs')}",
    )


def localstack_group(ctx: LaunchContext) -> ServiceGroup:
    return ServiceGroup(
        name='LocalStack',
        probes=[HttpProbe(ctx.settings.localstack_health_url, ctx.settings.probe_request_timeout)],
        policy=Policy.HARD,
        attempts=ctx.settings.localstack_attempts,
        interval=LOCALSTACK_INTERVAL,
        timeout_message="LocalStack is not running!",
        hint=LOCALSTACK_HINT,
    )


def infrastructure_groups(ctx: LaunchContext) -> List[ServiceGroup]:
    services = INFRASTRUCTURE_S3 if ctx.storage == STORAGE_S3 else INFRASTRUCTURE
    builders = {
        'postgres': postgres_group,
        'redis': redis_group,
        'keycloak': keycloak_group,
        'rustfs': rustfs_group,
    }
    return [builders[name](ctx) for name in services]


def app_services_group(ctx: LaunchContext) -> ServiceGroup:
    attempts, interval = APP_SERVICES_BUDGET
    compose = ctx.app_compose()
    # Only the controls API publishes a health port on the host.
    return ServiceGroup(
        name='API services',
        start=_start(compose, *APP_SERVICES),
        probes=[HttpProbe(ctx.settings.api_health_url, ctx.settings.probe_request_timeout)],
        policy=Policy.SOFT,
        attempts=attempts,
        interval=interval,
        timeout_message="API not responding yet - services may still be building",
        hint=f"Check logs with: {compose.describe('logs', '-f', 'controls')}",
    )


def frontend_container_group(ctx: LaunchContext) -> ServiceGroup:
    attempts, interval = FRONTEND_CONTAINER_BUDGET
    return ServiceGroup(
        name='Frontend container',
        start=_start(ctx.compose, 'frontend'),
        probes=[HttpProbe(ctx.settings.frontend_urls[0], ctx.settings.probe_request_timeout)],
        policy=Policy.SOFT,
        attempts=attempts,
        interval=interval,
        timeout_message="Frontend not responding yet - container may still be building",
        hint=f"Check logs with: {ctx.compose.describe('logs', '-f', 'frontend')}",
    )


def frontend_dev_group(ctx: LaunchContext, server: FrontendServer) -> ServiceGroup:
    attempts, interval = FRONTEND_DEV_BUDGET
    timeout = ctx.settings.probe_request_timeout
    return ServiceGroup(
        name='Frontend',
        start=server.start,
        probes=[DevServerProbe(
            server,
            AnyProbe([HttpProbe(url, timeout) for url in ctx.settings.frontend_urls]),
        )],
        policy=Policy.SOFT,
        attempts=attempts,
        interval=interval,
        timeout_message="Frontend not responding yet - Vite may still be compiling",
    )


# ============================================================================
# Stages
# ============================================================================

async def check_prerequisites(ctx: LaunchContext) -> None:
    checker = PrerequisiteChecker(ctx.runner, ctx.settings, ctx.console)
    ctx.compose = Compose(ctx.runner, checker.check_all())


async def check_s3_prerequisites(ctx: LaunchContext) -> None:
    PrerequisiteChecker(ctx.runner, ctx.settings, ctx.console).check_s3()


async def setup_environment(ctx: LaunchContext) -> None:
    materializer = ConfigMaterializer(ctx.settings, ctx.compose, ctx.console)
    ctx.env = materializer.materialize(ctx.storage)


async def install_dependencies(ctx: LaunchContext) -> None:
    installer = DependencyInstaller(ctx.settings.project_root, ctx.runner, ctx.console)
    await asyncio.to_thread(installer.install_all)


async def start_infrastructure(ctx: LaunchContext) -> None:
    ctx.console.step("Starting infrastructure services...")
    ctx.console.substep("Starting PostgreSQL, Redis, Keycloak, RustFS...")
    await ctx.sequencer.bring_up(infrastructure_groups(ctx))
    ctx.console.success("All infrastructure services running")


async def start_infrastructure_s3(ctx: LaunchContext) -> None:
    ctx.console.step("Starting infrastructure services (S3 mode - no RustFS)...")
    ctx.console.substep("Checking LocalStack status...")
    await ctx.sequencer.bring_up([localstack_group(ctx)])

    ctx.console.substep("Starting PostgreSQL, Redis, Keycloak...")
    await ctx.sequencer.bring_up(infrastructure_groups(ctx))

    buckets = BucketManager(ctx.settings, ctx.runner, ctx.console)
    await asyncio.to_thread(buckets.ensure_buckets)
    ctx.console.success("All infrastructure services running (S3 mode)")


async def start_app_services(ctx: LaunchContext) -> None:
    if ctx.storage == STORAGE_S3:
        ctx.console.step("Starting application services (S3 mode)...")
    else:
        ctx.console.step("Starting application services...")
    ctx.console.substep("Building and starting Controls, Frameworks, Policies, TPRM, Trust, Audit...")
    await ctx.sequencer.bring_up([app_services_group(ctx)])


async def start_frontend_container(ctx: LaunchContext) -> None:
    ctx.console.step("Starting frontend container...")
    ctx.console.substep("Building and starting frontend container...")
    await ctx.sequencer.bring_up([frontend_container_group(ctx)])


async def start_frontend(ctx: LaunchContext) -> None:
    ctx.console.step("Starting frontend...")
    server = FrontendServer(ctx.settings.project_root / 'frontend', ctx.runner, ctx.console)
    ctx.frontend = server
    await ctx.sequencer.bring_up([frontend_dev_group(ctx, server)])


async def reset(ctx: LaunchContext) -> None:
    command = detect_compose_command(ctx.runner)
    if command is not None:
        ctx.compose = Compose(ctx.runner, command)
    reset_all(ctx.settings, ctx.compose, ctx.console)


PREFLIGHT = Stage('prerequisites', check_prerequisites)
PREFLIGHT_S3 = Stage('s3-prerequisites', check_s3_prerequisites)
ENVIRONMENT = Stage('environment', setup_environment)
DEPENDENCIES = Stage('dependencies', install_dependencies)
INFRA = Stage('infrastructure', start_infrastructure)
INFRA_S3 = Stage('infrastructure-s3', start_infrastructure_s3)
APPS = Stage('app-services', start_app_services)
FRONTEND_CONTAINER = Stage('frontend-container', start_frontend_container)
FRONTEND_DEV = Stage('frontend', start_frontend)
RESET = Stage('reset', reset)
