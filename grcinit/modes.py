"""Mode table: which stages each mode runs, in order."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from grcinit.envfile import STORAGE_RUSTFS, STORAGE_S3
from grcinit.errors import InvalidMode
from grcinit.stages import (
    APPS,
    DEPENDENCIES,
    ENVIRONMENT,
    FRONTEND_CONTAINER,
    FRONTEND_DEV,
    INFRA,
    INFRA_S3,
    PREFLIGHT,
    PREFLIGHT_S3,
    RESET,
    Stage,
)


@dataclass(frozen=True)
class ModePlan:
    name: str
    label: str
    description: str
    stages: Tuple[Stage, ...]
    report: Optional[str] = None
    storage: str = STORAGE_RUSTFS
    foreground: bool = False  # block on the frontend dev server after reporting

    @property
    def stage_names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)


MODES: Dict[str, ModePlan] = {
    'demo': ModePlan(
        'demo', 'Demo Mode', 'One-click demo, everything in Docker + frontend',
        (PREFLIGHT, ENVIRONMENT, INFRA, APPS, FRONTEND_DEV),
        report='demo', foreground=True,
    ),
    'dev': ModePlan(
        'dev', 'Dev Mode', 'Set up for local development (install deps, start infra)',
        (PREFLIGHT, ENVIRONMENT, DEPENDENCIES, INFRA),
        report='dev',
    ),
    'docker': ModePlan(
        'docker', 'Docker Only', 'Start all services in Docker',
        (PREFLIGHT, ENVIRONMENT, INFRA, APPS, FRONTEND_CONTAINER),
        report='demo',
    ),
    's3': ModePlan(
        's3', 'S3 Mode', 'Use LocalStack S3 instead of RustFS',
        (PREFLIGHT, PREFLIGHT_S3, ENVIRONMENT, INFRA_S3, APPS, FRONTEND_DEV),
        report='s3', storage=STORAGE_S3, foreground=True,
    ),
    's3-dev': ModePlan(
        's3-dev', 'S3 Dev Mode', 'Dev setup with LocalStack S3 (no RustFS)',
        (PREFLIGHT, PREFLIGHT_S3, ENVIRONMENT, DEPENDENCIES, INFRA_S3),
        report='s3-dev', storage=STORAGE_S3,
    ),
    'reset': ModePlan(
        'reset', 'Reset', 'Clean slate (remove containers, deps, .env)',
        (RESET,),
    ),
}

MODE_NAMES = tuple(MODES)


def get_plan(mode: str) -> ModePlan:
    try:
        return MODES[mode]
    except KeyError:
        raise InvalidMode(mode)
