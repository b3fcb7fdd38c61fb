"""Success reports printed once a mode has finished bringing things up."""

from typing import Callable, Dict, List, Tuple

from grcinit.config import Settings
from grcinit.console import Color, Console

Lines = List[Tuple[str, List[str]]]


def _access_points(settings: Settings, storage_line: str) -> List[str]:
    return [
        f"Frontend        {settings.frontend_urls[0]} (or :5173)",
        "API Docs        http://localhost:3001/api/docs",
        "Keycloak        http://localhost:8080 (admin/admin)",
        storage_line,
        "Grafana         http://localhost:3003 (admin/admin)",
    ]


def _aws_ls(settings: Settings, target: str = '') -> str:
    parts = ['aws s3 ls']
    if target:
        parts.append(target)
    parts.append(f'--endpoint-url {settings.localstack_url} --profile {settings.aws_profile}')
    return ' '.join(parts)


QUICK_LOGIN = ["Click the \"Dev Login\" button - no password needed!"]
START_SERVICES = [
    "# Terminal 1 - Backend",
    "cd services/controls && npm run start:dev",
    "",
    "# Terminal 2 - Frontend",
    "cd frontend && npm run dev",
]
MAKEFILE = [
    "make dev        # Start everything",
    "make logs       # View Docker logs",
    "make clean      # Stop and clean up",
]


def demo_sections(settings: Settings, stop_command: str) -> Lines:
    return [
        ("Access Points:", _access_points(settings, "RustFS Console  http://localhost:9001 (rustfsadmin/...)")),
        ("Quick Login:", QUICK_LOGIN),
        ("Load Demo Data:", ["Settings → Organization → Demo Data → Load Demo Data"]),
        ("Stop Everything:", [stop_command]),
    ]


def dev_sections(settings: Settings, stop_command: str) -> Lines:
    return [
        ("Infrastructure Running:", [
            f"PostgreSQL:{settings.postgres_host_port}, Redis:{settings.redis_host_port}, "
            "Keycloak:8080, RustFS:9000",
        ]),
        ("Start Services:", START_SERVICES),
        ("Or use the Makefile:", MAKEFILE),
    ]


def s3_sections(settings: Settings, stop_command: str) -> Lines:
    return [
        ("Access Points:", _access_points(settings, f"LocalStack      {settings.localstack_url}")),
        ("S3 Buckets (LocalStack):", [f"• {bucket}" for bucket in settings.s3_buckets]),
        ("AWS CLI Commands (using profile):", [
            _aws_ls(settings),
            _aws_ls(settings, f's3://{settings.s3_buckets[0]}'),
        ]),
        ("Quick Login:", QUICK_LOGIN),
        ("Stop Everything:", [stop_command]),
    ]


def s3_dev_sections(settings: Settings, stop_command: str) -> Lines:
    return [
        ("Infrastructure Running:", [
            f"PostgreSQL:{settings.postgres_host_port}, Redis:{settings.redis_host_port}, Keycloak:8080",
            f"LocalStack S3:{settings.localstack_url.rsplit(':', 1)[-1]} (external)",
        ]),
        ("S3 Buckets Created:", [f"• {bucket}" for bucket in settings.s3_buckets]),
        ("Start Services:", START_SERVICES),
        ("AWS CLI Commands:", [_aws_ls(settings)]),
        ("Or use the Makefile:", MAKEFILE),
    ]


REPORTS: Dict[str, Tuple[str, Callable[[Settings, str], Lines]]] = {
    'demo': ("GigaChad GRC is Ready!", demo_sections),
    'dev': ("Development Environment Ready!", dev_sections),
    's3': ("GigaChad GRC is Ready! (S3/LocalStack Mode)", s3_sections),
    's3-dev': ("Development Environment Ready! (S3/LocalStack)", s3_dev_sections),
}


def print_report(kind: str, settings: Settings, console: Console, stop_command: str) -> None:
    """Print the success box for ``kind``; ``stop_command`` tears the stack down."""
    title, build = REPORTS[kind]
    console.box(title, Color.GREEN)
    for heading, lines in build(settings, stop_command):
        console.heading(heading)
        for line in lines:
            console.echo(f"   {line}" if line else "")
        console.echo()


def print_banner(console: Console) -> None:
    console.box("GigaChad GRC - Universal Initializer", Color.CYAN)
