"""Launcher configuration."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Service names as declared in docker-compose.yml
APP_SERVICES = ("controls", "frameworks", "policies", "tprm", "trust", "audit")
INFRASTRUCTURE = ("postgres", "redis", "keycloak", "rustfs")
INFRASTRUCTURE_S3 = ("postgres", "redis", "keycloak")  # LocalStack replaces RustFS

COMPOSE_FILE = "docker-compose.yml"
COMPOSE_S3_OVERLAY = "docker-compose.s3.yml"

# Readiness budgets: (attempts, seconds between attempts)
POSTGRES_BUDGET = (30, 2.0)
REDIS_BUDGET = (30, 1.0)
RUSTFS_BUDGET = (15, 2.0)
APP_SERVICES_BUDGET = (60, 2.0)
FRONTEND_CONTAINER_BUDGET = (30, 2.0)
FRONTEND_DEV_BUDGET = (20, 2.0)
LOCALSTACK_INTERVAL = 2.0

SHUTDOWN_TIMEOUT = 5  # seconds to wait for the dev server to exit
STARTUP_GRACE = 1.0  # seconds the dev server must survive after spawning


class Settings(BaseSettings):
    """Launcher settings, overridable through GRC_INIT_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="GRC_INIT_")

    project_root: Path = Field(default_factory=Path.cwd)
    env_file_name: str = ".env"
    lock_file_name: str = ".grc-init.lock"

    # Docker Compose
    compose_project: str = "gigachad-grc"

    # Database
    postgres_user: str = "grc"
    postgres_db: str = "gigachad_grc"
    postgres_host_port: int = 5433
    redis_host_port: int = 6380

    # Health endpoints
    api_health_url: str = "http://localhost:3001/health"
    frontend_urls: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    rustfs_health_urls: list[str] = [
        "http://localhost:9000/health/live",
        "http://localhost:9001",
    ]
    probe_request_timeout: float = 5.0

    # LocalStack S3
    localstack_url: str = "http://localhost:4566"
    localstack_attempts: int = 1
    aws_profile: str = "localstack"
    aws_region: str = "us-east-1"
    s3_buckets: list[str] = ["grc-storage", "grc-backups", "grc-evidence"]

    # Tooling
    node_min_major: int = 18

    @property
    def env_path(self) -> Path:
        return self.project_root / self.env_file_name

    @property
    def lock_path(self) -> Path:
        return self.project_root / self.lock_file_name

    @property
    def postgres_volume(self) -> str:
        return f"{self.compose_project}_postgres_data"

    @property
    def localstack_health_url(self) -> str:
        return f"{self.localstack_url}/_localstack/health"
