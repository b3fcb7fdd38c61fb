"""LocalStack S3 buckets, managed through the AWS CLI."""

import logging
from typing import List

from grcinit.config import Settings
from grcinit.console import Console
from grcinit.tools import CommandRunner

logger = logging.getLogger(__name__)


class BucketManager:
    def __init__(self, settings: Settings, runner: CommandRunner, console: Console):
        self.settings = settings
        self.runner = runner
        self.console = console

    def _s3api(self, *args: str) -> List[str]:
        return [
            'aws', 's3api', *args,
            '--endpoint-url', self.settings.localstack_url,
            '--profile', self.settings.aws_profile,
        ]

    def exists(self, bucket: str) -> bool:
        return self.runner.succeeds(self._s3api('head-bucket', '--bucket', bucket), timeout=30)

    def ensure_buckets(self) -> None:
        """Create each configured bucket that does not exist yet."""
        self.console.step("Creating S3 buckets on LocalStack...")
        for bucket in self.settings.s3_buckets:
            self.console.substep(f"Creating bucket: {bucket}")
            if self.exists(bucket):
                self.console.success(f"Bucket '{bucket}' already exists")
                continue
            self.runner.check(
                self._s3api('create-bucket', '--bucket', bucket),
                hint=f"Failed to create bucket '{bucket}'; is LocalStack healthy?",
            )
            self.console.success(f"Created bucket '{bucket}'")
        self.console.success("All S3 buckets ready")
