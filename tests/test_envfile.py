"""Tests for secret generation and the .env configuration record."""

import base64
import os
import stat
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from grcinit.envfile import (
    ENV_FILE_MODE,
    SECRET_SPECS,
    STORAGE_RUSTFS,
    STORAGE_S3,
    ConfigMaterializer,
    EnvRecord,
    SecretGenerator,
    atomic_write,
    build_sections,
    render,
)
from grcinit.errors import ConfigConflict, ConfigError
from grcinit.tools import Compose


def _make_result(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


def _decode(value: str, encoding: str) -> bytes:
    if encoding == 'hex':
        return bytes.fromhex(value)
    if encoding == 'base64':
        return base64.b64decode(value)
    return base64.urlsafe_b64decode(value)


@pytest.fixture
def materializer(settings, runner, console):
    return ConfigMaterializer(settings, Compose(runner), console)


@pytest.fixture
def no_volume(mock_subprocess):
    """`docker volume inspect` reports no such volume."""
    mock_subprocess.return_value = _make_result(1, stderr="Error: No such volume")
    return mock_subprocess


# ============================================================================
# SecretGenerator
# ============================================================================

class TestSecretGenerator:

    def test_generates_every_secret_with_enough_entropy(self):
        values = SecretGenerator().generate()
        assert set(values) == set(SECRET_SPECS)
        for key, (nbytes, encoding) in SECRET_SPECS.items():
            assert nbytes >= 24
            assert len(_decode(values[key], encoding)) == nbytes

    def test_values_are_pairwise_distinct(self):
        values = SecretGenerator().generate()
        assert len(set(values.values())) == len(values)

    def test_each_run_produces_new_values(self):
        assert SecretGenerator().generate() != SecretGenerator().generate()

    def test_repeated_value_is_rejected(self):
        generator = SecretGenerator(primary=lambda n: b'\x00' * n)
        with pytest.raises(ConfigError, match="repeated"):
            generator.generate()

    def test_falls_back_to_openssl_without_os_entropy(self):
        runner = MagicMock()
        runner.output.return_value = "ab" * 16

        def unavailable(nbytes):
            raise NotImplementedError

        generator = SecretGenerator(runner, primary=unavailable)
        assert generator.token(16, 'hex') == "ab" * 16
        runner.output.assert_called_once_with(['openssl', 'rand', '-hex', '16'])

    def test_no_source_at_all_is_a_config_error(self):
        runner = MagicMock()
        runner.output.return_value = None

        def unavailable(nbytes):
            raise NotImplementedError

        with pytest.raises(ConfigError, match="No secure random source"):
            SecretGenerator(runner, primary=unavailable).token(32, 'hex')

    def test_short_openssl_output_is_rejected(self):
        runner = MagicMock()
        runner.output.return_value = "abcd"

        def unavailable(nbytes):
            raise NotImplementedError

        with pytest.raises(ConfigError, match="malformed"):
            SecretGenerator(runner, primary=unavailable).token(32, 'hex')

    def test_openssl_is_not_consulted_when_os_entropy_works(self):
        runner = MagicMock()
        SecretGenerator(runner).token(32, 'hex')
        runner.output.assert_not_called()


# ============================================================================
# Rendering
# ============================================================================

class TestRender:

    def _secrets(self):
        return {key: f"secret-{key.lower()}" for key in SECRET_SPECS}

    def test_rustfs_record(self, settings):
        content = render(build_sections(settings, self._secrets(), STORAGE_RUSTFS), STORAGE_RUSTFS)
        assert content.startswith("# ====")
        assert "NODE_ENV=development\n" in content
        assert "MINIO_ROOT_PASSWORD=secret-minio_root_password\n" in content
        assert ("DATABASE_URL=postgresql://grc:secret-postgres_password"
                "@localhost:5433/gigachad_grc\n") in content
        assert "REDIS_URL=redis://:secret-redis_password@localhost:6380\n" in content
        assert "STORAGE_MODE" not in content

    def test_s3_record(self, settings):
        content = render(build_sections(settings, self._secrets(), STORAGE_S3), STORAGE_S3)
        assert "(S3/LocalStack Mode)" in content
        assert "STORAGE_MODE=s3\n" in content
        assert "S3_PORT=4566\n" in content
        assert "S3_BUCKET=grc-storage\n" in content
        assert "MINIO_ROOT_PASSWORD" not in content

    def test_timestamp(self, settings):
        stamp = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        content = render(build_sections(settings, self._secrets(), STORAGE_RUSTFS), STORAGE_RUSTFS, stamp)
        assert "# Generated: 2025-01-02T03:04:05Z" in content

    def test_keys_are_unique(self, settings):
        content = render(build_sections(settings, self._secrets(), STORAGE_S3), STORAGE_S3)
        keys = [line.split('=', 1)[0] for line in content.splitlines() if line and not line.startswith('#')]
        assert len(keys) == len(set(keys))

    def test_duplicate_key_in_template_raises(self):
        with pytest.raises(ValueError, match="Duplicate key"):
            render([('A', [('KEY', '1')]), ('B', [('KEY', '2')])], STORAGE_RUSTFS)

    def test_atomic_write_mode(self, tmp_path):
        target = tmp_path / ".env"
        atomic_write(target, "A=1\n")
        assert target.read_text() == "A=1\n"
        assert stat.S_IMODE(target.stat().st_mode) == ENV_FILE_MODE
        assert not (tmp_path / ".env.tmp").exists()


# ============================================================================
# EnvRecord
# ============================================================================

class TestEnvRecord:

    def test_load_parses_quotes_and_comments(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text('# comment\nA=1\nB="two words"\n\nexport C=3\n')
        record = EnvRecord.load(path)
        assert record['A'] == '1'
        assert record.get('B') == 'two words'
        assert record['C'] == '3'
        assert 'missing' not in record
        assert list(record) == ['A', 'B', 'C']

    def test_duplicate_keys_warn_and_last_wins(self, tmp_path, caplog):
        path = tmp_path / ".env"
        path.write_text("A=1\nA=2\n")
        record = EnvRecord.load(path)
        assert record['A'] == '2'
        assert "Duplicate key A" in caplog.text

    def test_unreadable_file_is_a_config_error(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("A=1\n")
        with patch("grcinit.envfile.dotenv_values", side_effect=PermissionError("denied")):
            with pytest.raises(ConfigError, match="Cannot read"):
                EnvRecord.load(path)


# ============================================================================
# ConfigMaterializer
# ============================================================================

class TestConfigMaterializer:

    def test_creates_record_with_owner_only_permissions(self, materializer, settings, no_volume):
        record = materializer.materialize()

        assert settings.env_path.is_file()
        assert stat.S_IMODE(settings.env_path.stat().st_mode) == 0o600
        for key in SECRET_SPECS:
            assert record[key]
        assert record['USE_DEV_AUTH'] == 'true'

    def test_existing_record_is_reused_byte_for_byte(self, materializer, settings, no_volume):
        materializer.materialize()
        before = settings.env_path.read_bytes()
        no_volume.reset_mock()

        record = materializer.materialize()

        assert settings.env_path.read_bytes() == before
        assert record['JWT_SECRET'] in before.decode()
        # No volume lookup and no regeneration once the record exists
        no_volume.assert_not_called()

    def test_existing_record_with_loose_permissions_is_tightened(self, materializer, settings, mock_subprocess):
        settings.env_path.write_text("POSTGRES_PASSWORD=kept\n")
        os.chmod(settings.env_path, 0o644)

        record = materializer.materialize()

        assert record['POSTGRES_PASSWORD'] == 'kept'
        assert settings.env_path.read_text() == "POSTGRES_PASSWORD=kept\n"
        assert stat.S_IMODE(settings.env_path.stat().st_mode) == 0o600

    def test_orphaned_volume_declined_writes_nothing(self, materializer, settings, mock_subprocess):
        # docker volume inspect succeeds: the database volume exists
        with pytest.raises(ConfigConflict) as exc_info:
            materializer.materialize()

        assert not settings.env_path.exists()
        assert "grc-init reset" in exc_info.value.hint
        inspect_cmd = mock_subprocess.call_args.args[0]
        assert inspect_cmd == ['docker', 'volume', 'inspect', 'gigachad-grc_postgres_data']

    def test_orphaned_volume_confirmed_generates(self, settings, runner, console, mock_subprocess):
        console.yes = True
        record = ConfigMaterializer(settings, Compose(runner), console).materialize()
        assert settings.env_path.exists()
        assert 'ENCRYPTION_KEY' in record
        assert "PostgreSQL volume exists" in console.stream.getvalue()

    def test_s3_storage(self, materializer, settings, no_volume, console):
        record = materializer.materialize(STORAGE_S3)
        assert record['STORAGE_MODE'] == 's3'
        assert record['S3_ENDPOINT'] == 'localhost'
        assert "S3/LocalStack configuration" in console.stream.getvalue()
