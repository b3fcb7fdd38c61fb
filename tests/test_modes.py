"""Tests for the mode table and the service groups each stage brings up."""

import pytest

from grcinit.envfile import STORAGE_S3, EnvRecord
from grcinit.errors import InvalidMode
from grcinit.modes import MODE_NAMES, MODES, get_plan
from grcinit.probes import AnyProbe, CommandProbe, HttpProbe
from grcinit.sequencer import Policy, ReadinessSequencer
from grcinit.stages import (
    LaunchContext,
    app_services_group,
    frontend_container_group,
    infrastructure_groups,
    localstack_group,
    redis_group,
)


@pytest.fixture
def ctx(settings, console, runner, fake_sleep):
    return LaunchContext(
        settings=settings,
        console=console,
        runner=runner,
        sequencer=ReadinessSequencer(console, fake_sleep),
    )


# ============================================================================
# Mode table
# ============================================================================

class TestModeTable:

    def test_menu_order(self):
        assert MODE_NAMES == ('demo', 'dev', 'docker', 's3', 's3-dev', 'reset')

    @pytest.mark.parametrize("mode,stages", [
        ('demo', ('prerequisites', 'environment', 'infrastructure', 'app-services', 'frontend')),
        ('dev', ('prerequisites', 'environment', 'dependencies', 'infrastructure')),
        ('docker', ('prerequisites', 'environment', 'infrastructure', 'app-services', 'frontend-container')),
        ('s3', ('prerequisites', 's3-prerequisites', 'environment', 'infrastructure-s3',
                'app-services', 'frontend')),
        ('s3-dev', ('prerequisites', 's3-prerequisites', 'environment', 'dependencies',
                    'infrastructure-s3')),
        ('reset', ('reset',)),
    ])
    def test_stage_composition(self, mode, stages):
        assert get_plan(mode).stage_names == stages

    @pytest.mark.parametrize("mode", [m for m in MODE_NAMES if m != 'reset'])
    def test_prerequisites_and_environment_come_first(self, mode):
        names = get_plan(mode).stage_names
        assert names[0] == 'prerequisites'
        env_index = names.index('environment')
        for name in names[env_index + 1:]:
            assert name not in ('prerequisites', 's3-prerequisites')

    def test_only_frontend_dev_modes_stay_in_foreground(self):
        foreground = {name for name, plan in MODES.items() if plan.foreground}
        assert foreground == {'demo', 's3'}

    def test_s3_modes_use_s3_storage(self):
        assert {name for name, plan in MODES.items() if plan.storage == STORAGE_S3} == {'s3', 's3-dev'}

    def test_unknown_mode(self):
        with pytest.raises(InvalidMode, match="Unknown mode: 'staging'"):
            get_plan('staging')


# ============================================================================
# Service groups
# ============================================================================

class TestServiceGroups:

    def test_infrastructure_groups(self, ctx):
        groups = infrastructure_groups(ctx)
        assert [g.name for g in groups] == ['PostgreSQL', 'Redis', 'Keycloak', 'RustFS']
        postgres, redis, keycloak, rustfs = groups

        assert (postgres.policy, postgres.attempts, postgres.interval) == (Policy.HARD, 30, 2.0)
        assert (redis.policy, redis.attempts, redis.interval) == (Policy.HARD, 30, 1.0)
        assert keycloak.probe is None
        assert (rustfs.policy, rustfs.attempts, rustfs.interval) == (Policy.SOFT, 15, 2.0)
        assert isinstance(rustfs.probe, AnyProbe)

    def test_s3_infrastructure_has_no_rustfs(self, ctx):
        ctx.storage = STORAGE_S3
        assert [g.name for g in infrastructure_groups(ctx)] == ['PostgreSQL', 'Redis', 'Keycloak']

    def test_postgres_probe_runs_inside_the_container(self, ctx):
        probe = infrastructure_groups(ctx)[0].probe
        assert isinstance(probe, CommandProbe)
        assert probe.cmd == ['docker', 'compose', 'exec', '-T', 'postgres', 'pg_isready', '-U', 'grc']

    def test_redis_probe_uses_password_from_record(self, ctx):
        ctx.env = EnvRecord({'REDIS_PASSWORD': 's3cret'})
        probe = redis_group(ctx).probe
        assert probe.cmd[-3:] == ['-a', 's3cret', 'ping']
        assert probe.expect_output == 'PONG'

    def test_redis_probe_default_password(self, ctx):
        assert 'redis_secret' in redis_group(ctx).probe.cmd

    def test_app_services(self, ctx):
        group = app_services_group(ctx)
        assert (group.policy, group.attempts, group.interval) == (Policy.SOFT, 60, 2.0)
        assert isinstance(group.probe, HttpProbe)
        assert group.probe.url == 'http://localhost:3001/health'

    def test_app_services_s3_overlay(self, ctx):
        ctx.storage = STORAGE_S3
        assert ctx.app_compose().describe('down') == (
            'docker compose -f docker-compose.yml -f docker-compose.s3.yml down'
        )
        assert 'docker-compose.s3.yml' in app_services_group(ctx).hint

    def test_frontend_container(self, ctx):
        group = frontend_container_group(ctx)
        assert (group.policy, group.attempts) == (Policy.SOFT, 30)
        assert group.probe.url == 'http://localhost:3000'

    def test_localstack_gate(self, ctx, settings):
        group = localstack_group(ctx)
        assert group.policy is Policy.HARD
        assert group.attempts == settings.localstack_attempts == 1
        assert group.start is None
        assert group.probe.url == 'http://localhost:4566/_localstack/health'
        assert 'localstack start -d' in group.hint
