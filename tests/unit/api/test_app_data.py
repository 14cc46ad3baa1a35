"""Tests for wiring the application dependencies."""

import os
from unittest.mock import patch

import pytest

from src.jellybridge.api.http.app_data import build_application_dependencies
from src.jellybridge.core.exceptions import ConfigurationError
from src.jellybridge.core.services import InProcessKeyedLock, JellyfinClient, RedisService
from src.jellybridge.runtime.config.config_data import (
    ConfigData,
    DatabaseConfig,
    LifecycleConfig,
    RedisConfig,
    TemporalConfig,
)


def config(**overrides) -> ConfigData:
    return ConfigData(database=DatabaseConfig(url="sqlite:///:memory:"), **overrides)


class TestBuildApplicationDependencies:
    @pytest.mark.asyncio
    async def test_defaults(self):
        with patch.dict(os.environ, {"ENCRYPTION_KEY": "k"}):
            deps = build_application_dependencies(config(lifecycle=LifecycleConfig(enabled=True)))

        assert isinstance(deps.downstream, JellyfinClient)
        assert isinstance(deps.login_lock, InProcessKeyedLock)
        assert deps.scheduler is not None
        assert not deps.scheduler.running
        await deps.aclose()

    @pytest.mark.asyncio
    async def test_no_scheduler_when_temporal_runs_sweeps(self):
        with patch.dict(os.environ, {"ENCRYPTION_KEY": "k"}):
            deps = build_application_dependencies(config(temporal=TemporalConfig(enabled=True)))
        assert deps.scheduler is None
        await deps.aclose()

    @pytest.mark.asyncio
    async def test_no_scheduler_for_one_shot_commands(self):
        with patch.dict(os.environ, {"ENCRYPTION_KEY": "k"}):
            deps = build_application_dependencies(config(), with_scheduler=False)
        assert deps.scheduler is None
        await deps.aclose()

    def test_missing_encryption_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError):
                build_application_dependencies(config())


class TestRedisService:
    @pytest.mark.asyncio
    async def test_disabled(self):
        service = RedisService(config(redis=RedisConfig(enabled=False)))
        assert service.get_client() is None
        assert service.is_enabled is False
        assert await service.health_check() is False

    def test_enabled_without_url(self):
        service = RedisService(config(redis=RedisConfig(enabled=True, url="")))
        assert service.is_enabled is False
        assert service.get_client() is None
