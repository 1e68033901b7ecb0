"""Tests for tracing helpers and telemetry setup."""

import logging

import pytest

from cost_trimmer.core.composition import setup_telemetry, shutdown_telemetry
from cost_trimmer.core.config import Settings
from cost_trimmer.shared.telemetry import (
    TelemetryConfig,
    add_span_attributes,
    get_telemetry,
    set_telemetry,
    setup_logging,
    traced,
)


@traced("test.async_op")
async def _async_op(value: int, *, path: str = "") -> int:
    add_span_attributes(**{"test.value": value})
    if value < 0:
        raise ValueError("negative")
    return value * 2


@traced()
def _sync_op(value: int) -> int:
    return value + 1


class TestTraced:
    """traced() is transparent to results and errors, with or without a provider."""

    @pytest.mark.asyncio
    async def test_async_result(self) -> None:
        assert await _async_op(3, path="products/p1") == 6

    @pytest.mark.asyncio
    async def test_async_error_propagates(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            await _async_op(-1)

    def test_sync_result(self) -> None:
        assert _sync_op(1) == 2

    def test_wraps_preserves_name(self) -> None:
        assert _sync_op.__name__ == "_sync_op"


class TestTelemetryConfig:
    def test_disabled_returns_none(self) -> None:
        config = TelemetryConfig("cost-trimmer", "1.0.0", enabled=False)
        assert config.setup_telemetry() is None
        config.instrument_logging()
        assert config.tracer_provider is None

    def test_no_exporter_provider_and_shutdown(self) -> None:
        config = TelemetryConfig("cost-trimmer", "1.0.0", environment="test")
        provider = config.setup_telemetry(exporter_type="none", sample_rate=0.5)
        assert provider is config.tracer_provider
        assert provider.resource.attributes["deployment.environment"] == "test"
        config.shutdown()
        assert config.tracer_provider is None


class TestSetupTelemetry:
    def test_disabled_in_settings_is_noop(self) -> None:
        set_telemetry(None)
        setup_telemetry(Settings(_env_file=None, telemetry_enabled=False))
        assert get_telemetry() is None

    def test_shutdown_clears_global_instance(self) -> None:
        config = TelemetryConfig("cost-trimmer", "1.0.0", enabled=False)
        set_telemetry(config)
        shutdown_telemetry()
        assert get_telemetry() is None
        shutdown_telemetry()


def test_setup_logging_uses_settings(monkeypatch) -> None:
    calls = {}
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    setup_logging()
    assert calls["level"] == logging.DEBUG
