"""Composition root: builds a ReadOrchestrator from settings and a preset.

The preset is resolved once here; components receive concrete values and
never look at the preset name again.
"""

from __future__ import annotations

import logging

from cost_trimmer.application.interfaces.services import IAccessPolicy, IDocumentFetcher
from cost_trimmer.application.services.access_guard import (
    AccessGuard,
    owner_scoped_policy,
)
from cost_trimmer.application.services.read_orchestrator import ReadOrchestrator
from cost_trimmer.application.services.stats_recorder import StatsRecorder
from cost_trimmer.core.config import Settings, get_settings
from cost_trimmer.core.presets import resolve_preset
from cost_trimmer.domain.enums import OptimizerPreset
from cost_trimmer.infrastructure.cache.memory_cache import InMemoryCacheStore
from cost_trimmer.shared.utils.clock import Clock

logger = logging.getLogger(__name__)


def build_optimizer(
    settings: Settings | None = None,
    *,
    fetcher: IDocumentFetcher | None = None,
    preset: OptimizerPreset | str | None = None,
    policy: IAccessPolicy | None = None,
    clock: Clock | None = None,
) -> ReadOrchestrator:
    """Wire cache store, guard, stats and fetcher into a ReadOrchestrator.

    Args:
        settings: Settings to use; defaults to get_settings().
        fetcher: Remote collaborator; when None a Firestore REST fetcher is
            built from service-account settings and closed by aclose().
        preset: Overrides settings.optimizer_preset.
        policy: Access policy; defaults to the owner-scoped policy.
        clock: Millisecond clock for the cache store (tests).

    Raises:
        ConfigurationError: Unknown preset, or no fetcher and no credentials.
    """
    settings = settings or get_settings()
    preset_name = preset or settings.optimizer_preset
    config = resolve_preset(preset_name)

    owns_fetcher = fetcher is None
    if fetcher is None:
        from cost_trimmer.infrastructure.firebase import (
            FirestoreFetcher,
            create_firestore_client,
        )

        fetcher = FirestoreFetcher(create_firestore_client(settings))

    store = InMemoryCacheStore(
        max_entries=settings.cache_max_entries or config.max_entries,
        max_bytes=settings.cache_max_bytes,
        clock=clock,
    )
    guard = AccessGuard(
        policy=policy or owner_scoped_policy(settings.owner_scoped_collections),
        strictness=config.guard_strictness,
    )
    orchestrator = ReadOrchestrator(
        fetcher,
        store,
        guard,
        StatsRecorder(settings.cost_per_read),
        document_ttl_ms=config.document_ttl_ms,
        collection_ttl_ms=config.collection_ttl_ms,
        sweep_interval_seconds=settings.cache_sweep_interval_seconds,
        close_fetcher=owns_fetcher,
    )
    logger.info(
        "Read optimizer ready: preset=%s, document_ttl=%sms, collection_ttl=%sms, "
        "max_entries=%s, guard=%s",
        preset_name,
        config.document_ttl_ms,
        config.collection_ttl_ms,
        store.max_entries,
        config.guard_strictness.value,
    )
    return orchestrator


def quick_firestore(
    preset: OptimizerPreset | str = OptimizerPreset.BALANCED,
    fetcher: IDocumentFetcher | None = None,
    settings: Settings | None = None,
) -> ReadOrchestrator:
    """One-line setup: a ReadOrchestrator for the named preset.

    Example:
        optimizer = quick_firestore("balanced")
        optimizer.register_user({"uid": "user-123", "role": "user"})
        product = await optimizer.read_document("user-123", "products/product-1")
    """
    return build_optimizer(settings, fetcher=fetcher, preset=preset)


def setup_telemetry(settings: Settings | None = None) -> None:
    """Initialize tracing when telemetry is enabled in settings."""
    settings = settings or get_settings()
    if not settings.telemetry_enabled:
        return
    from cost_trimmer.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

    telemetry = TelemetryConfig(
        service_name=settings.app_name,
        service_version=settings.app_version,
        enabled=True,
        environment=settings.telemetry_environment,
    )
    telemetry.setup_telemetry(
        exporter_type=settings.telemetry_exporter,
        otlp_endpoint=settings.telemetry_otlp_endpoint,
        sample_rate=settings.telemetry_sample_rate,
    )
    telemetry.instrument_logging()
    set_telemetry(telemetry)
    logger.info("Telemetry initialized")


def shutdown_telemetry() -> None:
    """Flush and shut down tracing if setup_telemetry() initialized it."""
    from cost_trimmer.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry = get_telemetry()
    if telemetry is None:
        return
    telemetry.shutdown()
    set_telemetry(None)
