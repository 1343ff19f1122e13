"""Dependency Injection container for GeoVault.

This module provides a centralized DI container using dependency-injector
to wire configuration into the lookup pipeline.

The container manages:
- Settings (Singleton)
- Clock and durable cache store
- Result cache, rate limiter and per-key state tracker
- HTTP lookup backend
- Request scheduler, dispatch policy and the location service facade

Components that hold scheduler state are singletons: one container is one
scheduler instance.
"""

from __future__ import annotations

from dependency_injector import containers, providers

from geovault.config.loader import get_config
from geovault.config.models.settings import Settings
from geovault.core.clock import SystemClock
from geovault.services import (
    DispatchPolicy,
    HttpLocationFetcher,
    JsonFileStore,
    LocationService,
    MemoryStore,
    ProcessingStateTracker,
    RateLimiter,
    RequestScheduler,
    ResultCache,
)
from geovault.services.storage import DurableStore


def _build_store(config: Settings) -> DurableStore:
    if config.cache.enabled:
        return JsonFileStore(config.cache.path)
    return MemoryStore()


class Container(containers.DeclarativeContainer):
    """Dependency Injection container for GeoVault services.

    Example:
        >>> container = Container()
        >>> service = container.location_service()
        >>> results = await service.lookup(["alice", "bob"])
    """

    # Configuration
    config = providers.Singleton(get_config)

    clock = providers.Singleton(SystemClock)

    # Cache
    cache_store = providers.Singleton(_build_store, config=config)

    result_cache = providers.Singleton(
        ResultCache,
        clock=clock,
        store=cache_store,
        ttl_ms=providers.Callable(lambda config: config.cache.ttl_ms, config=config),
        persist_debounce_ms=providers.Callable(
            lambda config: config.cache.persist_debounce_ms,
            config=config,
        ),
    )

    # Rate limiting components
    rate_limiter = providers.Singleton(
        RateLimiter,
        clock=clock,
        min_interval_ms=providers.Callable(
            lambda config: config.scheduler.min_interval_ms,
            config=config,
        ),
        max_concurrent=providers.Callable(
            lambda config: config.scheduler.max_concurrent,
            config=config,
        ),
    )

    state_tracker = providers.Singleton(ProcessingStateTracker)

    # Lookup backend
    fetcher = providers.Singleton(
        HttpLocationFetcher,
        settings=providers.Callable(lambda config: config.api, config=config),
        clock=clock,
    )

    scheduler = providers.Singleton(
        RequestScheduler,
        clock=clock,
        fetcher=fetcher,
        cache=result_cache,
        rate_limiter=rate_limiter,
        tracker=state_tracker,
        fetch_timeout_ms=providers.Callable(
            lambda config: config.scheduler.fetch_timeout_ms,
            config=config,
        ),
        throttle_policy=providers.Callable(
            lambda config: config.scheduler.throttle_policy,
            config=config,
        ),
        default_throttle_cooldown_ms=providers.Callable(
            lambda config: config.scheduler.default_throttle_cooldown_ms,
            config=config,
        ),
        max_throttle_cooldown_ms=providers.Callable(
            lambda config: config.scheduler.max_throttle_cooldown_ms,
            config=config,
        ),
        max_requeues=providers.Callable(
            lambda config: config.scheduler.max_requeues,
            config=config,
        ),
    )

    dispatch_policy = providers.Singleton(
        DispatchPolicy,
        scheduler=scheduler,
        mode=providers.Callable(lambda config: config.dispatch.mode, config=config),
        enabled=providers.Callable(lambda config: config.dispatch.enabled, config=config),
    )

    # Where mode changes are persisted (None: the per-user config file)
    config_path = providers.Object(None)

    location_service = providers.Singleton(
        LocationService,
        scheduler=scheduler,
        policy=dispatch_policy,
        fetcher=fetcher,
        config_path=config_path,
    )


__all__ = ["Container"]
