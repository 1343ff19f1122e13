"""Services module for GeoVault.

This module contains the lookup pipeline: result cache, rate limiter,
per-key state tracking, request scheduler, dispatch policy and the HTTP
lookup backend.
"""

from .cache import CacheEntry, ResultCache
from .dispatch_policy import DispatchPolicy, DisplayState, DisplayUpdate, Mode
from .fetcher import FetchFailure, Fetcher, FetchResult, FetchSuccess, FetchThrottled
from .http_fetcher import HttpLocationFetcher
from .location import LocationInfo
from .rate_limiter import Acquisition, RateLimiter
from .scheduler import QueueItem, RequestScheduler, ThrottlePolicy
from .service import LocationService
from .state_machine import ProcessingState, ProcessingStateTracker
from .storage import DurableStore, JsonFileStore, MemoryStore

__all__ = [
    "Acquisition",
    "CacheEntry",
    "DispatchPolicy",
    "DisplayState",
    "DisplayUpdate",
    "DurableStore",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "FetchThrottled",
    "Fetcher",
    "HttpLocationFetcher",
    "JsonFileStore",
    "LocationInfo",
    "LocationService",
    "MemoryStore",
    "Mode",
    "ProcessingState",
    "ProcessingStateTracker",
    "QueueItem",
    "RateLimiter",
    "RequestScheduler",
    "ResultCache",
    "ThrottlePolicy",
]
