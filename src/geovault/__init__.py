"""
GeoVault - rate-limited, cached location lookups

Looks up where accounts are based under a strict outbound rate budget,
collapsing duplicate requests and caching results for reuse.
"""

__version__ = "0.1.0"

from .services import DispatchPolicy, LocationService, RequestScheduler, ResultCache

__all__ = [
    "DispatchPolicy",
    "LocationService",
    "RequestScheduler",
    "ResultCache",
]
