"""Category providers."""

from tidydisk.providers.base import CategoryProvider, LocationProvider, ScanContext
from tidydisk.providers.build import BuildProvider
from tidydisk.providers.cache import CacheProvider
from tidydisk.providers.temp import TempProvider
from tidydisk.providers.trash import TrashProvider
from tidydisk.providers.update_cache import UpdateCacheProvider

__all__ = [
    "BuildProvider",
    "CacheProvider",
    "CategoryProvider",
    "LocationProvider",
    "ScanContext",
    "TempProvider",
    "TrashProvider",
    "UpdateCacheProvider",
]
