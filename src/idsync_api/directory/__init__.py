"""Directory gateway integration."""

from idsync_api.directory.client import DirectorySyncClient

__all__ = ["DirectorySyncClient"]
