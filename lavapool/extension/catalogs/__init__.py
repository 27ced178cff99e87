from __future__ import annotations

from lavapool.extension.catalogs.base import CatalogResolver
from lavapool.extension.catalogs.deezer import DeezerResolver

__all__ = ("CatalogResolver", "DeezerResolver")
