"""Catalog store factory.

Provides get_catalog() / set_catalog(). The default is an InMemoryCatalog,
seeded from ``CATALOG_FILE`` when that setting is present.
"""

from checkout.catalog.memory import InMemoryCatalog
from checkout.catalog.port import CatalogStore
from checkout.config import get_settings

_current_catalog: CatalogStore | None = None


def build_catalog() -> CatalogStore:
    settings = get_settings()
    if settings.catalog_file:
        return InMemoryCatalog.from_file(settings.catalog_file)
    return InMemoryCatalog()


def get_catalog() -> CatalogStore:
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = build_catalog()
    return _current_catalog


def set_catalog(catalog: CatalogStore) -> None:
    """Override the active catalog (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
