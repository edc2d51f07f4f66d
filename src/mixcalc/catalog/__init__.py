from .base import CatalogInterface
from .builtin import BUILTIN_SUBSTANCES, StaticCatalog, default_catalog

__all__ = ["CatalogInterface", "StaticCatalog", "BUILTIN_SUBSTANCES", "default_catalog"]
