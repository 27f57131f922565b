# Infrastructure Package
from .catalog import CatalogError, load_catalog, parse_catalog
from .codec import state_from_dict, state_to_dict
from .store import JsonProgressStore, MemoryProgressStore

__all__ = [
    "CatalogError",
    "load_catalog",
    "parse_catalog",
    "state_from_dict",
    "state_to_dict",
    "JsonProgressStore",
    "MemoryProgressStore",
]
