"""Container / alert store — abstract interface and in-memory implementation."""

from portsense.store.base import EntityStore
from portsense.store.exceptions import (
    AlertNotFoundError,
    EntityNotFoundError,
    StoreError,
    UnauthorizedUpdateError,
)
from portsense.store.memory import InMemoryEntityStore, alert_stats
from portsense.store.seed import load_seed

__all__ = [
    "AlertNotFoundError",
    "EntityNotFoundError",
    "EntityStore",
    "InMemoryEntityStore",
    "StoreError",
    "UnauthorizedUpdateError",
    "alert_stats",
    "load_seed",
]
