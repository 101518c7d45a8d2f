"""Load demo containers and recipients from YAML into an in-memory store."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from portsense.core.types import Recipient, TrackedEntity
from portsense.store.memory import InMemoryEntityStore


def load_seed(path: str | Path) -> InMemoryEntityStore:
    """Build a store from a YAML file with ``containers`` and ``recipients`` lists.

    Raises:
        FileNotFoundError: *path* does not exist.
        pydantic.ValidationError: An entry does not match the model.
    """
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    return InMemoryEntityStore(
        entities=[TrackedEntity.model_validate(c) for c in data.get("containers") or []],
        recipients=[Recipient.model_validate(r) for r in data.get("recipients") or []],
    )
