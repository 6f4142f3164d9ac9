"""Identity adapter applied to every successful backend response."""
from __future__ import annotations

from typing import Any

BACKEND_ID_KEY = "_id"


def normalize_identity(value: Any) -> Any:
    """Rename ``_id`` to ``id`` recursively through lists and nested objects."""
    if isinstance(value, list):
        return [normalize_identity(item) for item in value]
    if isinstance(value, dict):
        normalized = {key: normalize_identity(item) for key, item in value.items() if key != BACKEND_ID_KEY}
        if value.get(BACKEND_ID_KEY):
            normalized["id"] = value[BACKEND_ID_KEY]
        elif BACKEND_ID_KEY in value:
            normalized[BACKEND_ID_KEY] = value[BACKEND_ID_KEY]
        return normalized
    return value
