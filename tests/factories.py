"""
Builders for raw stored documents used across the tests.
"""

from typing import Any

from psionics_migrations.data import POWER_TYPE


def make_power(name: str = "Mind Thrust", **system: Any) -> dict[str, Any]:
    """Raw stored data of a power item."""
    return {"name": name, "type": POWER_TYPE, "system": system}


def make_actor(name: str = "Psion", type: str = "character", **extra: Any) -> dict[str, Any]:
    """Raw stored data of an actor with a minimal skill list."""
    actor = {
        "name": name,
        "type": type,
        "system": {"skills": {"acr": {"ability": "dex", "rank": 0}}},
        "flags": {},
    }
    actor.update(extra)
    return actor


def augment(augment_id: str, name: str = "Extra Damage", cost: float = 1, **extra: Any) -> dict[str, Any]:
    data = {"_id": augment_id, "name": name, "cost": cost}
    data.update(extra)
    return data
