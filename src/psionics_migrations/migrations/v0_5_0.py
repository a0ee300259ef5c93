"""
Migration for version 0.5.0

Renames manifestor/manifestors to manifester/manifesters:
- Copies the actor flag "manifestors" to "manifesters"
- Copies the power item field "system.manifestor" to "system.manifester"

The old keys are left in place. Removing them belongs to a later release,
once the copies have been in use long enough to trust.
"""

import logging

from ..data import MODULE_ID, POWER_TYPE
from ..documents import ActorDocument, ItemDocument
from ..storage import WorldStorage
from .helpers import migrate_all_actors, migrate_all_items

logger = logging.getLogger("psionics-migrations.migrations")

DEFAULT_MANIFESTER = "primary"


async def migrate_to_0_5_0(storage: WorldStorage) -> None:
    logger.info("Running migration to 0.5.0")

    await migrate_all_actors(storage, migrate_actor, "actors to v0.5.0")
    await migrate_all_items(storage, POWER_TYPE, migrate_power_item, "power items to v0.5.0")

    logger.info("Migration to 0.5.0 complete")


async def migrate_actor(actor: ActorDocument) -> bool:
    """Copy the "manifestors" flag to "manifesters".

    An actor that already has "manifesters" keeps it, even if "manifestors"
    is also present.
    """
    old_manifestors = actor.get_flag(MODULE_ID, "manifestors")
    # Nothing to copy from an empty or null flag
    if not old_manifestors or actor.has_flag(MODULE_ID, "manifesters"):
        return False

    logger.info(f"Migrating actor {actor.name!r} manifestors -> manifesters")
    await actor.set_flag(MODULE_ID, "manifesters", old_manifestors)
    return True


async def migrate_power_item(item: ItemDocument) -> bool:
    """Copy "system.manifestor" to "system.manifester" on one power item."""
    if item.type != POWER_TYPE:
        return False

    # The model always has a manifester (it has a default), so only the raw
    # stored data says whether the new field was ever written
    system = item.source.get("system") or {}
    if "manifestor" not in system or "manifester" in system:
        return False

    old_manifestor = system["manifestor"]
    logger.info(f"Migrating power item {item.name!r} manifestor -> manifester (value: {old_manifestor!r})")
    await item.update({"system.manifester": old_manifestor or DEFAULT_MANIFESTER})
    return True
