"""
Migration for version 0.6.1

Moves augments from the power level to the action level on stored data:
- Finds all powers with a stored system.augments list
- Copies those augments to each action that has none of its own
- Removes the old system.augments field

Loading already hides the old field through ``PowerModel.migrate_data``; this
migration makes the stored documents match, so the relocation no longer has
to be redone on every load.
"""

import logging
from copy import deepcopy

from ..data import POWER_TYPE
from ..documents import ItemDocument
from ..models import PowerModel
from ..storage import WorldStorage
from .helpers import migrate_all_items

logger = logging.getLogger("psionics-migrations.migrations")


async def migrate_to_0_6_1(storage: WorldStorage) -> None:
    logger.info("Running migration to 0.6.1")

    await migrate_all_items(storage, POWER_TYPE, migrate_power_item, "power items to v0.6.1")

    logger.info("Migration to 0.6.1 complete")


async def migrate_power_item(item: ItemDocument) -> bool:
    """Relocate the stored power-level augments of one power item.

    Returns:
        True if the item was modified.
    """
    if item.type != POWER_TYPE:
        return False

    system = item.source.get("system") or {}
    old_augments = system.get("augments")
    if not isinstance(old_augments, list) or not old_augments:
        return False

    actions = system.get("actions")
    if not isinstance(actions, list) or not actions:
        # Keep the stored augments: there is nowhere to put them yet
        logger.warning(f"Power {item.name!r} has augments but no actions - skipping")
        return False

    logger.info(f"Migrating power item {item.name!r} - moving {len(old_augments)} augment(s) to actions")

    migrated = PowerModel.migrate_data(deepcopy(system))
    updates = {}
    for index, action in enumerate(actions):
        existing = action.get("augments")
        if isinstance(existing, list) and existing:
            continue
        updates[f"system.actions.{index}.augments"] = migrated["actions"][index]["augments"]
    updates["system.-=augments"] = None

    await item.update(updates)
    return True
