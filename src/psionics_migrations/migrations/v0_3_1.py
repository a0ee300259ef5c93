"""
Migration for version 0.3.1

Ensures every character and NPC has:
- Knowledge (Psionics) and Autohypnosis skills
- manifestors flag (renamed to manifesters in 0.5.0)
- powerPoints flag
- focus flag
"""

import logging

from ..data import PSIONIC_SKILLS, default_focus, default_manifesters, default_power_points
from ..documents import ActorDocument
from ..storage import WorldStorage
from .helpers import add_flag_if_missing, add_skill_if_missing, migrate_all_actors

logger = logging.getLogger("psionics-migrations.migrations")


async def migrate_to_0_3_1(storage: WorldStorage) -> None:
    logger.info("Running migration to 0.3.1")

    await migrate_all_actors(storage, migrate_actor, "actors to v0.3.1")

    logger.info("Migration to 0.3.1 complete")


async def migrate_actor(actor: ActorDocument) -> bool:
    """Add missing psionic skills and flags to one actor.

    Returns:
        True if the actor was modified.
    """
    modified = False
    for skill_key, skill_data in PSIONIC_SKILLS.items():
        modified |= await add_skill_if_missing(actor, skill_key, skill_data)

    modified |= await add_flag_if_missing(actor, "manifestors", default_manifesters())
    modified |= await add_flag_if_missing(actor, "powerPoints", default_power_points())
    modified |= await add_flag_if_missing(actor, "focus", default_focus())
    return modified
