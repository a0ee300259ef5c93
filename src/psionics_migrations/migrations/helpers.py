"""
Traversal helpers shared by the per-version migrations.

A migration function receives one document and returns whether it changed
anything. The helpers walk every place a document can live (world
collection, actor inventories, this module's unlocked compendium packs) and
turn each call into an ``EntityOutcome`` so that one broken document is
logged and counted without stopping the rest of the traversal.
"""

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

from ..data import ACTOR_TYPES, MODULE_ID
from ..documents import ActorDocument, Document, ItemDocument
from ..storage import WorldStorage

logger = logging.getLogger("psionics-migrations.migrations")

ActorMigrationFn = Callable[[ActorDocument], Awaitable[bool]]
ItemMigrationFn = Callable[[ItemDocument], Awaitable[bool]]


@dataclass
class EntityOutcome:
    """Result of migrating one document: changed, unchanged, or failed."""
    changed: bool = False
    error: Exception | None = None

    @classmethod
    def ok(cls, changed: bool) -> "EntityOutcome":
        return cls(changed=changed)

    @classmethod
    def failed(cls, error: Exception) -> "EntityOutcome":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None


@dataclass
class MigrationStats:
    """Aggregated outcomes of one traversal."""
    description: str
    migrated: int = 0
    skipped: int = 0
    errors: int = 0
    failures: list[str] = field(default_factory=list)

    def record(self, outcome: EntityOutcome, label: str = "") -> None:
        if not outcome.is_ok:
            self.errors += 1
            self.failures.append(f"{label}: {outcome.error}")
        elif outcome.changed:
            self.migrated += 1
        else:
            self.skipped += 1

    def record_error(self, label: str, error: Exception) -> None:
        self.errors += 1
        self.failures.append(f"{label}: {error}")


def is_valid_actor(actor: ActorDocument) -> bool:
    """Only characters and NPCs with a skill list take part in actor migrations."""
    return actor.type in ACTOR_TYPES and bool(actor.system.get("skills"))


async def add_skill_if_missing(actor: ActorDocument, skill_key: str, skill_data: dict[str, Any]) -> bool:
    """Add a skill to an actor's skill list if it is missing.

    Returns:
        True if the skill was added, False if it already existed.
    """
    if skill_key in actor.system.get("skills", {}):
        return False
    await actor.update({f"system.skills.{skill_key}": deepcopy(skill_data)})
    logger.info(f"Added skill {skill_key} to {actor.name}")
    return True


async def add_flag_if_missing(actor: Document, flag_key: str, default_value: Any) -> bool:
    """Add a flag under this module's namespace if it does not exist yet.

    Returns:
        True if the flag was added, False if it already existed.
    """
    if actor.has_flag(MODULE_ID, flag_key):
        return False
    await actor.set_flag(MODULE_ID, flag_key, deepcopy(default_value))
    logger.info(f"Added flag {flag_key} to {actor.name}")
    return True


async def migrate_document(fn: Callable[[Any], Awaitable[bool]], document: Document) -> EntityOutcome:
    """Run one migration function on one document, catching its failure."""
    try:
        return EntityOutcome.ok(bool(await fn(document)))
    except Exception as e:
        logger.error(f"❌ Failed to migrate {document.document_name.lower()} {document.name!r} ({document.uuid}): {e}")
        return EntityOutcome.failed(e)


async def _migrate_each(
    fn: Callable[[Any], Awaitable[bool]],
    documents: Iterable[Document],
    stats: MigrationStats,
    predicate: Callable[[Any], bool],
) -> None:
    # Sequential on purpose: one write at a time, deterministic log order
    for document in documents:
        if not predicate(document):
            continue
        outcome = await migrate_document(fn, document)
        stats.record(outcome, document.uuid)


def _log_stats(stats: MigrationStats) -> MigrationStats:
    logger.info(f"Migrated {stats.migrated} {stats.description} ({stats.errors} errors)")
    return stats


async def migrate_all_actors(
    storage: WorldStorage,
    migrate_fn: ActorMigrationFn,
    description: str = "actors",
) -> MigrationStats:
    """Apply a migration function to every valid world actor."""
    logger.info(f"Migrating {description}...")
    stats = MigrationStats(description=description)
    await _migrate_each(migrate_fn, storage.actors(), stats, is_valid_actor)
    return _log_stats(stats)


async def migrate_all_items(
    storage: WorldStorage,
    item_type: str,
    migrate_fn: ItemMigrationFn,
    description: str = "items",
) -> MigrationStats:
    """Apply a migration function to every item of one type, wherever it lives.

    Covers world items, items owned by world actors, and the items of this
    module's compendium packs. Locked packs are read-only and are skipped.
    """
    logger.info(f"Migrating {description}...")
    stats = MigrationStats(description=description)

    def of_type(item: ItemDocument) -> bool:
        return item.type == item_type

    # World items
    await _migrate_each(migrate_fn, storage.items(), stats, of_type)

    # Actor-owned items
    for actor in storage.actors():
        await _migrate_each(migrate_fn, actor.items, stats, of_type)

    # Compendium items
    for pack in storage.packs():
        if pack.metadata.type != "Item" or pack.metadata.package_name != MODULE_ID:
            continue
        if pack.locked:
            logger.info(f"Skipping locked compendium {pack.collection}")
            continue
        try:
            with pack.open_documents() as documents:
                await _migrate_each(migrate_fn, documents, stats, of_type)
        except Exception as e:
            logger.error(f"❌ Failed to migrate compendium {pack.collection}: {e}")
            stats.record_error(pack.collection, e)

    return _log_stats(stats)
