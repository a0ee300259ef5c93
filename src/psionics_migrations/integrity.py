"""
Integrity checks for stored power data.

These look at the raw stored source, not the normalized model, so they can
tell which documents still carry a pre-0.6.1 shape or were left half-migrated
by an interrupted run.
"""

import logging
from dataclasses import dataclass, field
from numbers import Number
from typing import Any

from .data import POWER_TYPE
from .documents import ItemDocument
from .storage import WorldStorage

logger = logging.getLogger("psionics-migrations.integrity")


def validate_augment(augment: Any) -> list[str]:
    """Problems with one augment record; empty when it is usable."""
    if not isinstance(augment, dict):
        return [f"augment is {type(augment).__name__}, not an object"]

    problems: list[str] = []
    augment_id = augment.get("_id")
    if not isinstance(augment_id, str) or not augment_id:
        problems.append("missing _id")
    name = augment.get("name")
    if not isinstance(name, str) or not name:
        problems.append(f"augment {augment_id or '?'} has no name")
    cost = augment.get("cost", 1)
    if isinstance(cost, bool) or not isinstance(cost, Number):
        problems.append(f"augment {augment_id or '?'} has a non-numeric cost: {cost!r}")
    elif cost < 0:
        problems.append(f"augment {augment_id or '?'} has a negative cost: {cost}")
    return problems


@dataclass
class PowerAudit:
    """Findings for one stored power.

    Attributes:
        uuid: Where the power lives.
        name: Power name.
        legacy_augments: Stored data still has power-level augments.
        partial_relocation: Some actions have augments and some do not.
        partial_deletion: Power-level augments are stored next to actions
            that already carry augments.
        augment_problems: Validation problems, prefixed with the action index.
    """
    uuid: str
    name: str
    legacy_augments: bool = False
    partial_relocation: bool = False
    partial_deletion: bool = False
    augment_problems: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (
            self.legacy_augments
            or self.partial_relocation
            or self.partial_deletion
            or self.augment_problems
        )


def _has_augments(action: Any) -> bool:
    return isinstance(action, dict) and isinstance(action.get("augments"), list) and bool(action["augments"])


def audit_power(system: dict[str, Any], uuid: str = "", name: str = "") -> PowerAudit:
    """Audit the raw stored system data of one power."""
    audit = PowerAudit(uuid=uuid, name=name)
    if not isinstance(system, dict):
        audit.augment_problems.append("system data is not an object")
        return audit

    actions = system.get("actions") if isinstance(system.get("actions"), list) else []
    legacy = system.get("augments")
    audit.legacy_augments = isinstance(legacy, list) and bool(legacy)

    with_augments = sum(1 for action in actions if _has_augments(action))
    without_augments = len(actions) - with_augments
    audit.partial_relocation = with_augments > 0 and without_augments > 0
    audit.partial_deletion = "augments" in system and with_augments > 0

    for index, action in enumerate(actions):
        if not _has_augments(action):
            continue
        for augment in action["augments"]:
            audit.augment_problems.extend(
                f"action {index}: {problem}" for problem in validate_augment(augment)
            )
    return audit


def _audit_items(items: list[ItemDocument], audits: list[PowerAudit]) -> None:
    for item in items:
        if item.type == POWER_TYPE:
            audits.append(audit_power(item.source.get("system"), item.uuid, item.name))


def audit_world(storage: WorldStorage) -> list[PowerAudit]:
    """Audit every stored power: world items, owned items and compendium packs.

    Locked packs are included; auditing never writes.
    """
    audits: list[PowerAudit] = []
    _audit_items(storage.items(), audits)
    for actor in storage.actors():
        _audit_items(actor.items, audits)
    for pack in storage.packs():
        if pack.metadata.type != "Item":
            continue
        with pack.open_documents() as documents:
            _audit_items(documents, audits)

    problems = [audit for audit in audits if not audit.ok]
    logger.info(f"Audited {len(audits)} power(s), {len(problems)} with problems")
    return audits
