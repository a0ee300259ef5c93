"""
Live document handles over stored actor and item data.

A document keeps two views of one record: ``source``, the raw dict exactly as
stored, and ``data``, the materialized model (for power items this is where the
load-time normalizer has already run). Writes are expressed as update dicts
against the raw source, re-materialized, and then persisted by the storage
layer. Documents that come from a locked archive refuse every write.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel

from .errors import ReadOnlyDocumentError
from .models import Actor, Item, PowerModel, PsionicsFlags

if TYPE_CHECKING:
    from .storage import Pack, WorldStorage

logger = logging.getLogger("psionics-migrations.documents")

DELETE_PREFIX = "-="


def apply_update(target: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Apply a flat update dict to nested data in place.

    Keys are dotted paths (``system.actions.0.augments``); integer segments
    index into lists. A final segment prefixed with ``-=`` deletes that key.

    Args:
        target: Nested data to update.
        changes: Mapping of dotted path to new value.

    Returns:
        The updated target.

    Raises:
        KeyError: If a path walks through a missing list index or a non-container.
    """
    for path, value in changes.items():
        *parents, last = path.split(".")
        node: Any = target
        for segment in parents:
            if isinstance(node, list):
                node = node[int(segment)]
                continue
            if not isinstance(node, dict):
                raise KeyError(f"Cannot update '{path}': '{segment}' is not a container")
            child = node.get(segment)
            if not isinstance(child, (dict, list)):
                child = node[segment] = {}
            node = child

        if last.startswith(DELETE_PREFIX):
            if isinstance(node, dict):
                node.pop(last[len(DELETE_PREFIX):], None)
            continue
        if isinstance(node, list):
            node[int(last)] = value
        else:
            node[last] = value
    return target


class Document:
    """Base handle for a stored record."""

    document_name: ClassVar[str] = "Document"
    model: ClassVar[type[BaseModel]]

    def __init__(
        self,
        source: dict[str, Any],
        storage: WorldStorage,
        *,
        parent: ActorDocument | None = None,
        pack: Pack | None = None,
        path: Path | None = None,
    ) -> None:
        self._source = source
        self.storage = storage
        self.parent = parent
        self.pack = pack
        # File the record was loaded from; world documents are saved back to it
        self.path = path
        self.data = self._materialize(source)

    def _materialize(self, source: dict[str, Any]) -> Any:
        return self.model.model_validate(deepcopy(source))

    def __repr__(self) -> str:
        return f"<{self.document_name} {self.name!r} ({self.id})>"

    @property
    def source(self) -> dict[str, Any]:
        """Raw stored data. Treat as read-only; write through ``update``."""
        return self._source

    @property
    def id(self) -> str:
        return self.data.id

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def type(self) -> str:
        return self.data.type

    @property
    def system(self) -> Any:
        return self.data.system

    @property
    def flags(self) -> dict[str, dict[str, Any]]:
        return self.data.flags

    @property
    def read_only(self) -> bool:
        return self.pack is not None and self.pack.locked

    @property
    def uuid(self) -> str:
        """Identity used in log lines: where the record lives plus its id."""
        if self.pack is not None:
            return f"Compendium.{self.pack.collection}.{self.document_name}.{self.id}"
        if self.parent is not None:
            return f"{self.parent.uuid}.{self.document_name}.{self.id}"
        return f"{self.document_name}.{self.id}"

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def has_flag(self, namespace: str, key: str) -> bool:
        return key in self.flags.get(namespace, {})

    def get_flag(self, namespace: str, key: str, default: Any = None) -> Any:
        return self.flags.get(namespace, {}).get(key, default)

    async def set_flag(self, namespace: str, key: str, value: Any) -> None:
        await self.update({f"flags.{namespace}.{key}": value})

    async def unset_flag(self, namespace: str, key: str) -> None:
        await self.update({f"flags.{namespace}.{DELETE_PREFIX}{key}": None})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def update(self, changes: dict[str, Any]) -> None:
        """Apply changes to the stored record and persist it.

        The candidate record is materialized before anything is written, so
        an update that would produce an invalid document leaves both the
        in-memory source and the stored file untouched.
        """
        if self.read_only:
            raise ReadOnlyDocumentError(
                f"Cannot update {self.uuid}: archive '{self.pack.collection}' is locked"
            )
        data = self._materialize(apply_update(deepcopy(self._source), deepcopy(changes)))

        # Patch in place: owned records share their dicts with the parent's source
        apply_update(self._source, deepcopy(changes))
        self.data = data
        await self.storage.save_document(self)
        logger.debug(f"✏️ Updated {self.uuid}: {', '.join(changes)}")
        if self.parent is not None:
            self.parent.refresh()

    def refresh(self) -> None:
        """Re-materialize from the current source."""
        self.data = self._materialize(self._source)


class ItemDocument(Document):
    document_name = "Item"
    model = Item

    @property
    def is_power(self) -> bool:
        return self.data.is_power

    @property
    def power(self) -> PowerModel | None:
        return self.data.power


class ActorDocument(Document):
    document_name = "Actor"
    model = Actor

    def __init__(self, source: dict[str, Any], storage: WorldStorage, **kwargs: Any) -> None:
        super().__init__(source, storage, **kwargs)
        self._items: list[ItemDocument] | None = None

    @property
    def items(self) -> list[ItemDocument]:
        """Owned items, sharing their raw dicts with this actor's source.

        Items that fail to load are recorded by the storage layer and left out.
        """
        if self._items is None:
            self._items = []
            for index, raw in enumerate(self._source.get("items", [])):
                item = self.storage.materialize(
                    ItemDocument, raw, f"{self.uuid}.items[{index}]", parent=self, pack=self.pack
                )
                if item is not None:
                    self._items.append(item)
        return self._items

    @property
    def psionics(self) -> PsionicsFlags:
        return self.data.psionics
