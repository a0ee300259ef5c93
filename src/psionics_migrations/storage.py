"""
Storage layer for psionic world data.
Handles persistence of actors, items, compendium packs and world settings.

Layout of a world directory::

    settings.yaml         world-scoped settings, by module namespace
    actors/<id>.json      one actor, owned items embedded under "items"
    items/<id>.json       one world item
    packs/<name>.json     {"metadata": {...}, "documents": [...]}

Every document is materialized through its model on load, which is where the
power normalizer runs. A document that cannot be materialized is logged,
recorded in ``invalid_documents`` and skipped.
"""

import asyncio
import json
import logging
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .data import MODULE_ID
from .documents import ActorDocument, Document, ItemDocument
from .errors import CorruptDocumentError, DocumentLoadError
from .models import new_id
from .settings import YamlSettingsStore

logger = logging.getLogger("psionics-migrations")

DocumentT = TypeVar("DocumentT", bound=Document)


@dataclass
class InvalidDocument:
    """A stored record that failed to materialize."""
    location: str
    error: str


class PackMetadata(BaseModel):
    """Descriptor of a distributable archive."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    label: str = ""
    type: str = "Item"
    package_name: str = Field(default=MODULE_ID, alias="packageName")
    locked: bool = True


class Pack:
    """A compendium archive stored as a single JSON file.

    Documents are never cached: ``get_documents`` materializes a fresh
    snapshot. Use ``open_documents`` to scope a snapshot and release it when
    the work on it is done.
    """

    def __init__(self, storage: "WorldStorage", path: Path) -> None:
        self.storage = storage
        self.path = path
        raw = storage._read_json(path)
        if not isinstance(raw, dict):
            raise DocumentLoadError(f"Pack file {path} is not a JSON object")
        self.metadata = PackMetadata.model_validate(raw.get("metadata") or {"name": path.stem})
        self._snapshot: list[dict[str, Any]] | None = None

    def __repr__(self) -> str:
        return f"<Pack {self.collection}{' (locked)' if self.locked else ''}>"

    @property
    def collection(self) -> str:
        return f"{self.metadata.package_name}.{self.metadata.name}"

    @property
    def locked(self) -> bool:
        return self.metadata.locked

    def get_documents(self) -> list[Document]:
        """Materialize every document of the archive."""
        raw = self.storage._read_json(self.path)
        self._snapshot = raw.get("documents") or []
        document_class = ActorDocument if self.metadata.type == "Actor" else ItemDocument
        documents: list[Document] = []
        for index, source in enumerate(self._snapshot):
            document = self.storage.materialize(
                document_class, source, f"{self.path.name}[{index}]", pack=self
            )
            if document is not None:
                documents.append(document)
        return documents

    @contextmanager
    def open_documents(self) -> Iterator[list[Document]]:
        """Materialize a snapshot for the duration of the block, then discard it."""
        documents = self.get_documents()
        try:
            yield documents
        finally:
            documents.clear()
            self._snapshot = None

    def _write(self) -> None:
        if self._snapshot is None:
            raise DocumentLoadError(f"Pack {self.collection} has no open snapshot to save")
        self.storage._atomic_write(
            self.path,
            {
                "metadata": self.metadata.model_dump(by_alias=True),
                "documents": self._snapshot,
            },
        )


class WorldStorage:
    """Handles storage and retrieval of world documents."""

    def __init__(self, data_dir: str | Path = "psionics_data"):
        self.data_dir = Path(data_dir)
        logger.debug(f"📂 Initializing WorldStorage with data_dir: {self.data_dir.resolve()}")
        self.data_dir.mkdir(parents=True, exist_ok=True)

        for subdir in ("actors", "items", "packs"):
            (self.data_dir / subdir).mkdir(exist_ok=True)
        logger.debug("📂 Storage subdirectories ensured.")

        self.settings = YamlSettingsStore(self.data_dir / "settings.yaml")
        self._invalid: dict[str, InvalidDocument] = {}

    @property
    def invalid_documents(self) -> list[InvalidDocument]:
        """Records that failed to load, one entry per location (latest error wins)."""
        return list(self._invalid.values())

    @property
    def actors_dir(self) -> Path:
        return self.data_dir / "actors"

    @property
    def items_dir(self) -> Path:
        return self.data_dir / "items"

    @property
    def packs_dir(self) -> Path:
        return self.data_dir / "packs"

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DocumentLoadError(f"Failed to read {path}: {e}") from e

    def _atomic_write(self, file_path: Path, data: dict | list) -> None:
        """Write data to file atomically (write to temp, then rename)."""
        temp_file = file_path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_file.replace(file_path)
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    def _record_invalid(self, location: str, error: Exception) -> None:
        self._invalid[location] = InvalidDocument(location=location, error=str(error))

    def materialize(
        self,
        document_class: type[DocumentT],
        source: dict[str, Any],
        location: str,
        **kwargs: Any,
    ) -> DocumentT | None:
        """Build a document from stored data, recording it if it is corrupt."""
        try:
            if not isinstance(source, dict):
                raise CorruptDocumentError(f"Stored record is {type(source).__name__}, not an object")
            # Pin the identity in the stored data so every load and save agree on it
            source.setdefault("_id", new_id())
            document = document_class(source, self, **kwargs)
        except (ValidationError, CorruptDocumentError) as e:
            logger.error(f"❌ Invalid {document_class.document_name} at {location}: {e}")
            self._record_invalid(location, e)
            return None
        self._invalid.pop(location, None)
        return document

    def _load_dir(self, directory: Path, document_class: type[DocumentT]) -> list[DocumentT]:
        documents: list[DocumentT] = []
        for path in sorted(directory.glob("*.json")):
            try:
                source = self._read_json(path)
            except DocumentLoadError as e:
                logger.error(f"❌ {e}")
                self._record_invalid(str(path), e)
                continue
            document = self.materialize(document_class, source, str(path), path=path)
            if document is not None:
                documents.append(document)
        return documents

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def actors(self, type: str | None = None) -> list[ActorDocument]:
        """World actors, optionally filtered by type."""
        actors = self._load_dir(self.actors_dir, ActorDocument)
        return [a for a in actors if type is None or a.type == type]

    def items(self, type: str | None = None) -> list[ItemDocument]:
        """World items (not owned by any actor), optionally filtered by type."""
        items = self._load_dir(self.items_dir, ItemDocument)
        return [i for i in items if type is None or i.type == type]

    def packs(self) -> list[Pack]:
        packs: list[Pack] = []
        for path in sorted(self.packs_dir.glob("*.json")):
            try:
                packs.append(Pack(self, path))
            except (DocumentLoadError, ValidationError) as e:
                logger.error(f"❌ Invalid pack at {path}: {e}")
                self._record_invalid(str(path), e)
                continue
            self._invalid.pop(str(path), None)
        return packs

    def get_actor(self, actor_id: str) -> ActorDocument | None:
        path = self.actors_dir / f"{actor_id}.json"
        if not path.exists():
            return None
        return self.materialize(ActorDocument, self._read_json(path), str(path), path=path)

    def get_item(self, item_id: str) -> ItemDocument | None:
        path = self.items_dir / f"{item_id}.json"
        if not path.exists():
            return None
        return self.materialize(ItemDocument, self._read_json(path), str(path), path=path)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _prepare_source(self, data: dict[str, Any] | BaseModel) -> dict[str, Any]:
        if isinstance(data, BaseModel):
            source = data.model_dump(by_alias=True, exclude_none=True)
        else:
            source = deepcopy(data)
        source.setdefault("_id", new_id())
        return source

    def create_actor(self, data: dict[str, Any] | BaseModel) -> ActorDocument:
        """Store a new world actor exactly as given (no normalization is written)."""
        source = self._prepare_source(data)
        for item in source.get("items", []):
            if isinstance(item, dict):
                item.setdefault("_id", new_id())
        path = self.actors_dir / f"{source['_id']}.json"
        self._atomic_write(path, source)
        logger.debug(f"🧙 Created actor {source.get('name', '')!r} ({source['_id']})")
        return ActorDocument(source, self, path=path)

    def create_item(self, data: dict[str, Any] | BaseModel) -> ItemDocument:
        """Store a new world item exactly as given (no normalization is written)."""
        source = self._prepare_source(data)
        path = self.items_dir / f"{source['_id']}.json"
        self._atomic_write(path, source)
        logger.debug(f"🔮 Created item {source.get('name', '')!r} ({source['_id']})")
        return ItemDocument(source, self, path=path)

    def create_pack(
        self,
        name: str,
        documents: list[dict[str, Any]],
        *,
        type: str = "Item",
        package_name: str = MODULE_ID,
        locked: bool = True,
        label: str | None = None,
    ) -> Pack:
        metadata = PackMetadata(
            name=name, label=label or name, type=type, package_name=package_name, locked=locked
        )
        sources = [self._prepare_source(document) for document in documents]
        path = self.packs_dir / f"{name}.json"
        self._atomic_write(
            path, {"metadata": metadata.model_dump(by_alias=True), "documents": sources}
        )
        logger.debug(f"📦 Created pack {metadata.package_name}.{name} ({len(sources)} documents)")
        return Pack(self, path)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save_document(self, document: Document) -> None:
        """Persist a document to wherever it lives."""
        if document.pack is not None:
            await asyncio.to_thread(document.pack._write)
            return
        if document.parent is not None:
            await self.save_document(document.parent)
            return
        path = document.path
        if path is None:
            directory = self.actors_dir if isinstance(document, ActorDocument) else self.items_dir
            path = document.path = directory / f"{document.id}.json"
        await asyncio.to_thread(self._atomic_write, path, document.source)
