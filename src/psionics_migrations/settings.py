"""
World-scoped settings stores.

Settings are namespaced by module id, then keyed by setting name. The
migration runner only ever reads and writes its schema version marker through
this interface, so tests can swap in the in-memory store.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol

import yaml

logger = logging.getLogger("psionics-migrations.settings")


class SettingsStore(Protocol):
    """Read/write access to world-scoped settings."""

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        ...

    async def set(self, namespace: str, key: str, value: Any) -> None:
        ...


class MemorySettingsStore:
    """Settings held in a dict. Nothing survives the process."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        self._values: dict[str, dict[str, Any]] = {
            namespace: dict(values) for namespace, values in (initial or {}).items()
        }
        self.writes: list[tuple[str, str, Any]] = []

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        return self._values.get(namespace, {}).get(key, default)

    async def set(self, namespace: str, key: str, value: Any) -> None:
        self._values.setdefault(namespace, {})[key] = value
        self.writes.append((namespace, key, value))


class YamlSettingsStore:
    """Settings persisted to a single YAML file.

    The file is re-read on every access so that a value written by another
    tool between two reads is never shadowed by a stale cache.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        if not isinstance(data, dict):
            logger.warning(f"⚠️ Invalid settings file {self.path}, ignoring its contents")
            return {}
        return data

    def _write(self, data: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as fh:
                yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=True)
            temp_file.replace(self.path)
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        values = self._load().get(namespace)
        if not isinstance(values, dict):
            return default
        return values.get(key, default)

    async def set(self, namespace: str, key: str, value: Any) -> None:
        data = self._load()
        values = data.get(namespace)
        if not isinstance(values, dict):
            values = data[namespace] = {}
        values[key] = value
        await asyncio.to_thread(self._write, data)
        logger.debug(f"💾 Setting {namespace}.{key} saved to {self.path}")
