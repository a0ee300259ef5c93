"""
Registry of versioned migrations.

Each migration is an async callable with no arguments, keyed by the semantic
version that introduces the data shape it produces. Versions are ordered by
numeric comparison of their components, never lexically ("0.10.0" is newer
than "0.9.0").

When adding a new migration:
1. Create a new module: ``vX_Y_Z.py``
2. Export ``async def migrate_to_X_Y_Z(storage)``
3. Register it in ``build_default_registry``
"""

import logging
import re
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Mapping

from ..errors import InvalidVersionError

logger = logging.getLogger("psionics-migrations.registry")

MigrationFn = Callable[[], Awaitable[None]]

_VERSION_PART = re.compile(r"^(\d+)")


def version_tuple(version: str) -> tuple[int, ...]:
    """Convert a version string to a tuple for comparison.

    A leading ``v`` is ignored and pre-release or build suffixes on a component
    are dropped (``"1.2.0-beta"`` -> ``(1, 2, 0)``).
    """
    text = str(version).strip().lstrip("vV")
    parts: list[int] = []
    for part in text.split("."):
        match = _VERSION_PART.match(part)
        if match is None:
            break
        parts.append(int(match.group(1)))
    if not parts:
        raise InvalidVersionError(f"Invalid version string: {version!r}")
    # Trailing zeros do not matter: 0.5 == 0.5.0
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def is_newer_version(version: str, than: str) -> bool:
    """Whether ``version`` is strictly newer than ``than``."""
    return version_tuple(version) > version_tuple(than)


@dataclass(frozen=True)
class Migration:
    """A single registered migration."""
    version: str
    migrate: MigrationFn
    description: str = ""


class MigrationRegistry:
    """Version-keyed collection of migrations."""

    def __init__(self, migrations: Mapping[str, MigrationFn] | None = None) -> None:
        self._migrations: dict[str, Migration] = {}
        for version, migrate in (migrations or {}).items():
            self.register(version, migrate)

    def __len__(self) -> int:
        return len(self._migrations)

    def __contains__(self, version: object) -> bool:
        return version in self._migrations

    def register(self, version: str, migrate: MigrationFn, description: str = "") -> Migration:
        """Register a migration for a version.

        Raises:
            InvalidVersionError: If the version string cannot be parsed.
            ValueError: If a migration with an equal version is already registered.
        """
        key = version_tuple(version)
        for existing in self._migrations.values():
            if version_tuple(existing.version) == key:
                raise ValueError(
                    f"Migration for version {version} already registered (as {existing.version})"
                )
        migration = Migration(version=version, migrate=migrate, description=description)
        self._migrations[version] = migration
        return migration

    def get(self, version: str) -> Migration | None:
        return self._migrations.get(version)

    def get_ordered_versions(self) -> list[str]:
        """All registered versions, oldest first."""
        return sorted(self._migrations, key=version_tuple)

    def get_pending(self, from_version: str, to_version: str) -> list[Migration]:
        """Migrations newer than ``from_version`` up to and including ``to_version``."""
        pending: list[Migration] = []
        for version in self.get_ordered_versions():
            if not is_newer_version(version, from_version):
                continue
            if is_newer_version(version, to_version):
                break
            pending.append(self._migrations[version])
        return pending


def build_default_registry(storage) -> MigrationRegistry:
    """The module's migrations, bound to one world."""
    from .v0_3_1 import migrate_to_0_3_1
    from .v0_5_0 import migrate_to_0_5_0
    from .v0_6_1 import migrate_to_0_6_1

    registry = MigrationRegistry()
    registry.register(
        "0.3.1", partial(migrate_to_0_3_1, storage), "Add psionic skills and flags to actors"
    )
    registry.register(
        "0.5.0", partial(migrate_to_0_5_0, storage), "Rename manifestor(s) to manifester(s)"
    )
    registry.register(
        "0.6.1", partial(migrate_to_0_6_1, storage), "Move power augments onto actions"
    )
    return registry
