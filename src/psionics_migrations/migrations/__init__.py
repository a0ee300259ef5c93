"""
Versioned migrations of stored actors and items.
"""

from .helpers import (
    EntityOutcome,
    MigrationStats,
    add_flag_if_missing,
    add_skill_if_missing,
    is_valid_actor,
    migrate_all_actors,
    migrate_all_items,
)
from .registry import (
    InvalidVersionError,
    Migration,
    MigrationRegistry,
    build_default_registry,
    is_newer_version,
    version_tuple,
)
from .runner import (
    LoggingNotifier,
    MigrationReport,
    MigrationRunner,
    RunnerState,
    RunStatus,
    VersionOutcome,
    get_stored_schema_version,
    run_migrations,
    set_stored_schema_version,
)

__all__ = [
    "EntityOutcome",
    "MigrationStats",
    "add_flag_if_missing",
    "add_skill_if_missing",
    "is_valid_actor",
    "migrate_all_actors",
    "migrate_all_items",
    "InvalidVersionError",
    "Migration",
    "MigrationRegistry",
    "build_default_registry",
    "is_newer_version",
    "version_tuple",
    "LoggingNotifier",
    "MigrationReport",
    "MigrationRunner",
    "RunnerState",
    "RunStatus",
    "VersionOutcome",
    "get_stored_schema_version",
    "run_migrations",
    "set_stored_schema_version",
]
