"""
Migration runner.

Compares the stored schema version to the running module version and runs
every registered migration in between, oldest first. The stored marker is
advanced after each migration that completes, and the run stops at the first
migration that raises: later migrations may depend on what the failed one
should have established, so they are left for the next start.

Only the active GM runs migrations; every other connected client skips.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

from ..data import DEFAULT_SCHEMA_VERSION, MODULE_ID, SCHEMA_VERSION_KEY
from ..settings import SettingsStore
from .registry import Migration, MigrationRegistry, is_newer_version

logger = logging.getLogger("psionics-migrations.runner")


class RunnerState(str, Enum):
    """Where the runner is in one invocation."""
    IDLE = "idle"
    CHECKING_MARKER = "checking_marker"
    RUNNING = "running"
    ADVANCING = "advancing"
    DONE = "done"
    HALTED = "halted"


class RunStatus(str, Enum):
    """How one invocation ended."""
    SKIPPED = "skipped"        # Not the active GM
    UP_TO_DATE = "up_to_date"  # Stored version is current
    ADVANCED = "advanced"      # Newer version, but no migrations in between
    COMPLETED = "completed"    # All pending migrations applied
    HALTED = "halted"          # A migration failed; later ones were not attempted


@dataclass
class VersionOutcome:
    """Result of one migration version: ok, or fatal for the rest of the run."""
    version: str
    error: Exception | None = None

    @classmethod
    def ok(cls, version: str) -> "VersionOutcome":
        return cls(version=version)

    @classmethod
    def fatal(cls, version: str, error: Exception) -> "VersionOutcome":
        return cls(version=version, error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None


@dataclass
class MigrationReport:
    """Summary of one runner invocation."""
    status: RunStatus
    stored_version: str = DEFAULT_SCHEMA_VERSION
    target_version: str = DEFAULT_SCHEMA_VERSION
    final_version: str = DEFAULT_SCHEMA_VERSION
    applied: list[str] = field(default_factory=list)
    failed: VersionOutcome | None = None

    @property
    def ok(self) -> bool:
        """True when no migration failed."""
        return self.failed is None

    @property
    def migrations_run(self) -> int:
        return len(self.applied) + (1 if self.failed else 0)

    @property
    def failures(self) -> int:
        return 0 if self.failed is None else 1

    def summary(self) -> str:
        if self.status == RunStatus.SKIPPED:
            return "Skipped migrations (not the active GM)"
        if self.status == RunStatus.UP_TO_DATE:
            return f"No migrations needed (schema version {self.final_version})"
        if self.status == RunStatus.ADVANCED:
            return (
                f"No migrations found between {self.stored_version} and {self.target_version}; "
                f"schema version set to {self.final_version}"
            )
        text = (
            f"Ran {self.migrations_run} migration(s), {self.failures} failed; "
            f"schema version {self.stored_version} -> {self.final_version}"
        )
        if self.failed is not None:
            text += f" (migration to {self.failed.version} failed: {self.failed.error})"
        return text


class Notifier(Protocol):
    """User-facing notifications."""

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes to the module logger."""

    def info(self, message: str) -> None:
        logger.info(f"{MODULE_ID} | {message}")

    def warn(self, message: str) -> None:
        logger.warning(f"{MODULE_ID} | {message}")

    def error(self, message: str) -> None:
        logger.error(f"{MODULE_ID} | {message}")


def get_stored_schema_version(settings: SettingsStore) -> str:
    """The last successfully applied migration version, or "0.0.0" if none."""
    return settings.get(MODULE_ID, SCHEMA_VERSION_KEY) or DEFAULT_SCHEMA_VERSION


async def set_stored_schema_version(settings: SettingsStore, version: str) -> None:
    await settings.set(MODULE_ID, SCHEMA_VERSION_KEY, version)
    logger.info(f"Schema version updated to {version}")


def _always_leader() -> bool:
    return True


class MigrationRunner:
    """Runs pending migrations against a stored schema version marker.

    Args:
        registry: The migrations to choose from.
        settings: Store holding the schema version marker.
        current_version: Version of the running module; the upper bound.
        is_leader: Whether this process is the one that should migrate.
        notifier: Receives the user-facing progress and summary messages.
    """

    def __init__(
        self,
        registry: MigrationRegistry,
        settings: SettingsStore,
        current_version: str,
        is_leader: Callable[[], bool] = _always_leader,
        notifier: Notifier | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings
        self.current_version = current_version
        self.is_leader = is_leader
        self.notifier = notifier or LoggingNotifier()
        self.state = RunnerState.IDLE
        self.current_index: int | None = None

    async def _run_one(self, migration: Migration) -> VersionOutcome:
        logger.info(f"Running migration to {migration.version}...")
        try:
            await migration.migrate()
        except Exception as e:
            logger.exception(f"Migration to {migration.version} failed: {e}")
            return VersionOutcome.fatal(migration.version, e)
        logger.info(f"Migration to {migration.version} completed successfully")
        return VersionOutcome.ok(migration.version)

    async def run(self) -> MigrationReport:
        """Run every pending migration, stopping at the first failure."""
        self.current_index = None
        if not self.is_leader():
            logger.info("Skipping migrations (not active GM)")
            self.state = RunnerState.DONE
            return MigrationReport(status=RunStatus.SKIPPED)

        self.state = RunnerState.CHECKING_MARKER
        stored_version = get_stored_schema_version(self.settings)
        target_version = self.current_version
        logger.info(f"Checking migrations: stored={stored_version}, current={target_version}")

        report = MigrationReport(
            status=RunStatus.UP_TO_DATE,
            stored_version=stored_version,
            target_version=target_version,
            final_version=stored_version,
        )

        if not is_newer_version(target_version, stored_version):
            logger.info("No migrations needed")
            self.state = RunnerState.DONE
            return report

        migrations = self.registry.get_pending(stored_version, target_version)

        if not migrations:
            logger.info(f"No migrations found between {stored_version} and {target_version}")
            # Record the version anyway so the gap is not re-checked on every start
            self.state = RunnerState.ADVANCING
            await set_stored_schema_version(self.settings, target_version)
            report.status = RunStatus.ADVANCED
            report.final_version = target_version
            self.state = RunnerState.DONE
            return report

        self.notifier.info(f"Running {len(migrations)} migration(s)...")
        logger.info(
            f"Running {len(migrations)} migration(s) from {stored_version} to {target_version}"
        )

        for index, migration in enumerate(migrations):
            self.state = RunnerState.RUNNING
            self.current_index = index
            outcome = await self._run_one(migration)

            if not outcome.is_ok:
                self.notifier.error(
                    f"Migration to {migration.version} failed. Check the log for details."
                )
                report.failed = outcome
                break

            self.state = RunnerState.ADVANCING
            await set_stored_schema_version(self.settings, migration.version)
            report.applied.append(migration.version)
            report.final_version = migration.version

        if report.failed is None:
            report.status = RunStatus.COMPLETED
            self.state = RunnerState.DONE
            self.notifier.info(f"Migrations complete! {report.summary()}")
            logger.info("All migrations completed successfully")
        else:
            report.status = RunStatus.HALTED
            self.state = RunnerState.HALTED
            self.notifier.warn(f"Some migrations failed. {report.summary()}")
            logger.warning(f"{report.failures} migration(s) failed")
        return report


async def run_migrations(
    registry: MigrationRegistry,
    settings: SettingsStore,
    current_version: str,
    is_leader: Callable[[], bool] = _always_leader,
    notifier: Notifier | None = None,
) -> bool:
    """Run pending migrations once.

    Returns:
        True if no migration failed (including when nothing needed running).
    """
    runner = MigrationRunner(registry, settings, current_version, is_leader, notifier)
    report = await runner.run()
    return report.ok
