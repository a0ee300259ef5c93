"""
Tests for the migration runner.

Tests cover:
- Halt on the first failing migration, marker left at the last good version
- Marker advanced after every successful migration
- Leader check, up-to-date and empty-gap runs
- Notifications and the run report
- Runner state transitions
"""

from __future__ import annotations

import pytest

from psionics_migrations.data import MODULE_ID, SCHEMA_VERSION_KEY
from psionics_migrations.migrations import (
    MigrationRegistry,
    MigrationRunner,
    RunnerState,
    RunStatus,
    get_stored_schema_version,
    run_migrations,
)
from psionics_migrations.settings import MemorySettingsStore

# Configure pytest to use anyio with asyncio backend for async tests
pytestmark = pytest.mark.anyio


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class RecordingMigration:
    """Migration callable that records its calls and can be told to fail."""

    def __init__(self, version: str, calls: list[str], fail: bool = False) -> None:
        self.version = version
        self.calls = calls
        self.fail = fail

    async def __call__(self) -> None:
        self.calls.append(self.version)
        if self.fail:
            raise RuntimeError(f"boom in {self.version}")


class MockNotifier:
    """Notifier that keeps every message."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warn(self, message: str) -> None:
        self.messages.append(("warn", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))


def build_registry(calls: list[str], failing: set[str] = frozenset(), versions=("0.1.0", "0.2.0", "0.3.0")):
    registry = MigrationRegistry()
    for version in versions:
        registry.register(version, RecordingMigration(version, calls, version in failing))
    return registry


def settings_at(version: str | None = None) -> MemorySettingsStore:
    if version is None:
        return MemorySettingsStore()
    return MemorySettingsStore({MODULE_ID: {SCHEMA_VERSION_KEY: version}})


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestMigrationRunner:
    """Test suite for MigrationRunner.run."""

    async def test_halts_on_first_failure(self):
        calls: list[str] = []
        settings = settings_at()
        runner = MigrationRunner(build_registry(calls, {"0.2.0"}), settings, "0.3.0")

        report = await runner.run()

        assert calls == ["0.1.0", "0.2.0"]
        assert get_stored_schema_version(settings) == "0.1.0"
        assert report.status == RunStatus.HALTED
        assert not report.ok
        assert report.applied == ["0.1.0"]
        assert report.failed.version == "0.2.0"
        assert isinstance(report.failed.error, RuntimeError)
        assert runner.state == RunnerState.HALTED

    async def test_failed_migration_retried_next_run(self):
        calls: list[str] = []
        settings = settings_at()
        registry = build_registry(calls, {"0.2.0"})
        await MigrationRunner(registry, settings, "0.3.0").run()

        registry.get("0.2.0").migrate.fail = False
        calls.clear()
        report = await MigrationRunner(registry, settings, "0.3.0").run()

        assert calls == ["0.2.0", "0.3.0"]
        assert report.status == RunStatus.COMPLETED
        assert get_stored_schema_version(settings) == "0.3.0"

    async def test_all_migrations_run_in_order(self):
        calls: list[str] = []
        settings = settings_at()
        runner = MigrationRunner(build_registry(calls), settings, "0.3.0")

        report = await runner.run()

        assert calls == ["0.1.0", "0.2.0", "0.3.0"]
        assert report.ok
        assert report.status == RunStatus.COMPLETED
        assert report.final_version == "0.3.0"
        assert runner.state == RunnerState.DONE

    async def test_marker_advanced_after_each_migration(self):
        calls: list[str] = []
        settings = settings_at()
        await MigrationRunner(build_registry(calls), settings, "0.3.0").run()

        marker_writes = [value for _, key, value in settings.writes if key == SCHEMA_VERSION_KEY]
        assert marker_writes == ["0.1.0", "0.2.0", "0.3.0"]

    async def test_only_pending_migrations_run(self):
        calls: list[str] = []
        settings = settings_at("0.1.0")
        report = await MigrationRunner(build_registry(calls), settings, "0.2.0").run()

        assert calls == ["0.2.0"]
        assert report.stored_version == "0.1.0"
        assert report.final_version == "0.2.0"

    async def test_marker_is_last_applied_version(self):
        """A target past the last registered migration leaves the marker at that migration."""
        calls: list[str] = []
        settings = settings_at()
        await MigrationRunner(build_registry(calls), settings, "0.4.0").run()
        assert get_stored_schema_version(settings) == "0.3.0"

    async def test_non_leader_skips(self):
        calls: list[str] = []
        settings = settings_at()
        runner = MigrationRunner(
            build_registry(calls), settings, "0.3.0", is_leader=lambda: False
        )

        report = await runner.run()

        assert report.status == RunStatus.SKIPPED
        assert report.ok
        assert calls == []
        assert settings.writes == []

    async def test_up_to_date(self):
        calls: list[str] = []
        settings = settings_at("0.3.0")
        report = await MigrationRunner(build_registry(calls), settings, "0.3.0").run()

        assert report.status == RunStatus.UP_TO_DATE
        assert calls == []
        assert settings.writes == []

    async def test_stored_newer_than_target(self):
        calls: list[str] = []
        settings = settings_at("0.9.0")
        report = await MigrationRunner(build_registry(calls), settings, "0.3.0").run()

        assert report.status == RunStatus.UP_TO_DATE
        assert get_stored_schema_version(settings) == "0.9.0"

    async def test_gap_without_migrations_advances_marker(self):
        calls: list[str] = []
        settings = settings_at("0.3.0")
        runner = MigrationRunner(build_registry(calls), settings, "0.5.2")

        report = await runner.run()

        assert report.status == RunStatus.ADVANCED
        assert report.ok
        assert calls == []
        assert get_stored_schema_version(settings) == "0.5.2"
        assert runner.state == RunnerState.DONE

    async def test_notifications(self):
        calls: list[str] = []
        notifier = MockNotifier()
        runner = MigrationRunner(
            build_registry(calls, {"0.2.0"}), settings_at(), "0.3.0", notifier=notifier
        )

        await runner.run()

        levels = [level for level, _ in notifier.messages]
        assert levels == ["info", "error", "warn"]
        assert "Running 3 migration(s)" in notifier.messages[0][1]
        assert "0.2.0" in notifier.messages[1][1]
        assert "Ran 2 migration(s), 1 failed" in notifier.messages[2][1]

    async def test_success_notification(self):
        calls: list[str] = []
        notifier = MockNotifier()
        await MigrationRunner(build_registry(calls), settings_at(), "0.3.0", notifier=notifier).run()

        assert notifier.messages[-1][0] == "info"
        assert "Ran 3 migration(s), 0 failed" in notifier.messages[-1][1]

    async def test_state_during_migration(self):
        seen: list[tuple[RunnerState, int | None]] = []
        registry = MigrationRegistry()
        runner = MigrationRunner(registry, settings_at(), "0.2.0")

        async def observe() -> None:
            seen.append((runner.state, runner.current_index))

        registry.register("0.1.0", observe)
        registry.register("0.2.0", observe)
        assert runner.state == RunnerState.IDLE

        await runner.run()

        assert seen == [(RunnerState.RUNNING, 0), (RunnerState.RUNNING, 1)]


class TestRunMigrations:
    """Test suite for the run_migrations entry point."""

    async def test_returns_true_on_success(self):
        calls: list[str] = []
        assert await run_migrations(build_registry(calls), settings_at(), "0.3.0") is True

    async def test_returns_false_on_failure(self):
        calls: list[str] = []
        assert await run_migrations(build_registry(calls, {"0.1.0"}), settings_at(), "0.3.0") is False
        assert calls == ["0.1.0"]

    async def test_returns_true_when_skipped(self):
        calls: list[str] = []
        result = await run_migrations(
            build_registry(calls), settings_at(), "0.3.0", is_leader=lambda: False
        )
        assert result is True


class TestMigrationReport:
    """Test suite for report summaries."""

    async def test_summary_texts(self):
        calls: list[str] = []
        skipped = await MigrationRunner(
            build_registry(calls), settings_at(), "0.3.0", is_leader=lambda: False
        ).run()
        current = await MigrationRunner(build_registry(calls), settings_at("0.3.0"), "0.3.0").run()
        halted = await MigrationRunner(build_registry(calls, {"0.1.0"}), settings_at(), "0.3.0").run()

        assert "not the active GM" in skipped.summary()
        assert "No migrations needed" in current.summary()
        assert "migration to 0.1.0 failed: boom in 0.1.0" in halted.summary()
        assert halted.migrations_run == 1
        assert halted.failures == 1
