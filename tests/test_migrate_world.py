"""
Tests for the world migration script.
"""

import argparse
import json
import sys
from pathlib import Path

import pytest

# Import the migration script
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))
from migrate_world import backup_world, run  # noqa: E402

from psionics_migrations.storage import WorldStorage

from factories import augment, make_power

# Configure pytest to use anyio with asyncio backend for async tests
pytestmark = pytest.mark.anyio


def make_args(data_dir: Path, **overrides) -> argparse.Namespace:
    values = {"data_dir": data_dir, "version": "0.6.1", "backup": False, "audit": False}
    values.update(overrides)
    return argparse.Namespace(**values)


class TestMigrateWorld:
    """Test suite for the migrate_world script."""

    def test_backup_world(self, tmp_path):
        world = WorldStorage(tmp_path / "world")
        item = world.create_item(make_power())

        backup_dir = backup_world(world.data_dir)

        assert backup_dir.parent == tmp_path
        assert backup_dir.name.startswith("world.bak-")
        assert (backup_dir / "items" / f"{item.id}.json").exists()

    async def test_run_migrates_and_audits(self, tmp_path, capsys):
        world = WorldStorage(tmp_path / "world")
        item = world.create_item(make_power(augments=[augment("a1")], actions=[{"_id": "act1"}]))

        exit_code = await run(make_args(world.data_dir, backup=True, audit=True))

        assert exit_code == 0
        output = capsys.readouterr().out
        assert "Backup written to" in output
        assert "Audit: 1 power(s), 0 with problems" in output
        with open(world.items_dir / f"{item.id}.json", encoding="utf-8") as f:
            assert "augments" not in json.load(f)["system"]

    async def test_missing_data_dir(self, tmp_path):
        assert await run(make_args(tmp_path / "missing")) == 1
