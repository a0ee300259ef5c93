"""
Pytest configuration and fixtures for psionics-migrations tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing psionics_migrations
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from psionics_migrations.storage import WorldStorage  # noqa: E402


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def storage(tmp_path: Path) -> WorldStorage:
    """An empty world in a temporary directory."""
    return WorldStorage(data_dir=tmp_path / "world")
