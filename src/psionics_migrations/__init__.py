"""
Psionics Migrations - versioned document migrations for psionic actors and items.
"""

from .config import installed_version
from .errors import CorruptDocumentError, MigrationError, ReadOnlyDocumentError
from .models import Actor, Item, PowerModel
from .storage import WorldStorage
from .migrations import MigrationRegistry, MigrationRunner, run_migrations

__version__ = installed_version()
__all__ = [
    "Actor",
    "Item",
    "PowerModel",
    "CorruptDocumentError",
    "MigrationError",
    "ReadOnlyDocumentError",
    "WorldStorage",
    "MigrationRegistry",
    "MigrationRunner",
    "run_migrations",
]
