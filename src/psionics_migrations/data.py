"""
Static module data: identifiers and the default flag payloads written by migrations.
"""

from copy import deepcopy
from typing import Any

MODULE_ID = "pf1-psionics"
POWER_TYPE = f"{MODULE_ID}.power"
SCHEMA_VERSION_KEY = "schemaVersion"
DEFAULT_SCHEMA_VERSION = "0.0.0"

# Actor types that carry skills and psionic flags
ACTOR_TYPES = ("character", "npc")

MANIFESTER: dict[str, Any] = {
    "name": "",
    "inUse": False,
    "showConfig": False,
    "casterType": "high",
    "class": "",
    "cl": {
        "formula": "",
        "notes": "",
    },
    "concentration": {
        "formula": "",
        "notes": "",
    },
    "ability": "int",
    "autoLevelPowerPoints": True,
    "autoAttributePowerPoints": True,
    "autoMaxPowerLevel": True,
    "hasCantrips": True,
    "spellPreparationMode": "spontaneous",
    "baseDCFormula": "10 + @sl + @ablMod",
    "powerPoints": {
        "max": 0,
        "formula": "",
    },
}

PSIONIC_SKILLS: dict[str, dict[str, Any]] = {
    # Knowledge (Psionics)
    "kps": {"ability": "int", "rank": 0, "rt": True, "acp": False, "background": True},
    # Autohypnosis
    "ahp": {"ability": "wis", "rank": 0, "rt": True, "acp": False, "background": True},
}


def default_manifesters() -> dict[str, dict[str, Any]]:
    """Build a fresh manifester table, one independent copy per slot."""
    spelllike = deepcopy(MANIFESTER)
    spelllike.update({"class": "_hd", "ability": "cha"})
    return {
        "primary": deepcopy(MANIFESTER),
        "secondary": deepcopy(MANIFESTER),
        "tertiary": deepcopy(MANIFESTER),
        "spelllike": spelllike,
    }


def default_power_points() -> dict[str, int]:
    return {"current": 0, "temporary": 0, "maximum": 0}


def default_focus() -> dict[str, int]:
    return {"current": 0, "maximum": 0}
