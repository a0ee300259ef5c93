"""
Psionics Migrations MCP Server
Exposes the migration runner, integrity audit and power normalizer as MCP tools.
"""

import json
import logging
from typing import Annotated

from fastmcp import FastMCP
from pydantic import Field, ValidationError

from .config import EngineConfig, load_config
from .errors import CorruptDocumentError
from .integrity import audit_world
from .migrations import MigrationRunner, build_default_registry, get_stored_schema_version
from .models import PowerModel
from .storage import WorldStorage

logger = logging.getLogger("psionics-migrations")

config: EngineConfig = load_config()

logging.basicConfig(
    level=config.log_level,
)

logger.debug(f"📂 Data path: {config.data_dir}")

_storage: WorldStorage | None = None


def get_storage() -> WorldStorage:
    """The world storage, created on first use."""
    global _storage
    if _storage is None:
        _storage = WorldStorage(data_dir=config.data_dir)
        logger.debug("✅ Storage layer initialized")
    return _storage


mcp = FastMCP(
    name="psionics-migrations"
)


@mcp.tool
async def run_migrations() -> str:
    """Run every pending schema migration against the world data.

    Only the process configured as leader migrates; others report a skip.
    """
    storage = get_storage()
    runner = MigrationRunner(
        registry=build_default_registry(storage),
        settings=storage.settings,
        current_version=config.module_version,
        is_leader=lambda: config.leader,
    )
    report = await runner.run()
    icon = "✅" if report.ok else "❌"
    return f"{icon} {report.summary()}"


@mcp.tool
def get_schema_version() -> str:
    """Show the stored schema version and the running module version."""
    storage = get_storage()
    stored = get_stored_schema_version(storage.settings)
    return f"📌 Stored schema version: {stored}\n📦 Module version: {config.module_version}"


@mcp.tool
def list_migrations() -> str:
    """List registered migrations and whether each is still pending."""
    storage = get_storage()
    registry = build_default_registry(storage)
    stored = get_stored_schema_version(storage.settings)
    pending = {m.version for m in registry.get_pending(stored, config.module_version)}

    lines = [f"**Migrations** (stored: {stored}, module: {config.module_version})"]
    for version in registry.get_ordered_versions():
        migration = registry.get(version)
        marker = "⏳ pending" if version in pending else "✔️ applied or out of range"
        lines.append(f"• {version}: {migration.description} ({marker})")
    return "\n".join(lines)


@mcp.tool
def audit_powers(
    only_problems: Annotated[bool, Field(description="List only powers with problems")] = True,
) -> str:
    """Check stored power items for legacy or half-migrated augment data."""
    storage = get_storage()
    audits = audit_world(storage)
    shown = [a for a in audits if not (only_problems and a.ok)]
    unloadable = (
        f"⚠️ {len(storage.invalid_documents)} document(s) could not be loaded."
        if storage.invalid_documents else ""
    )
    if not shown:
        summary = f"✅ {len(audits)} power(s) checked, no problems found."
        return f"{summary}\n{unloadable}" if unloadable else summary

    lines = [f"🔍 {len(audits)} power(s) checked, {sum(not a.ok for a in audits)} with problems:"]
    for audit in shown:
        findings = []
        if audit.legacy_augments:
            findings.append("power-level augments still stored")
        if audit.partial_relocation:
            findings.append("only some actions have augments")
        if audit.partial_deletion:
            findings.append("old augments field not removed")
        findings.extend(audit.augment_problems)
        lines.append(f"• {audit.name} ({audit.uuid}): {'; '.join(findings) or 'ok'}")
    if unloadable:
        lines.append(unloadable)
    return "\n".join(lines)


@mcp.tool
def normalize_power(
    system_json: Annotated[str, Field(description="JSON object with the 'system' data of a power item")],
) -> str:
    """Apply the load-time power normalizer to stored system data and return the result."""
    try:
        source = json.loads(system_json)
    except json.JSONDecodeError as e:
        return f"❌ Invalid JSON: {e}"
    try:
        normalized = PowerModel.migrate_data(source)
        PowerModel.model_validate(json.loads(json.dumps(normalized)))
    except CorruptDocumentError as e:
        return f"❌ Corrupt power data: {e}"
    except ValidationError as e:
        return f"❌ Normalized data is still invalid: {e}"
    return json.dumps(normalized, indent=2, ensure_ascii=False)


def main() -> None:
    """Main entry point for the Psionics Migrations MCP Server."""
    mcp.run()


if __name__ == "__main__":
    main()
