"""Entity-reference detection and metadata enrichment."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any

from dashboard_agent.errors import MetadataResolutionError, NoBackendAvailable
from dashboard_agent.hosts.base import EntityDirectory, ToolHost
from dashboard_agent.types import EntityMetadata

logger = logging.getLogger(__name__)

# adapter.instance.path, e.g. modbus.2.holdingRegisters.temp
_REFERENCE_PATTERN = re.compile(r"\b[a-zA-Z0-9_-]+\.\d+\.[a-zA-Z0-9_.-]+")


class LookupCapability(Enum):
    """Which metadata sources are reachable right now."""

    ENHANCED_ONLY = "enhanced-only"
    DIRECT_ONLY = "direct-only"
    BOTH = "both"
    NEITHER = "neither"

    @classmethod
    def from_flags(cls, *, enhanced: bool, direct: bool) -> "LookupCapability":
        if enhanced and direct:
            return cls.BOTH
        if enhanced:
            return cls.ENHANCED_ONLY
        if direct:
            return cls.DIRECT_ONLY
        return cls.NEITHER

    @property
    def enhanced(self) -> bool:
        return self in (LookupCapability.ENHANCED_ONLY, LookupCapability.BOTH)

    @property
    def direct(self) -> bool:
        return self in (LookupCapability.DIRECT_ONLY, LookupCapability.BOTH)


def extract_references(text: str) -> list[str]:
    """Return entity references in occurrence order, duplicates included."""
    return [match.rstrip(".") for match in _REFERENCE_PATTERN.findall(text)]


def normalize_object(state_id: str, raw: dict[str, Any] | None, *, source: str) -> EntityMetadata:
    """Build an `EntityMetadata` record from a raw ioBroker object."""
    if not raw:
        return EntityMetadata(state_id=state_id, exists=False, source=source)
    common = raw.get("common") or {}
    return EntityMetadata(
        state_id=state_id,
        exists=True,
        source=source,
        type=common.get("type"),
        role=common.get("role"),
        unit=common.get("unit"),
        min=common.get("min"),
        max=common.get("max"),
        write=common.get("write"),
        name=common.get("name"),
        desc=common.get("desc"),
    )


def render_metadata_block(records: list[EntityMetadata]) -> str:
    """Render the block appended to the user's input before it is sent.

    Records with no `source` were never looked up and are left out.
    """
    looked_up = [meta for meta in records if meta.source is not None]
    if not looked_up:
        return ""

    lines = ["", "", "State metadata found:"]
    for meta in looked_up:
        if not meta.exists:
            lines.append(f"- {meta.state_id}: NOT FOUND")
            continue
        parts = [f"type={meta.type or 'unknown'}", f"role={meta.role or 'unknown'}"]
        if meta.unit:
            parts.append(f"unit={meta.unit}")
        if meta.min is not None:
            parts.append(f"min={meta.min}")
        if meta.max is not None:
            parts.append(f"max={meta.max}")
        if meta.write is not None:
            parts.append(f"writable={str(meta.write).lower()}")
        lines.append(f"- {meta.state_id}: {', '.join(parts)}")
    return "\n".join(lines) + "\n"


class MetadataEnricher:
    """Resolves entity references via the tool host, then the entity directory."""

    def __init__(
        self,
        *,
        tool_host: ToolHost | None = None,
        directory: EntityDirectory | None = None,
    ) -> None:
        self.tool_host = tool_host
        self.directory = directory

    def has_tool_host(self) -> bool:
        return (
            self.tool_host is not None
            and self.tool_host.is_connected()
            and self.tool_host.supports_metadata()
        )

    def has_entity_directory(self) -> bool:
        return self.directory is not None and self.directory.is_connected()

    def capability(self) -> LookupCapability:
        return LookupCapability.from_flags(
            enhanced=self.has_tool_host(),
            direct=self.has_entity_directory(),
        )

    async def resolve(self, state_id: str) -> EntityMetadata:
        capability = self.capability()
        if capability is LookupCapability.NEITHER:
            raise NoBackendAvailable(state_id)

        enhanced_error = "No metadata available"
        if capability.enhanced:
            assert self.tool_host is not None
            try:
                meta = await self.tool_host.resolve_metadata(state_id)
            except Exception as exc:
                logger.warning("Enhanced metadata lookup failed for %s: %s", state_id, exc)
                enhanced_error = str(exc)
                meta = None
            if meta is not None and meta.exists:
                meta.source = "enhanced"
                return meta

        if capability.direct:
            assert self.directory is not None
            try:
                raw = await self.directory.get_object(state_id)
            except Exception as exc:
                logger.warning("Direct metadata lookup failed for %s: %s", state_id, exc)
                return EntityMetadata(state_id=state_id, exists=False, source="direct", error=str(exc))
            return normalize_object(state_id, raw, source="direct")

        return EntityMetadata(state_id=state_id, exists=False, source="enhanced", error=enhanced_error)

    async def enrich(self, text: str) -> list[EntityMetadata]:
        """Resolve every reference in `text`, one at a time, in input order."""
        records: list[EntityMetadata] = []
        for state_id in extract_references(text):
            try:
                records.append(await self.resolve(state_id))
            except MetadataResolutionError as exc:
                logger.info("No metadata for %s: %s", state_id, exc)
                records.append(EntityMetadata(state_id=state_id, exists=False, error=str(exc)))
        return records
