import asyncio
from typing import Any

import pytest

from dashboard_agent.agent.metadata import (
    LookupCapability,
    MetadataEnricher,
    extract_references,
    render_metadata_block,
)
from dashboard_agent.errors import NoBackendAvailable
from dashboard_agent.hosts.directory import InMemoryEntityDirectory
from dashboard_agent.types import EntityMetadata

TEMP_ID = "modbus.2.holdingRegisters.temp"
TEMP_OBJECT = {
    "common": {"type": "number", "role": "value.temperature", "unit": "°C", "min": -40, "max": 60, "write": False}
}


class _FakeToolHost:
    def __init__(
        self,
        answers: dict[str, EntityMetadata | Exception | None],
        *,
        connected: bool = True,
        metadata: bool = True,
    ) -> None:
        self.answers = answers
        self.connected = connected
        self.metadata = metadata
        self.lookups: list[str] = []

    def is_connected(self) -> bool:
        return self.connected

    def list_tools(self) -> list[Any]:
        return []

    def list_resources(self) -> list[Any]:
        return []

    def supports_metadata(self) -> bool:
        return self.metadata

    async def call_tool(self, name: str, payload: dict[str, Any]) -> Any:
        raise AssertionError("not used")

    async def resolve_metadata(self, state_id: str) -> EntityMetadata | None:
        self.lookups.append(state_id)
        answer = self.answers.get(state_id)
        if isinstance(answer, Exception):
            raise answer
        return answer


class _CountingDirectory(InMemoryEntityDirectory):
    def __init__(self, objects: dict[str, dict[str, Any]]) -> None:
        super().__init__(objects)
        self.lookups: list[str] = []

    async def get_object(self, state_id: str) -> dict[str, Any] | None:
        self.lookups.append(state_id)
        return await super().get_object(state_id)


def test_extracts_single_reference() -> None:
    refs = extract_references(f"Please add {TEMP_ID} to Temperatures.")
    assert refs == [TEMP_ID]


def test_duplicates_are_kept_in_order() -> None:
    text = "compare ping.0.host.alive with mqtt.1.power and ping.0.host.alive"
    assert extract_references(text) == ["ping.0.host.alive", "mqtt.1.power", "ping.0.host.alive"]


def test_capability_reflects_reachable_sources() -> None:
    host = _FakeToolHost({})
    directory = InMemoryEntityDirectory()

    assert MetadataEnricher(tool_host=host, directory=directory).capability() is LookupCapability.BOTH
    assert MetadataEnricher(tool_host=host).capability() is LookupCapability.ENHANCED_ONLY
    assert MetadataEnricher(directory=directory).capability() is LookupCapability.DIRECT_ONLY
    assert (
        MetadataEnricher(tool_host=_FakeToolHost({}, connected=False)).capability()
        is LookupCapability.NEITHER
    )


def test_enhanced_hit_skips_directory() -> None:
    host = _FakeToolHost({TEMP_ID: EntityMetadata(state_id=TEMP_ID, exists=True, type="number")})
    directory = _CountingDirectory({TEMP_ID: TEMP_OBJECT})
    enricher = MetadataEnricher(tool_host=host, directory=directory)

    meta = asyncio.run(enricher.resolve(TEMP_ID))

    assert meta.exists is True
    assert meta.source == "enhanced"
    assert directory.lookups == []


def test_enhanced_miss_falls_back_to_directory() -> None:
    host = _FakeToolHost({TEMP_ID: EntityMetadata(state_id=TEMP_ID, exists=False)})
    directory = _CountingDirectory({TEMP_ID: TEMP_OBJECT})
    enricher = MetadataEnricher(tool_host=host, directory=directory)

    meta = asyncio.run(enricher.resolve(TEMP_ID))

    assert directory.lookups == [TEMP_ID]
    assert meta.source == "direct"
    assert meta.exists is True
    assert meta.unit == "°C"
    assert meta.max == 60


def test_enhanced_error_falls_back_to_directory() -> None:
    host = _FakeToolHost({TEMP_ID: RuntimeError("boom")})
    enricher = MetadataEnricher(tool_host=host, directory=InMemoryEntityDirectory())

    meta = asyncio.run(enricher.resolve(TEMP_ID))

    assert meta.source == "direct"
    assert meta.exists is False


def test_no_source_raises_no_backend_available() -> None:
    with pytest.raises(NoBackendAvailable):
        asyncio.run(MetadataEnricher().resolve(TEMP_ID))


def test_enrich_never_fails_the_request() -> None:
    records = asyncio.run(MetadataEnricher().enrich(f"show {TEMP_ID}"))

    assert len(records) == 1
    assert records[0].exists is False
    assert records[0].error


def test_enrich_without_references_is_empty() -> None:
    host = _FakeToolHost({})
    records = asyncio.run(MetadataEnricher(tool_host=host).enrich("add a group called Energy"))

    assert records == []
    assert host.lookups == []


def test_metadata_block_rendering() -> None:
    block = render_metadata_block(
        [
            EntityMetadata(
                state_id=TEMP_ID,
                exists=True,
                source="enhanced",
                type="number",
                role="value",
                unit="W",
                min=0,
                write=True,
            ),
            EntityMetadata(state_id="ping.0.x", exists=False, source="direct"),
        ]
    )

    assert block.startswith("\n\nState metadata found:\n")
    assert f"- {TEMP_ID}: type=number, role=value, unit=W, min=0, writable=true" in block
    assert "- ping.0.x: NOT FOUND" in block
    assert render_metadata_block([]) == ""


def test_unresolvable_records_are_not_rendered() -> None:
    records = asyncio.run(MetadataEnricher().enrich(f"show {TEMP_ID}"))

    assert records[0].source is None
    assert render_metadata_block(records) == ""


def test_tool_host_without_metadata_support_is_not_a_source() -> None:
    host = _FakeToolHost({}, metadata=False)
    enricher = MetadataEnricher(tool_host=host)

    assert enricher.has_tool_host() is False
    assert enricher.capability() is LookupCapability.NEITHER

    records = asyncio.run(enricher.enrich(f"add {TEMP_ID} please"))

    assert host.lookups == []
    assert render_metadata_block(records) == ""
