"""In-memory dashboard layout: groups of elements bound to ioBroker states."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dashboard_agent.types import GroupInfo

ELEMENT_TYPE_NAMES = ("gauge", "switch", "button", "indicator", "text", "number", "sparkline")


@dataclass(slots=True)
class DashboardElement:
    caption: str
    state_id: str
    type: str = "text"
    unit: str | None = None
    min: float | None = None
    max: float | None = None


@dataclass(slots=True)
class DashboardGroup:
    title: str
    elements: list[DashboardElement] = field(default_factory=list)


class Dashboard:
    """Groups and elements shown by the CLI."""

    def __init__(self, *, connected: bool = False) -> None:
        self.connected = connected
        self.groups: list[DashboardGroup] = []

    def find_group(self, title: str) -> DashboardGroup | None:
        wanted = title.lower()
        for group in self.groups:
            if group.title.lower() == wanted:
                return group
        return None

    def add_group(self, title: str) -> DashboardGroup:
        if not title.strip():
            raise ValueError("Group name must not be empty")
        if self.find_group(title) is not None:
            raise ValueError(f"Group already exists: {title}")
        group = DashboardGroup(title=title)
        self.groups.append(group)
        return group

    def remove_group(self, title: str) -> None:
        group = self._require_group(title)
        self.groups.remove(group)

    def add_element(self, group_title: str, element: DashboardElement) -> DashboardElement:
        if element.type not in ELEMENT_TYPE_NAMES:
            raise ValueError(f"Unknown element type: {element.type}")
        self._require_group(group_title).elements.append(element)
        return element

    def remove_element(self, group_title: str, index: int | None = None) -> DashboardElement:
        """Remove the element at 1-based `index`, or the last one."""
        group = self._require_group(group_title)
        if not group.elements:
            raise ValueError(f"Group has no elements: {group.title}")
        if index is None:
            return group.elements.pop()
        if not 1 <= index <= len(group.elements):
            raise ValueError(f"Element number out of range: {index}")
        return group.elements.pop(index - 1)

    def group_infos(self) -> list[GroupInfo]:
        return [GroupInfo(title=group.title, element_count=len(group.elements)) for group in self.groups]

    def status(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "groups": len(self.groups),
            "total_elements": sum(len(group.elements) for group in self.groups),
        }

    def _require_group(self, title: str) -> DashboardGroup:
        group = self.find_group(title)
        if group is None:
            raise ValueError(f"Group not found: {title}")
        return group
