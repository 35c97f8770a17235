"""Built-in dashboard tools served when no MCP server is configured."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from dashboard_agent.agent.registry import ToolRegistry, ToolSpec
from dashboard_agent.dashboard import Dashboard, DashboardElement

ElementType = Literal["gauge", "switch", "button", "indicator", "text", "number", "sparkline"]


class EmptyToolInput(BaseModel):
    pass


class CreateGroupToolInput(BaseModel):
    title: str = Field(min_length=1)


class AddElementToolInput(BaseModel):
    group: str = Field(min_length=1)
    type: ElementType
    caption: str = Field(min_length=1)
    stateId: str = Field(min_length=1)
    unit: str | None = None
    min: float | None = None
    max: float | None = None


class RemoveElementToolInput(BaseModel):
    group: str = Field(min_length=1)
    index: int | None = Field(default=None, ge=1)


def register_dashboard_tools(registry: ToolRegistry, dashboard: Dashboard) -> None:
    """Register the default dashboard tool set.

    Tools:
    - `get_dashboard_status`: group and element counts.
    - `list_dashboard_groups`: groups with their elements.
    - `create_dashboard_group`: add an empty group.
    - `add_dashboard_element`: bind a state to a new element.
    - `remove_dashboard_element`: drop an element from a group.
    """

    def _status(_: EmptyToolInput) -> dict[str, Any]:
        return dashboard.status()

    def _list_groups(_: EmptyToolInput) -> list[dict[str, Any]]:
        return [
            {
                "title": group.title,
                "elementCount": len(group.elements),
                "elements": [
                    {"caption": el.caption, "type": el.type, "stateId": el.state_id}
                    for el in group.elements
                ],
            }
            for group in dashboard.groups
        ]

    def _create_group(input_data: CreateGroupToolInput) -> dict[str, Any]:
        group = dashboard.add_group(input_data.title)
        return {"success": True, "group": group.title}

    def _add_element(input_data: AddElementToolInput) -> dict[str, Any]:
        element = dashboard.add_element(
            input_data.group,
            DashboardElement(
                caption=input_data.caption,
                state_id=input_data.stateId,
                type=input_data.type,
                unit=input_data.unit,
                min=input_data.min,
                max=input_data.max,
            ),
        )
        return {"success": True, "group": input_data.group, "caption": element.caption}

    def _remove_element(input_data: RemoveElementToolInput) -> dict[str, Any]:
        element = dashboard.remove_element(input_data.group, input_data.index)
        return {"success": True, "group": input_data.group, "removed": element.caption}

    registry.register(
        ToolSpec(
            name="get_dashboard_status",
            description="Get current dashboard status and statistics",
            args_schema=EmptyToolInput,
            handler=_status,
            tags=["dashboard"],
        )
    )
    registry.register(
        ToolSpec(
            name="list_dashboard_groups",
            description="List dashboard groups and their elements",
            args_schema=EmptyToolInput,
            handler=_list_groups,
            tags=["dashboard"],
        )
    )
    registry.register(
        ToolSpec(
            name="create_dashboard_group",
            description="Create a new dashboard group",
            args_schema=CreateGroupToolInput,
            handler=_create_group,
            tags=["dashboard", "write"],
        )
    )
    registry.register(
        ToolSpec(
            name="add_dashboard_element",
            description="Add a new element to a dashboard group",
            args_schema=AddElementToolInput,
            handler=_add_element,
            tags=["dashboard", "write"],
        )
    )
    registry.register(
        ToolSpec(
            name="remove_dashboard_element",
            description="Remove an element from a dashboard group",
            args_schema=RemoveElementToolInput,
            handler=_remove_element,
            tags=["dashboard", "write"],
        )
    )
