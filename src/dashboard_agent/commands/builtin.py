"""Dashboard commands available to both the user and the assistant."""

from __future__ import annotations

from collections.abc import Callable

from dashboard_agent.commands.registry import Command, CommandRegistry
from dashboard_agent.dashboard import ELEMENT_TYPE_NAMES, Dashboard, DashboardElement
from dashboard_agent.execution.sequencer import Reporter


def register_builtin_commands(
    registry: CommandRegistry,
    dashboard: Dashboard,
    reporter: Reporter,
    *,
    clear_history: Callable[[], None] | None = None,
) -> None:
    def _add_group(args: list[str]) -> None:
        if not args:
            raise ValueError("Usage: add-group <name>")
        group = dashboard.add_group(" ".join(args))
        reporter.info(f"Group created: {group.title}")

    def _add_state(args: list[str]) -> None:
        if len(args) < 3:
            raise ValueError("Usage: add-state <group> <title> <stateId> [type]")
        group, title, state_id = args[:3]
        element_type = args[3].lower() if len(args) > 3 else "text"
        if element_type not in ELEMENT_TYPE_NAMES:
            raise ValueError(f"Unknown element type: {element_type}")
        dashboard.add_element(group, DashboardElement(caption=title, state_id=state_id, type=element_type))
        reporter.info(f"Added {element_type} '{title}' ({state_id}) to {group}")

    def _remove_element(args: list[str]) -> None:
        if not args:
            raise ValueError("Usage: remove-element <group> [number]")
        index = None
        if len(args) > 1:
            if not args[1].isdigit():
                raise ValueError(f"Element number must be a positive integer: {args[1]}")
            index = int(args[1])
        element = dashboard.remove_element(args[0], index)
        reporter.info(f"Removed '{element.caption}' from {args[0]}")

    def _list(args: list[str]) -> None:
        groups = dashboard.groups
        if args:
            group = dashboard.find_group(" ".join(args))
            if group is None:
                raise ValueError(f"Group not found: {' '.join(args)}")
            groups = [group]
        if not groups:
            reporter.info("No groups defined")
            return
        for group in groups:
            reporter.info(f"{group.title} ({len(group.elements)} elements)")
            for number, element in enumerate(group.elements, start=1):
                reporter.info(f"  {number}. {element.caption} [{element.type}] {element.state_id}")

    def _status(args: list[str]) -> None:
        del args
        status = dashboard.status()
        reporter.info(
            f"Connected: {status['connected']}, groups: {status['groups']}, "
            f"elements: {status['total_elements']}"
        )

    def _clear_chat(args: list[str]) -> None:
        del args
        if clear_history is None:
            reporter.error("AI not available")
            return
        clear_history()
        reporter.info("🧹 Chat history cleared")

    registry.register(
        Command(
            name="add-group",
            aliases=["ag", "create-group"],
            description="Create a new dashboard group",
            usage="add-group <name>",
            handler=_add_group,
        )
    )
    registry.register(
        Command(
            name="add-state",
            aliases=["as", "add"],
            description="Add a new element to display an ioBroker state",
            usage="add-state <group> <title> <stateId> [type]",
            handler=_add_state,
            examples=['add-state "Temperatures" "Outdoor" modbus.2.holdingRegisters.temp gauge'],
        )
    )
    registry.register(
        Command(
            name="remove-element",
            aliases=["rm-el", "delete-element"],
            description="Remove an element from a group",
            usage="remove-element <group> [number]",
            handler=_remove_element,
        )
    )
    registry.register(
        Command(
            name="list",
            aliases=["ls"],
            description="List dashboard components",
            usage="list [groupname]",
            handler=_list,
        )
    )
    registry.register(
        Command(
            name="status",
            aliases=["st", "info"],
            description="Show dashboard status and statistics",
            usage="status",
            handler=_status,
        )
    )
    registry.register(
        Command(
            name="clear-chat",
            aliases=["clear-history", "reset-chat"],
            description="Clear AI chat conversation history",
            usage="clear-chat",
            handler=_clear_chat,
        )
    )
