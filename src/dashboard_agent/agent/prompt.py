"""System prompt rendering from a dashboard context snapshot."""

from __future__ import annotations

from dashboard_agent.types import DashboardContext

UNAVAILABLE = "unavailable"

ELEMENT_TYPES: tuple[tuple[str, str], ...] = (
    ("gauge", "Shows numeric values with min/max (good for power, temperature)"),
    ("switch", "Interactive on/off toggle"),
    ("button", "Clickable action trigger"),
    ("indicator", "Status light (on/off, alive/dead)"),
    ("text", "String value display"),
    ("number", "Simple numeric display"),
    ("sparkline", "Mini chart for trends"),
)

_INSTRUCTIONS = """
INSTRUCTIONS:
1. Understand the user's intent for dashboard management
2. If they mention specific state IDs, try to validate them if connected
3. Use state metadata to suggest the best element type automatically
4. If they want to execute commands, suggest specific commands
5. If they ask questions, provide helpful information about their dashboard
6. Be concise and practical
7. When suggesting commands, format them clearly
8. You can suggest multiple commands if needed
9. Use tools directly when you need to search, get states, or perform ioBroker operations
10. For queries like "search for temperature sensors" or "what lights are available", use tools first

CRITICAL: add-state command format is: add-state <group> <title> <stateId> [type]
Example: add-state "Temperatures" "Outdoor temperature" modbus.2.holdingRegisters._Aussentemperatur gauge
NOT: add-state modbus.2.holdingRegisters._Aussentemperatur "Temperatures" gauge "Outdoor temperature"

RESPONSE FORMAT:
Provide a natural language explanation, and if commands are needed, list them clearly like:
Commands to run:
- command1 arg1 arg2
- command2 arg1 arg2
""".strip()


def build_system_prompt(context: DashboardContext) -> str:
    """Render the system prompt. Same context in, same text out."""

    group_count = str(len(context.groups)) if context.groups is not None else UNAVAILABLE
    total_elements = str(context.total_elements) if context.total_elements is not None else UNAVAILABLE

    sections = [
        "You are an AI assistant for an ioBroker dashboard CLI tool. "
        "You help users manage their smart home dashboard through natural language.",
        "\n".join(
            [
                "CURRENT DASHBOARD STATE:",
                f"- Connected to ioBroker: {_flag(context.connected)}",
                f"- Groups: {group_count}",
                f"- Total Elements: {total_elements}",
                f"- Can access ioBroker metadata: {_flag(context.has_entity_directory)}",
                f"- Tool host connected: {_flag(context.has_tool_host)}",
            ]
        ),
        "AVAILABLE GROUPS:\n" + _render_groups(context),
        "AVAILABLE COMMANDS:\n" + _render_commands(context),
        "ELEMENT TYPES:\n" + "\n".join(f"- {name}: {meaning}" for name, meaning in ELEMENT_TYPES),
        "SPECIAL CAPABILITIES:\n" + _render_capabilities(context),
        _render_tool_host(context),
        _INSTRUCTIONS,
        f"User's dashboard context: {group_count} groups, {total_elements} total elements, "
        f"connected: {_flag(context.connected)}",
    ]
    return "\n\n".join(sections)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _render_groups(context: DashboardContext) -> str:
    if context.groups is None:
        return f"- {UNAVAILABLE}"
    if not context.groups:
        return "- (none)"
    return "\n".join(f"- {group.title} ({group.element_count} elements)" for group in context.groups)


def _render_commands(context: DashboardContext) -> str:
    if context.commands is None:
        return f"- {UNAVAILABLE}"
    if not context.commands:
        return "- (none)"
    lines = []
    for command in context.commands:
        aliases = ", ".join(command.aliases) if command.aliases else "none"
        lines.append(f"- {command.usage} (aliases: {aliases}): {command.description}")
    return "\n".join(lines)


def _render_capabilities(context: DashboardContext) -> str:
    if context.has_entity_directory:
        return "\n".join(
            [
                "- I can look up state metadata to verify states exist",
                "- I can determine the best element type based on state metadata (type, role)",
                "- I can get units, min/max values, and write permissions from ioBroker",
                "- When users mention state IDs, I should validate them when possible",
            ]
        )
    return "- ioBroker access not available - cannot validate state IDs"


def _render_tool_host(context: DashboardContext) -> str:
    if not context.has_tool_host:
        return "TOOL HOST:\n- Tool host not connected (enhanced features unavailable)"

    if context.has_enhanced_tools:
        lines = [
            "TOOL HOST ACCESS:",
            "- Connected to a tool host with enhanced ioBroker tools",
            "- Can perform advanced ioBroker operations via tools",
        ]
    else:
        lines = [
            "TOOL HOST ACCESS:",
            "- Local dashboard tools only (no ioBroker metadata lookups)",
        ]
    if context.tools is None:
        lines.append(f"- Available tools: {UNAVAILABLE}")
    elif not context.tools:
        lines.append("- Available tools: none")
    else:
        lines.append("- Available tools:")
        lines.extend(f"  - {tool.name}: {tool.description}" for tool in context.tools)

    if context.resources is None:
        lines.append(f"- Available resources: {UNAVAILABLE}")
    else:
        lines.append(f"- Available resources: {len(context.resources)} resources")
        lines.extend(
            f"  - {resource.uri}" + (f" ({resource.name})" if resource.name else "")
            for resource in context.resources
        )
    return "\n".join(lines)
