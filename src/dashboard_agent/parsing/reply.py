"""Split an LLM reply into an explanation and a list of commands."""

from __future__ import annotations

from dashboard_agent.types import ParsedReply

_COMMAND_MARKERS = ("commands to run:", "suggested commands:")


def parse_reply(text: str) -> ParsedReply:
    """Parse the free-text reply format requested by the system prompt.

    Everything before the first command marker is explanation. After it, only
    `- <command>` bullet lines are kept; there is no way back to explanation
    mode, so trailing prose after the command block is dropped.
    """

    commands: list[str] = []
    explanation_lines: list[str] = []
    in_commands = False

    for line in text.split("\n"):
        stripped = line.strip()
        if any(marker in stripped.lower() for marker in _COMMAND_MARKERS):
            in_commands = True
            continue

        if not in_commands:
            explanation_lines.append(line)
        elif stripped.startswith("-"):
            command = stripped[1:].strip()
            if command:
                commands.append(command)

    return ParsedReply(commands=commands, explanation="\n".join(explanation_lines).strip())
