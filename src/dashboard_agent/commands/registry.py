"""Command interpreter: named commands with aliases."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from dashboard_agent.execution.sequencer import Reporter
from dashboard_agent.types import CommandInfo

logger = logging.getLogger(__name__)

CommandHandler = Callable[[list[str]], Awaitable[None] | None]


@dataclass(slots=True)
class Command:
    name: str
    description: str
    usage: str
    handler: CommandHandler
    aliases: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)

    def info(self) -> CommandInfo:
        return CommandInfo(
            name=self.name,
            aliases=list(self.aliases),
            description=self.description,
            usage=self.usage,
        )


class CommandRegistry:
    """Looks commands up by name or alias and runs them."""

    def __init__(self, reporter: Reporter) -> None:
        self.reporter = reporter
        self._commands: dict[str, Command] = {}
        self._aliases: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        if command.name in self._commands:
            raise ValueError(f"Command already registered: {command.name}")
        self._commands[command.name] = command
        for alias in command.aliases:
            self._aliases[alias] = command

    def find(self, name: str) -> Command | None:
        return self._commands.get(name) or self._aliases.get(name)

    async def submit(self, name: str, args: list[str]) -> bool:
        """Run `name` with `args`.

        Returns False only for unknown commands. A command that fails while
        running is reported here and still counts as recognized.
        """

        command = self.find(name)
        if command is None:
            return False

        try:
            result = command.handler(args)
            if inspect.isawaitable(result):
                await result
        except ValueError as exc:
            logger.info("Command %s failed: %s", name, exc)
            self.reporter.error(f"Error executing {name}: {exc}")
        return True

    def all_commands(self) -> list[Command]:
        return list(self._commands.values())

    def infos(self) -> list[CommandInfo]:
        return [command.info() for command in self._commands.values()]
