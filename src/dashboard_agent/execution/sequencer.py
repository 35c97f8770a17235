"""Replays an orchestrator result against the command interpreter."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from dashboard_agent.config import SequencerConfig
from dashboard_agent.errors import UnrecognizedCommand
from dashboard_agent.parsing.tokenizer import tokenize
from dashboard_agent.types import QueryOutcome

logger = logging.getLogger(__name__)


class CommandInterpreter(Protocol):
    async def submit(self, name: str, args: list[str]) -> bool:
        """Run a command; return False when the name is not recognized."""
        ...


class Reporter(Protocol):
    def info(self, text: str) -> None: ...

    def error(self, text: str) -> None: ...


@dataclass(slots=True)
class Message:
    level: str
    text: str


class MessageLog:
    """Reporter that keeps every message in order."""

    def __init__(self) -> None:
        self.messages: list[Message] = []

    def info(self, text: str) -> None:
        self.messages.append(Message(level="info", text=text))

    def error(self, text: str) -> None:
        self.messages.append(Message(level="error", text=text))

    def texts(self, level: str | None = None) -> list[str]:
        return [m.text for m in self.messages if level is None or m.level == level]


@dataclass(slots=True)
class ExecutionReport:
    submitted: list[str] = field(default_factory=list)
    rejected: list[UnrecognizedCommand] = field(default_factory=list)


class ExecutionSequencer:
    """Shows the explanation line by line, then runs each suggested command.

    A rejected command is reported and the batch moves on. The pauses only pace
    the output for the user; cancelling the task stops the run at the next one.
    """

    def __init__(
        self,
        interpreter: CommandInterpreter,
        reporter: Reporter,
        config: SequencerConfig | None = None,
    ) -> None:
        self.interpreter = interpreter
        self.reporter = reporter
        self.config = config or SequencerConfig()

    async def run(self, outcome: QueryOutcome) -> ExecutionReport:
        report = ExecutionReport()
        if not outcome.success:
            self.reporter.error(outcome.error or "AI processing failed")
            return report

        if outcome.explanation:
            for line in outcome.explanation.split("\n"):
                if line.strip():
                    self.reporter.info(f"🤖 {line.strip()}")
                    await self._pause(self.config.line_delay_seconds)

        if outcome.commands:
            await self._pause(self.config.pre_batch_delay_seconds)
            self.reporter.info(f"🔧 Executing {len(outcome.commands)} command(s):")
            await self._pause(self.config.batch_header_delay_seconds)
            for command in outcome.commands:
                await self._run_command(command, report)
                await self._pause(self.config.between_commands_delay_seconds)
        elif not outcome.explanation:
            self.reporter.info(f"🤖 {outcome.response or ''}")

        return report

    async def _run_command(self, command: str, report: ExecutionReport) -> None:
        self.reporter.info(f"> {command}")
        await self._pause(self.config.announce_delay_seconds)

        args = tokenize(command)
        if not args:
            return
        name = args[0].lower()
        report.submitted.append(name)
        handled = await self.interpreter.submit(name, args[1:])
        if not handled:
            rejection = UnrecognizedCommand(name)
            logger.warning("%s", rejection)
            report.rejected.append(rejection)
            self.reporter.error(str(rejection))

    @staticmethod
    async def _pause(seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
