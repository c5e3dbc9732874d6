"""Language runner interface.

A runner turns ``(entry, arguments, function)`` into one child process and
waits for it. Runners know nothing about schemas, validation or output
capture; the dispatcher owns those.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from fnkit.shared.config import Settings

logger = structlog.get_logger()

LAUNCHERS_DIR = Path(__file__).resolve().parent / "launchers"


@dataclass
class RunOutcome:
    exit_code: int
    stdout: str
    stderr: str


class Runner(ABC):
    """Spawns one child process per invocation."""

    language: str = ""

    def __init__(self, settings: Settings):
        self.settings = settings

    @abstractmethod
    def command(
        self,
        entry: Path,
        args: dict[str, Any],
        function: str | None = None,
        options: Mapping[str, str] | None = None,
    ) -> list[str]:
        """The argv that runs ``function`` (or the tool's ``run``) of ``entry``.

        ``options`` maps parameter names to declared command-line spellings.
        """

    async def invoke(
        self,
        entry: Path,
        args: dict[str, Any],
        env: dict[str, str],
        function: str | None = None,
        options: Mapping[str, str] | None = None,
    ) -> RunOutcome:
        argv = self.command(entry, args, function, options)
        logger.debug("child_spawning", language=self.language, entry=str(entry), function=function)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError:
            # Missing interpreter: report it the way a shell would
            return RunOutcome(exit_code=127, stdout="", stderr=f"{argv[0]}: command not found")

        stdout_bytes, stderr_bytes = await proc.communicate()
        return RunOutcome(
            exit_code=proc.returncode,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )
