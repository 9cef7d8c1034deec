"""Child-process launcher for the OCR and conversion tools."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessOutput:
    exit_code: int
    stdout: str
    stderr: str


class OcrInvoker(Protocol):
    async def run(
        self, executable: str, args: Sequence[str], working_dir: str | Path
    ) -> ProcessOutput: ...


class SubprocessInvoker:
    """Runs a tool to completion, capturing exit code, stdout and stderr.

    Cancelling the awaiting task kills the child before CancelledError is
    re-raised, so a shutdown never leaves an orphaned ocrmypdf behind.
    A missing executable surfaces as FileNotFoundError.
    """

    def __init__(self, *, kill_timeout_s: float = 5.0) -> None:
        self._kill_timeout_s = kill_timeout_s

    async def run(
        self, executable: str, args: Sequence[str], working_dir: str | Path
    ) -> ProcessOutput:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *[str(a) for a in args],
            cwd=str(working_dir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            await self._kill(proc, executable)
            raise

        return ProcessOutput(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def _kill(self, proc: asyncio.subprocess.Process, executable: str) -> None:
        if proc.returncode is not None:
            return
        logger.info("Killing %s (pid %s) after cancellation", executable, proc.pid)
        try:
            proc.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._kill_timeout_s)
        except TimeoutError:
            logger.warning("%s (pid %s) did not exit after kill", executable, proc.pid)
