# modsmith/build/command.py
from __future__ import annotations
import logging
import os
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

import psutil

from modsmith.core.errors import BuildToolError
from modsmith.core.time import nowMonotonicMs

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_MAX_OUTPUT_CHARS", "CommandResult", "killProcessTree", "runCommand"]


DEFAULT_MAX_OUTPUT_CHARS = 50_000
READER_JOIN_SECONDS = 5.0



@dataclass(frozen=True, slots=True)
class CommandResult:
    exitCode: int | None        # None when the process was killed on timeout
    output: str                 # combined stdout/stderr, tail kept when truncated
    durationMs: int
    truncated: bool
    timedOut: bool = False



class _TailBuffer:
    """Keeps at most `limit` characters, dropping the oldest output first."""
    def __init__(self, limit: int) -> None:
        self.limit = max(1, int(limit))
        self.truncated = False
        self._chunks: deque[str] = deque()
        self._size = 0

    def append(self, text: str) -> None:
        if not text:
            return
        self._chunks.append(text)
        self._size += len(text)
        while self._size > self.limit and self._chunks:
            excess = self._size - self.limit
            head = self._chunks[0]
            if len(head) <= excess:
                self._chunks.popleft()
                self._size -= len(head)
            else:
                self._chunks[0] = head[excess:]
                self._size -= excess
            self.truncated = True

    def text(self) -> str:
        return "".join(self._chunks)



def killProcessTree(process: psutil.Popen) -> None:
    """Kills `process` and every descendant; children are collected first so none get orphaned."""
    try:
        children = process.children(recursive=True)
    except psutil.NoSuchProcess:
        children = []
    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
    try:
        process.kill()
    except psutil.NoSuchProcess:
        pass
    psutil.wait_procs(children, timeout=READER_JOIN_SECONDS)



def runCommand(
    command: str,
    args: Sequence[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    maxOutputChars: int = DEFAULT_MAX_OUTPUT_CHARS,
    timeoutSeconds: float | None = None,
) -> CommandResult:
    """
    Runs `command args...` in `cwd` and captures stdout and stderr together.
    Output beyond `maxOutputChars` is truncated from the front so the tail,
    where build tools report failures, survives.

    On timeout the whole process tree is killed, since wrappers such as
    gradlew or cmd.exe leave the real build running in a child process.

    A non-zero exit is a normal result. Raises BuildToolError only when the
    process cannot be started.
    """
    buffer = _TailBuffer(maxOutputChars)
    startedAt = nowMonotonicMs()
    logger.debug("Running %s %s in '%s'", command, " ".join(args), cwd)

    try:
        process = psutil.Popen(
            [command, *args],
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=os.name == "nt",
        )
    except OSError as err:
        raise BuildToolError(f"Failed to start '{command}': {err}") from err

    def pump() -> None:
        assert process.stdout is not None
        for line in process.stdout:
            buffer.append(line)

    reader = threading.Thread(target=pump, name="build-output", daemon=True)
    reader.start()

    timedOut = False
    try:
        exitCode: int | None = process.wait(timeout=timeoutSeconds)
    except (psutil.TimeoutExpired, subprocess.TimeoutExpired):
        timedOut = True
        killProcessTree(process)
        process.wait()
        exitCode = None
        logger.warning("'%s' timed out after %ss; process tree killed", command, timeoutSeconds)

    # A descendant that escaped the kill can still hold the pipe open
    reader.join(timeout=READER_JOIN_SECONDS if timedOut else None)
    if reader.is_alive():
        logger.warning("Output of '%s' still open after kill; abandoning reader", command)
    elif process.stdout is not None:
        process.stdout.close()

    return CommandResult(
        exitCode=exitCode,
        output=buffer.text(),
        durationMs=nowMonotonicMs() - startedAt,
        truncated=buffer.truncated,
        timedOut=timedOut,
    )
