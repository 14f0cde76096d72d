# tests/modsmith/build/test_command.py
from __future__ import annotations
import os
import sys

import psutil
import pytest

from modsmith.build.command import READER_JOIN_SECONDS, runCommand
from modsmith.core.errors import BuildToolError


def test_capturesStdoutAndStderrTogether(tmp_path):
    script = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)"
    result = runCommand(sys.executable, ["-c", script], tmp_path)
    assert result.exitCode == 0
    assert "out" in result.output
    assert "err" in result.output
    assert result.truncated is False
    assert result.durationMs >= 0


def test_nonZeroExitIsAResult(tmp_path):
    result = runCommand(sys.executable, ["-c", "print('boom'); raise SystemExit(3)"], tmp_path)
    assert result.exitCode == 3
    assert "boom" in result.output


def test_runsInWorkingDirectory(tmp_path):
    result = runCommand(sys.executable, ["-c", "import os; print(os.getcwd())"], tmp_path)
    assert result.output.strip().endswith(tmp_path.name)


def test_passesEnvironment(tmp_path):
    env = {**os.environ, "MODSMITH_PROBE": "42"}
    result = runCommand(sys.executable, ["-c", "import os; print(os.environ['MODSMITH_PROBE'])"], tmp_path, env)
    assert result.output.strip() == "42"


def test_truncationKeepsTail(tmp_path):
    script = "for i in range(2000): print(f'line {i:04d}')"
    result = runCommand(sys.executable, ["-c", script], tmp_path, maxOutputChars=100)
    assert result.truncated is True
    assert len(result.output) == 100
    assert result.output.endswith("line 1999\n")
    assert "line 0000" not in result.output


def test_timeoutKillsProcess(tmp_path):
    result = runCommand(sys.executable, ["-c", "import time; time.sleep(30)"], tmp_path, timeoutSeconds=0.5)
    assert result.timedOut is True
    assert result.exitCode is None
    assert result.durationMs < 30_000


def test_missingExecutableRaises(tmp_path):
    with pytest.raises(BuildToolError):
        runCommand(str(tmp_path / "no-such-tool"), [], tmp_path)


def test_timeoutKillsWholeProcessTree(tmp_path):
    # The child spawns a grandchild that inherits stdout and outlives it
    script = (
        "import subprocess, sys, time\n"
        "grandchild = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        "print(f'grandchild={grandchild.pid}', flush=True)\n"
        "time.sleep(30)\n"
    )
    (tmp_path / "spawn.py").write_text(script, encoding="utf-8")

    result = runCommand(sys.executable, ["spawn.py"], tmp_path, timeoutSeconds=1.0)

    assert result.timedOut is True
    assert result.durationMs < (1.0 + READER_JOIN_SECONDS) * 1000
    [line] = [line for line in result.output.splitlines() if line.startswith("grandchild=")]
    grandchildPid = int(line.split("=", 1)[1])
    try:
        assert psutil.Process(grandchildPid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        pass
