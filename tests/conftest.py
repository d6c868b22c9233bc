from __future__ import annotations

import asyncio

import pytest

from askcat import config as config_module


class FakeProcess:
    """Stands in for asyncio.subprocess.Process; finishes when told to."""

    _next_pid = 1000

    def __init__(self, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0,
                 finished: bool = False, honour_kill: bool = True):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.returncode = None
        self.killed = False
        self._stdout = stdout
        self._stderr = stderr
        self._final_code = returncode
        self._honour_kill = honour_kill
        self._done = asyncio.Event()
        if finished:
            self.finish()

    def finish(self, returncode: int | None = None) -> None:
        self.returncode = self._final_code if returncode is None else returncode
        self._done.set()

    def kill(self) -> None:
        self.killed = True
        if self._honour_kill and not self._done.is_set():
            self._stdout = b'{"resp'
            self.finish(-9)

    async def communicate(self):
        await self._done.wait()
        return self._stdout, self._stderr

    async def wait(self):
        await self._done.wait()
        return self.returncode


class FakeSpawner:
    """Hands out queued FakeProcess objects and records each argv."""

    def __init__(self, *processes: FakeProcess):
        self.processes = list(processes)
        self.commands: list[list[str]] = []

    async def __call__(self, cmd: list[str]) -> FakeProcess:
        self.commands.append(cmd)
        return self.processes.pop(0)


async def until_spawned(handle, max_steps: int = 50) -> None:
    for _ in range(max_steps):
        if handle.process is not None:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"request {handle.id} never spawned its process")


@pytest.fixture(autouse=True)
def reset_config_cache(monkeypatch):
    monkeypatch.setattr(config_module, "_config", None)
    monkeypatch.setattr(config_module, "_config_path", None)
    monkeypatch.setattr(config_module, "_overrides", {})
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
