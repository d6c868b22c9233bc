"""Out-of-process HTTP via ``curl``.

The coordinator keeps the process handle so a request can be killed; this
module only knows how to start one, wait for it and kill it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any

from askcat.schemas import TransportResult

logger = logging.getLogger(__name__)


def build_command(url: str, payload: dict[str, Any], curl: str = "curl") -> list[str]:
    """Return the argv for a JSON POST to ``url``.

    ``-sS`` keeps the progress meter out of stderr while still reporting
    transport failures there.
    """
    return [
        curl,
        "-sS",
        "-X", "POST",
        url,
        "-H", "Content-Type: application/json",
        "-d", json.dumps(payload),
    ]


async def spawn(cmd: list[str]) -> asyncio.subprocess.Process:
    """Start ``cmd`` with stdout/stderr captured. Raises OSError if it cannot start."""
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    logger.debug(f"Spawned {cmd[0]} (pid={process.pid})")
    return process


async def collect(process: asyncio.subprocess.Process) -> TransportResult:
    """Wait for the process to exit and capture what it wrote."""
    stdout, stderr = await process.communicate()
    return TransportResult(
        code=process.returncode if process.returncode is not None else -1,
        stdout=(stdout or b"").decode("utf-8", errors="replace"),
        stderr=(stderr or b"").decode("utf-8", errors="replace"),
    )


def terminate(process: asyncio.subprocess.Process) -> None:
    """SIGKILL the process; a process that already exited is fine."""
    with suppress(ProcessLookupError):
        process.kill()
