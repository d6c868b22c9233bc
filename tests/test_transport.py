import json
import sys
from unittest.mock import MagicMock

import pytest

from askcat import transport
from tests.conftest import FakeProcess


def test_build_command_shape():
    cmd = transport.build_command("http://localhost:11434/api/generate", {"model": "m", "prompt": "p", "stream": False})
    assert cmd[:6] == ["curl", "-sS", "-X", "POST", "http://localhost:11434/api/generate", "-H"]
    assert cmd[6] == "Content-Type: application/json"
    assert cmd[7] == "-d"
    assert json.loads(cmd[8]) == {"model": "m", "prompt": "p", "stream": False}


def test_build_command_custom_curl():
    assert transport.build_command("http://x", {}, curl="/opt/bin/curl")[0] == "/opt/bin/curl"


@pytest.mark.asyncio
async def test_collect_decodes_output():
    proc = FakeProcess(stdout="héllo".encode(), stderr=b"\xffwarn", returncode=0, finished=True)
    result = await transport.collect(proc)
    assert result.code == 0
    assert result.stdout == "héllo"
    assert result.stderr.endswith("warn")


@pytest.mark.asyncio
async def test_collect_reports_kill_signal():
    proc = FakeProcess()
    proc.kill()
    result = await transport.collect(proc)
    assert result.code == -9
    assert result.killed


def test_terminate_tolerates_exited_process():
    proc = MagicMock()
    proc.kill.side_effect = ProcessLookupError
    transport.terminate(proc)
    proc.kill.assert_called_once()


@pytest.mark.asyncio
async def test_spawn_and_collect_real_process():
    process = await transport.spawn(
        [sys.executable, "-c", "import sys; print('{\"response\": \"ok\"}'); sys.stderr.write('note')"]
    )
    result = await transport.collect(process)
    assert result.code == 0
    assert json.loads(result.stdout) == {"response": "ok"}
    assert result.stderr == "note"


@pytest.mark.asyncio
async def test_spawn_missing_executable_raises_oserror():
    with pytest.raises(OSError):
        await transport.spawn(["/definitely/not/a/curl", "-sS"])


@pytest.mark.asyncio
async def test_terminate_real_process():
    process = await transport.spawn([sys.executable, "-c", "import time; time.sleep(30)"])
    transport.terminate(process)
    result = await transport.collect(process)
    assert result.killed
