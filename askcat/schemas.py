"""Data passed between the transport and the runtime."""

import signal as _signal

from pydantic import BaseModel

# Exit codes a shell reports for SIGKILL / SIGTERM (128 + signum).
_KILL_SIGNALS = (_signal.SIGKILL, _signal.SIGTERM)
_KILL_EXIT_CODES = tuple(128 + int(s) for s in _KILL_SIGNALS)


class TransportResult(BaseModel):
    """Outcome of one finished ``curl`` process.

    code:   process return code; asyncio reports death-by-signal as ``-signum``.
    stdout: response body (decoded, may be partial if the process was killed).
    stderr: curl's own error output.
    """

    code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def signal(self) -> int | None:
        return -self.code if self.code < 0 else None

    @property
    def killed(self) -> bool:
        """True when the process died from SIGKILL/SIGTERM rather than exiting."""
        if self.signal is not None:
            return self.signal in _KILL_SIGNALS
        return self.code in _KILL_EXIT_CODES
