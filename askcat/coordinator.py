"""Request coordinator: at most one in-flight ``curl`` call at a time.

submit() supersedes whatever is running, cancel() kills it silently. A
completion is acted on only if its handle is still the active one, so a
killed or superseded process finishing late is a no-op.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from askcat import transport
from askcat.errors import ApiError, AskCatError, CancelledNoop
from askcat.providers import Provider, build_payload, build_url
from askcat.runtime import clean_prompt, interpret_result

if TYPE_CHECKING:
    from askcat.config import ProviderConfig

logger = logging.getLogger(__name__)

Spawner = Callable[[list[str]], Awaitable[asyncio.subprocess.Process]]


@dataclass(eq=False)
class RequestHandle:
    prompt: str
    provider: Provider
    id: int
    process: asyncio.subprocess.Process | None = None
    task: asyncio.Task | None = None


class Coordinator:
    """Owns the active request and the last successful answer.

    Callbacks run on the event loop:
        on_loading(prompt)         a request was submitted
        on_result(text, prompt)    answer received
        on_error(message, prompt)  request failed ("Error: ..." message)
    Cancellation never calls any of them.
    """

    def __init__(
        self,
        on_loading: Callable[[str], None] | None = None,
        on_result: Callable[[str, str], None] | None = None,
        on_error: Callable[[str, str], None] | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        spawner: Spawner = transport.spawn,
        curl: str = "curl",
    ):
        self.on_loading = on_loading
        self.on_result = on_result
        self.on_error = on_error
        self.curl = curl
        self._loop = loop
        self._spawn = spawner
        self._ids = itertools.count(1)
        self._active: RequestHandle | None = None
        self.last_response: str | None = None
        self.last_prompt: str | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def active(self) -> RequestHandle | None:
        return self._active

    @property
    def pending(self) -> bool:
        return self._active is not None

    @property
    def current_prompt(self) -> str | None:
        return self._active.prompt if self._active else None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def submit(self, prompt: str, config: ProviderConfig) -> RequestHandle:
        """Start a request for ``prompt``, replacing any request in flight.

        Returns immediately; the answer arrives through the callbacks.
        Raises ValueError if the prompt is empty once comment markers are stripped.
        """
        text = clean_prompt(prompt)
        if not text:
            raise ValueError("Prompt is empty")

        if self._active is not None:
            logger.info(f"Replacing request {self._active.id}")
            self.cancel()

        handle = RequestHandle(prompt=text, provider=config.kind, id=next(self._ids))
        self._active = handle
        loop = self._loop or asyncio.get_running_loop()
        handle.task = loop.create_task(self._run(handle, config))
        logger.info(
            f"Submitted request {handle.id} ({handle.provider.value}): '{text[:60]}'"
        )
        self._emit(self.on_loading, text)
        return handle

    def cancel(self) -> bool:
        """Kill the active request. Returns False if there was nothing to cancel."""
        handle = self._active
        if handle is None:
            return False
        # Clear first: a completion racing the kill must see a stale handle.
        self._active = None
        if handle.process is not None:
            transport.terminate(handle.process)
        logger.info(f"Cancelled request {handle.id}")
        return True

    def close(self) -> None:
        """Teardown: drop any request in flight."""
        self.cancel()

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    def _is_current(self, handle: RequestHandle) -> bool:
        return self._active is handle

    async def _run(self, handle: RequestHandle, config: ProviderConfig) -> None:
        if not self._is_current(handle):
            logger.debug(f"Request {handle.id} cancelled before {self.curl} started")
            return

        url = build_url(config.url, config.resolved_api_key(), handle.provider)
        payload = build_payload(handle.prompt, config.system_prompt, handle.provider, config.model)
        cmd = transport.build_command(url, payload, curl=self.curl)

        try:
            process = await self._spawn(cmd)
        except OSError as e:
            logger.error(f"Could not start {self.curl}: {e}")
            if self._is_current(handle):
                self._active = None
                self._emit(self.on_error, f"Error: {e}", handle.prompt)
            return

        if not self._is_current(handle):
            # Cancelled or superseded while the process was starting.
            transport.terminate(process)
            await process.wait()
            return
        handle.process = process

        result = await transport.collect(process)

        if not self._is_current(handle):
            logger.debug(f"Dropping stale completion of request {handle.id}")
            return
        self._active = None

        try:
            text = interpret_result(result, handle.provider)
        except CancelledNoop:
            # cancel() clears the handle before killing, so a current handle was killed elsewhere.
            error = ApiError(f"{self.curl} was killed (exit={result.code})")
            logger.warning(f"Request {handle.id}: {error}")
            self._emit(self.on_error, f"Error: {error}", handle.prompt)
            return
        except AskCatError as e:
            self._emit(self.on_error, f"Error: {e}", handle.prompt)
            return

        self.last_response = text
        self.last_prompt = handle.prompt
        logger.info(f"Request {handle.id} answered ({len(text)} chars)")
        self._emit(self.on_result, text, handle.prompt)

    def _emit(self, callback: Callable[..., None] | None, *args: str) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Callback {getattr(callback, '__name__', callback)} failed: {e}", exc_info=True)
