"""
Asynchronous HTTP dispatch channel for PWS update requests.

The uploader hands each update URL to a channel together with a
:class:`ResponseListener`. The channel issues the GET request in the
background and reports the outcome to the listener exactly once, either as
``on_response(status_code, body)`` or as ``on_failure(cause)``.

:class:`HttpxChannel` runs each request as a task on the running asyncio
event loop, so outcomes are delivered on the same loop that drives the
refresh ticks.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import httpx

from wunderground_edge.src.exceptions import ChannelError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 30.0


class ResponseListener(Protocol):
    """Receiver of request outcomes."""

    def on_response(self, status_code: int, body: str) -> None: ...

    def on_failure(self, cause: BaseException) -> None: ...


class HttpChannel(Protocol):
    """Sends update requests asynchronously."""

    def send(self, url: str, listener: ResponseListener) -> None:
        """Schedule a GET of *url*; outcome goes to *listener*.

        Raises:
            ChannelError: If the request cannot be scheduled.
        """
        ...


class HttpxChannel:
    """HTTP channel backed by a shared :class:`httpx.AsyncClient`.

    Args:
        timeout_s: Per-request timeout in seconds. A timeout is reported to
            the listener as a failure.
        client: Optional pre-built client (e.g. with a mock transport). When
            omitted a client is created on first use.

    Usage::

        channel = HttpxChannel(timeout_s=30.0)
        channel.send(url, uploader)
        ...
        await channel.drain()
        await channel.aclose()
    """

    def __init__(
        self,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._client = client
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        """Number of requests whose outcome has not been reported yet."""
        return len(self._tasks)

    def send(self, url: str, listener: ResponseListener) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ChannelError("No running event loop to dispatch request on") from exc

        task = loop.create_task(self._request(url, listener))
        # Keep a strong reference until the task finishes.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self, timeout_s: float | None = None) -> None:
        """Wait for outstanding requests to report their outcome."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout_s)
        if pending:
            logger.warning("%d request(s) still outstanding after drain", len(pending))

    async def aclose(self) -> None:
        """Cancel outstanding requests and close the HTTP client."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, url: str, listener: ResponseListener) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s)
        try:
            response = await self._client.get(url)
        except Exception as exc:
            listener.on_failure(exc)
            return
        listener.on_response(response.status_code, response.text)
