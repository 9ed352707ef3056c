from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional

from ..errors import ContinuationError
from .models import Operation, WriteSite

logger = logging.getLogger(__name__)


def _consume_exception(fut: asyncio.Future) -> None:
    # Marks the exception as retrieved; the owner observes it elsewhere.
    if not fut.cancelled():
        fut.exception()


class PendingNestedInvocation:
    """
    Rendezvous between a parent dispatch and one nested write invocation.

    Two single-use futures carry the handshake:
    - ``ready``: set when the nested middleware calls its continuation
      (or fails, or returns without calling it)
    - ``result``: set by the parent once the downstream result is known,
      and awaited by the nested continuation

    ``task`` is the nested invocation itself; its outcome is the value the
    nested middleware returns.
    """

    def __init__(self, site: WriteSite) -> None:
        loop = asyncio.get_running_loop()
        self.site = site
        self.ready: asyncio.Future[None] = loop.create_future()
        self.result: asyncio.Future[Any] = loop.create_future()
        self.updated: Optional[Operation] = None
        self.task: Optional[asyncio.Task] = None
        self.ready.add_done_callback(_consume_exception)
        self.result.add_done_callback(_consume_exception)

    async def continuation(self, updated: Operation) -> Any:
        """
        The ``next`` handed to the nested middleware.

        Records the updated operation, releases the parent's barrier and then
        suspends until the parent settles ``result``.

        Raises:
            ContinuationError: If called more than once
        """
        if self.updated is not None:
            raise ContinuationError(
                f"next() called more than once for nested {self.site.action} "
                f"at {self.site.path!r}"
            )
        self.updated = updated
        if not self.ready.done():
            self.ready.set_result(None)
        return await self.result

    def start(self, runner: Awaitable[Any]) -> asyncio.Task:
        """
        Schedule the nested invocation.

        ``runner`` is a coroutine running the nested dispatch. A failure
        before the continuation was reached rejects ``ready`` and is
        re-raised so the task outcome carries it too.
        """

        async def _run() -> Any:
            try:
                value = await runner
            except Exception as exc:
                if not self.ready.done():
                    self.ready.set_exception(exc)
                raise
            if not self.ready.done():
                # returned without calling next(); nothing to wait for
                logger.debug("Nested %s at %r returned without calling next()", self.site.action, self.site.path)
                self.ready.set_result(None)
            return value

        self.task = asyncio.ensure_future(_run())
        return self.task

    def settle(self, value: Any) -> None:
        if not self.result.done():
            self.result.set_result(value)

    def reject(self, exc: BaseException) -> None:
        if not self.result.done():
            self.result.set_exception(exc)
