"""Debounced customer lookup.

`Debouncer` runs only the latest submitted call, after a quiet period. It is
bound to its owner's lifetime: closing it (or leaving its ``async with``
block) cancels whatever is still pending, including a search already in
flight.

    async with Debouncer() as debouncer:
        lookup = CustomerLookup(platform, debouncer)
        lookup.submit("+62812")
        lookup.submit("+628123")   # the first search never runs
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from beautydesk.config import settings
from beautydesk.errors import ConsoleError
from beautydesk.platform.client import PlatformClient
from beautydesk.schemas.customers import Customer, LookupResult

logger = logging.getLogger(__name__)


class Debouncer:

    def __init__(self, delay: float | None = None):
        self.delay = delay if delay is not None else settings.search_debounce_seconds
        self._task: asyncio.Task | None = None
        self._closed = False

    async def __aenter__(self) -> "Debouncer":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, fn: Callable[..., Awaitable[Any]], args: tuple) -> Any:
        await asyncio.sleep(self.delay)
        return await fn(*args)

    def call(self, fn: Callable[..., Awaitable[Any]], *args) -> asyncio.Task:
        """Schedule ``fn(*args)``, cancelling the previously scheduled call."""
        if self._closed:
            raise RuntimeError("Debouncer is closed")
        self.cancel()
        self._task = asyncio.create_task(self._run(fn, args))
        return self._task

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()

    async def close(self) -> None:
        self._closed = True
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def lookup_query(query: str) -> str:
    """Phone searches drop the leading ``+``; the platform matches on digits."""
    query = query.strip()
    return query[1:] if query.startswith("+") else query


class CustomerLookup:
    """Search customers by name or phone and report found / not_found."""

    def __init__(
        self,
        platform: PlatformClient,
        debouncer: Debouncer | None = None,
        page_size: int | None = None,
    ):
        self.platform = platform
        self.debouncer = debouncer or Debouncer()
        self.page_size = page_size or settings.lookup_page_size
        self.result = LookupResult(query="", status="idle")

    async def search(self, query: str) -> LookupResult:
        query = query.strip()
        if not query:
            self.result = LookupResult(query="", status="idle")
            return self.result

        self.result = LookupResult(query=query, status="searching")
        try:
            data = await self.platform.list_customers(
                search=lookup_query(query), size=self.page_size
            )
        except ConsoleError as e:
            logger.warning(f"Customer lookup failed for {query!r}: {e.message}")
            self.result = LookupResult(query=query, status="error", message=e.message)
            return self.result

        customers = [Customer.model_validate(item) for item in data.get("items") or []]
        self.result = LookupResult(
            query=query,
            status="found" if customers else "not_found",
            customers=customers,
        )
        return self.result

    def submit(self, query: str) -> asyncio.Task:
        """Debounced `search`; the returned task resolves to the LookupResult."""
        self.result = LookupResult(query=query.strip(), status="searching" if query.strip() else "idle")
        return self.debouncer.call(self.search, query)

    async def lookup(self, query: str) -> LookupResult:
        """Submit `query` and wait for it to settle.

        A call overtaken by a newer submit returns the current result, which
        belongs to the newer query.
        """
        task = self.submit(query)
        await asyncio.wait([task])
        if task.cancelled():
            logger.debug(f"Customer lookup for {query.strip()!r} superseded")
            return self.result
        return task.result()

    async def close(self) -> None:
        await self.debouncer.close()
