"""Soft delete with a single undo window.

A list (customers, products) owns one `UndoManager`. Deleting a record
opens a window; deleting another record before it expires closes the first
window and opens a new one, so at most one window per list is ever open
and undo always restores the most recent delete.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from beautydesk.config import settings
from beautydesk.errors import ConsoleError, UndoExpired

logger = logging.getLogger(__name__)

Hook = Callable[[], Awaitable[Any]]


@dataclass
class UndoWindow:
    item: Any
    restore: Hook
    finalize: Hook | None
    expires_at: datetime
    task: asyncio.Task | None = field(default=None, repr=False)


class UndoManager:

    def __init__(self, name: str, window_seconds: float | None = None):
        self.name = name
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.undo_window_seconds
        )
        self._window: UndoWindow | None = None

    @property
    def current(self) -> Any | None:
        return self._window.item if self._window else None

    @property
    def window(self) -> UndoWindow | None:
        return self._window

    async def _finalize(self, window: UndoWindow) -> None:
        if window.finalize is None:
            return
        try:
            await window.finalize()
        except ConsoleError as e:
            logger.warning(f"[{self.name}] finalize failed for {window.item!r}: {e.message}")

    async def _expire(self, window: UndoWindow) -> None:
        remaining = (window.expires_at - datetime.now(timezone.utc)).total_seconds()
        await asyncio.sleep(max(0.0, remaining))
        if self._window is window:
            self._window = None
            logger.debug(f"[{self.name}] undo window expired for {window.item!r}")
            await self._finalize(window)

    async def begin(self, item: Any, restore: Hook, finalize: Hook | None = None) -> UndoWindow:
        """Open a window for `item`, closing any window that is still open."""
        previous, self._window = self._window, None
        if previous is not None:
            if previous.task is not None:
                previous.task.cancel()
            logger.debug(f"[{self.name}] replacing undo window for {previous.item!r}")
            await self._finalize(previous)

        window = UndoWindow(
            item=item,
            restore=restore,
            finalize=finalize,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=self.window_seconds),
        )
        self._window = window
        window.task = asyncio.create_task(self._expire(window))
        return window

    async def undo(self) -> Any:
        """Restore the item in the open window.

        Raises:
            UndoExpired: no window is open.
            ConsoleError: the restore call failed; the window stays open.
        """
        window = self._window
        if window is None:
            raise UndoExpired()

        # Expiry must not finalize an item that is being restored.
        self._window = None
        if window.task is not None:
            window.task.cancel()
        try:
            await window.restore()
        except Exception:
            if self._window is None:
                self._window = window
                window.task = asyncio.create_task(self._expire(window))
            raise

        logger.info(f"[{self.name}] restored {window.item!r}")
        return window.item

    async def close(self) -> None:
        window, self._window = self._window, None
        if window is None or window.task is None:
            return
        window.task.cancel()
        try:
            await window.task
        except asyncio.CancelledError:
            pass
