"""Undo window tests."""

import asyncio

import pytest

from beautydesk.errors import PlatformUnavailable, UndoExpired
from beautydesk.undo import UndoManager


class Recorder:
    def __init__(self):
        self.restored: list[str] = []
        self.finalized: list[str] = []

    def hooks(self, item: str):
        async def restore():
            self.restored.append(item)

        async def finalize():
            self.finalized.append(item)

        return restore, finalize


@pytest.mark.asyncio
class TestUndoManager:

    async def test_second_delete_replaces_first_window(self):
        recorder = Recorder()
        undo = UndoManager("customers", window_seconds=10)

        await undo.begin("A", *recorder.hooks("A"))
        first = undo.window
        await undo.begin("B", *recorder.hooks("B"))

        assert undo.current == "B"
        assert recorder.finalized == ["A"]
        await asyncio.sleep(0)
        assert first.task.cancelled()

        assert await undo.undo() == "B"
        assert recorder.restored == ["B"]
        assert undo.current is None
        await undo.close()

    async def test_undo_without_window(self):
        undo = UndoManager("products", window_seconds=10)
        with pytest.raises(UndoExpired):
            await undo.undo()

    async def test_undo_twice(self):
        recorder = Recorder()
        undo = UndoManager("products", window_seconds=10)
        await undo.begin("A", *recorder.hooks("A"))
        await undo.undo()
        with pytest.raises(UndoExpired):
            await undo.undo()
        assert recorder.restored == ["A"]

    @pytest.mark.slow
    async def test_window_expires_and_finalizes(self):
        recorder = Recorder()
        undo = UndoManager("customers", window_seconds=0.01)
        await undo.begin("A", *recorder.hooks("A"))

        await asyncio.sleep(0.05)

        assert undo.current is None
        assert recorder.finalized == ["A"]
        with pytest.raises(UndoExpired):
            await undo.undo()

    @pytest.mark.slow
    async def test_expiry_after_undo_is_a_no_op(self):
        recorder = Recorder()
        undo = UndoManager("customers", window_seconds=0.01)
        await undo.begin("A", *recorder.hooks("A"))
        await undo.undo()

        await asyncio.sleep(0.05)

        assert recorder.finalized == []

    @pytest.mark.slow
    async def test_expiry_during_slow_restore_does_not_finalize(self):
        finalized = []

        async def restore():
            await asyncio.sleep(0.1)

        async def finalize():
            finalized.append("A")

        undo = UndoManager("customers", window_seconds=0.05)
        await undo.begin("A", restore, finalize)
        await asyncio.sleep(0.01)

        assert await undo.undo() == "A"
        await asyncio.sleep(0.1)

        assert finalized == []
        assert undo.current is None

    async def test_failed_restore_keeps_window_open(self):
        undo = UndoManager("customers", window_seconds=10)

        async def restore():
            raise PlatformUnavailable()

        await undo.begin("A", restore)
        with pytest.raises(PlatformUnavailable):
            await undo.undo()
        assert undo.current == "A"
        await undo.close()

    async def test_close_cancels_timer(self):
        recorder = Recorder()
        undo = UndoManager("customers", window_seconds=10)
        window = await undo.begin("A", *recorder.hooks("A"))
        await undo.close()
        assert window.task.cancelled()
        assert undo.current is None
        assert recorder.finalized == []
