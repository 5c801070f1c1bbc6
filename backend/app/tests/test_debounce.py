# tests/test_debounce.py
import asyncio
import logging

from app.utils.debounce import Debouncer


def test_only_the_last_value_fires():
    fired = []

    async def callback(value):
        fired.append(value)

    async def scenario():
        debouncer = Debouncer(0.05, callback)
        for term in ("s", "sh", "shw"):
            debouncer.trigger(term)
        assert debouncer.pending
        await asyncio.sleep(0.2)
        assert not debouncer.pending

    asyncio.run(scenario())
    assert fired == ["shw"]


def test_cancel_drops_the_pending_value():
    fired = []

    async def callback(value):
        fired.append(value)

    async def scenario():
        debouncer = Debouncer(0.05, callback)
        debouncer.trigger("shw")
        debouncer.cancel()
        await asyncio.sleep(0.1)

    asyncio.run(scenario())
    assert fired == []


def test_failing_callback_is_logged(caplog):
    async def callback(value):
        raise RuntimeError("search failed")

    async def scenario():
        debouncer = Debouncer(0.01, callback)
        debouncer.trigger("shw")
        await asyncio.sleep(0.1)

    with caplog.at_level(logging.ERROR):
        asyncio.run(scenario())

    assert "search failed" in caplog.text
