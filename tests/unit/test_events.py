from __future__ import annotations

import asyncio
import logging

from interpreter_autoselect import EventEmitter


def test_listeners_run_in_order():
    emitter, seen = EventEmitter(), []
    emitter.subscribe(lambda value: seen.append(("first", value)))
    emitter.subscribe(lambda value: seen.append(("second", value)))
    emitter.fire(1)
    assert seen == [("first", 1), ("second", 1)]


def test_failing_listener_does_not_stop_others(caplog, mocker):
    caplog.set_level(logging.ERROR)
    emitter = EventEmitter("changed")
    failing = mocker.Mock(side_effect=ValueError("boom"))
    after = mocker.Mock()
    emitter.subscribe(failing)
    emitter.subscribe(after)
    emitter.fire()
    after.assert_called_once_with()
    assert "changed failed" in caplog.text


def test_disposable_unsubscribes(mocker):
    emitter = EventEmitter()
    listener = mocker.Mock()
    subscription = emitter.subscribe(listener)
    subscription()
    subscription.dispose()
    emitter.fire()
    listener.assert_not_called()
    assert len(emitter) == 0


def test_dispose_drops_all_listeners(mocker):
    emitter = EventEmitter()
    listener = mocker.Mock()
    emitter.subscribe(listener)
    emitter.dispose()
    emitter.fire()
    listener.assert_not_called()


def test_coroutine_listener_is_scheduled_on_the_running_loop():
    emitter, seen = EventEmitter(), []

    async def listener(value):
        await asyncio.sleep(0)
        seen.append(value)

    async def _run():
        emitter.subscribe(listener)
        emitter.fire(1)
        await emitter.wait_for_listeners()

    asyncio.run(_run())
    assert seen == [1]


def test_failing_coroutine_listener_is_logged(caplog):
    caplog.set_level(logging.ERROR)
    emitter = EventEmitter("changed")

    async def listener():
        msg = "boom"
        raise ValueError(msg)

    async def _run():
        emitter.subscribe(listener)
        emitter.fire()
        await emitter.wait_for_listeners()

    asyncio.run(_run())
    assert "changed failed" in caplog.text
    assert "boom" in caplog.text


def test_coroutine_listener_without_running_loop_is_logged(caplog, recwarn):
    caplog.set_level(logging.ERROR)
    emitter = EventEmitter("changed")

    async def listener():
        pass

    emitter.subscribe(listener)
    emitter.fire()
    assert "changed failed" in caplog.text
    assert not [w for w in recwarn if issubclass(w.category, RuntimeWarning)]
