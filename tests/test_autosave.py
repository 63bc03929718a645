import asyncio

import pytest

from patient_actors.core.autosave import Debouncer, SessionAutosaver
from patient_actors.core.errors import UnauthenticatedError
from patient_actors.services.session_manager import SessionManager


def test_debouncer_coalesces_bursts():
    calls = []

    async def scenario():
        debouncer = Debouncer(0.05, calls.append)
        for value in range(5):
            debouncer.trigger(value)
        assert debouncer.pending
        await asyncio.sleep(0.15)
        assert not debouncer.pending

    asyncio.run(scenario())
    assert calls == [4]


def test_debouncer_flush_runs_immediately():
    calls = []

    async def scenario():
        debouncer = Debouncer(10, calls.append)
        debouncer.trigger("latest")
        await debouncer.flush()
        assert not debouncer.pending
        # Nothing left for a second flush
        await debouncer.flush()

    asyncio.run(scenario())
    assert calls == ["latest"]


def test_debouncer_cancel_drops_pending_call():
    calls = []

    async def scenario():
        debouncer = Debouncer(0.01, calls.append)
        debouncer.trigger("dropped")
        await debouncer.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert calls == []


def test_debouncer_awaits_async_callbacks():
    calls = []

    async def callback(value):
        await asyncio.sleep(0)
        calls.append(value)

    async def scenario():
        debouncer = Debouncer(0.01, callback)
        debouncer.trigger("async")
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert calls == ["async"]


def test_debouncer_flush_waits_for_running_save():
    saved = []

    async def save(value):
        await asyncio.sleep(0.05)
        saved.append(value)

    async def scenario():
        debouncer = Debouncer(0.01, save)
        debouncer.trigger("final transcript")
        # Countdown is over, the save is in progress
        await asyncio.sleep(0.03)
        await debouncer.flush()
        assert saved == ["final transcript"]

    asyncio.run(scenario())


def test_debouncer_trigger_during_running_save_keeps_both():
    saved = []

    async def save(value):
        await asyncio.sleep(0.05)
        saved.append(value)

    async def scenario():
        debouncer = Debouncer(0.01, save)
        debouncer.trigger("first")
        await asyncio.sleep(0.03)
        debouncer.trigger("second")
        await asyncio.sleep(0.2)

    asyncio.run(scenario())
    assert saved == ["first", "second"]


def test_debouncer_cancel_does_not_interrupt_running_save():
    saved = []

    async def save(value):
        await asyncio.sleep(0.05)
        saved.append(value)

    async def scenario():
        debouncer = Debouncer(0.01, save)
        debouncer.trigger("running")
        await asyncio.sleep(0.03)
        await debouncer.cancel()
        assert not debouncer.pending

    asyncio.run(scenario())
    assert saved == ["running"]


def test_debouncer_keeps_background_errors():
    def boom(_):
        raise RuntimeError("store unavailable")

    async def scenario():
        debouncer = Debouncer(0.01, boom)
        debouncer.trigger("x")
        await asyncio.sleep(0.05)
        return debouncer

    debouncer = asyncio.run(scenario())
    assert isinstance(debouncer.last_error, RuntimeError)


def test_autosaver_creates_then_replaces(db, users, actor):
    manager = SessionManager(db)
    turn_one = [{"role": "user", "content": "Hello"}]
    turn_two = turn_one + [{"role": "assistant", "content": "Hi doctor"}]

    async def scenario():
        saver = SessionAutosaver(manager, users["student"], actor.id, delay=10)
        saver.update([])
        await saver.close()
        assert saver.session_id is None

        saver.update(turn_one)
        saver.update(turn_two)
        session_id = await saver.close()

        saver.update(turn_two + [{"role": "user", "content": "Where does it hurt?"}])
        await saver.close()
        return session_id

    session_id = asyncio.run(scenario())
    stored = manager.get_session(session_id, users["student"])
    assert stored.message_count == 3
    assert len(manager.list_student_sessions(users["student"])) == 1


def test_autosaver_refuses_guests(db, actor):
    with pytest.raises(UnauthenticatedError):
        SessionAutosaver(SessionManager(db), None, actor.id)
