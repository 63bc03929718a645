"""
Debounced persistence for in-progress conversations.

Every chat turn changes the transcript; saving each change would hammer the
store. Debouncer coalesces bursts of triggers into one call after a quiet
period, and SessionAutosaver uses it to persist the cumulative transcript of
an authenticated conversation.
"""
import asyncio
import inspect
import logging
from contextlib import suppress
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union

from .constants import DEFAULT_AUTOSAVE_DEBOUNCE_SECONDS
from .errors import UnauthenticatedError

logger = logging.getLogger(__name__)

Callback = Callable[..., Union[None, Awaitable[None]]]


class Debouncer:
    """
    Run a callback once the triggers stop for `delay` seconds.

    Only the arguments of the latest trigger are used. Must be used from
    inside a running event loop. Only the countdown is ever cancelled; a
    callback that has started runs to completion and later calls wait for it.
    """

    def __init__(self, delay: float, callback: Callback):
        self.delay = max(0.0, delay)
        self.callback = callback
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._args: Optional[Tuple[tuple, dict]] = None
        self.last_error: Optional[BaseException] = None

    @property
    def pending(self) -> bool:
        return self._args is not None

    def trigger(self, *args, **kwargs) -> None:
        """(Re)start the countdown with the given arguments"""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._args = (args, kwargs)
        self._timer = asyncio.get_running_loop().create_task(self._run_later())

    async def _run_later(self) -> None:
        await asyncio.sleep(self.delay)
        await self._wait_inflight()

        # Still cancellable up to here; from now on the call is in flight
        task = asyncio.current_task()
        self._timer, self._inflight = None, task
        try:
            await self._invoke()
        except Exception as e:
            # Nobody awaits this task, keep the error for inspection
            self.last_error = e
            logger.error(f"Debounced call failed: {e}", exc_info=True)
        finally:
            if self._inflight is task:
                self._inflight = None

    async def _invoke(self) -> None:
        if self._args is None:
            return
        args, kwargs = self._args
        self._args = None
        result = self.callback(*args, **kwargs)
        if inspect.isawaitable(result):
            await result

    async def flush(self) -> None:
        """Run the pending call now; errors propagate to the caller"""
        await self._cancel_timer()
        await self._wait_inflight()
        await self._invoke()

    async def cancel(self) -> None:
        """Drop the pending call and wait for one already running"""
        await self._cancel_timer()
        self._args = None
        await self._wait_inflight()

    async def _cancel_timer(self) -> None:
        task, self._timer = self._timer, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _wait_inflight(self) -> None:
        task = self._inflight
        if task is None or task.done() or task is asyncio.current_task():
            return
        # shield: cancelling the waiter must not cancel the running save
        await asyncio.shield(task)


class SessionAutosaver:
    """
    Persist a student's conversation with debounced saves.

    The first save that has at least one message creates the session; every
    later save replaces the stored transcript with the full cumulative list.
    Guests have no identity and cannot use it.
    """

    def __init__(
        self,
        session_manager,
        user,
        patient_actor_id: str,
        delay: float = DEFAULT_AUTOSAVE_DEBOUNCE_SECONDS,
    ):
        if user is None:
            raise UnauthenticatedError("Guest conversations are not saved")
        self.session_manager = session_manager
        self.user = user
        self.patient_actor_id = patient_actor_id
        self.session_id: Optional[str] = None
        self._debouncer = Debouncer(delay, self._save)

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def update(self, messages: List[Any]) -> None:
        """Record the latest full transcript and schedule a save"""
        self._debouncer.trigger(list(messages))

    def _save(self, messages: List[Any]) -> None:
        if not messages:
            return
        if self.session_id is None:
            session = self.session_manager.start_session(self.user, self.patient_actor_id, messages)
            self.session_id = session.id
        else:
            self.session_manager.append_messages(self.session_id, self.user, messages)

    async def close(self) -> Optional[str]:
        """Flush the pending save; returns the session id, if any"""
        await self._debouncer.flush()
        return self.session_id
