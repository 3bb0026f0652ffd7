import itertools
from typing import Any, Callable

_call_ids = itertools.count(1)


class ScheduledCall:
    """Handle for one pending single-shot callback."""

    def __init__(self, delay: float, label: str = ''):
        self.id = next(_call_ids)
        self.delay = delay
        self.label = label
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def __repr__(self):
        return f"<ScheduledCall {self.id} {self.label} delay={self.delay}s pending={self.pending}>"


class SocketIOScheduler:
    """Runs delayed callbacks as Socket.IO background tasks.

    The callback runs inside an app context so it can use the database, and
    only if its handle was not cancelled while sleeping.
    """

    def __init__(self, socketio, app):
        self.socketio = socketio
        self.app = app

    def call_later(self, delay: float, callback: Callable[..., Any], *args, label: str = '') -> ScheduledCall:
        handle = ScheduledCall(delay, label)
        self.socketio.start_background_task(self._worker, handle, callback, args)
        return handle

    def _sleep(self, handle: ScheduledCall) -> None:
        # heartbeat sleep loop if enabled
        try:
            hb = float(self.app.config.get('TIMER_HEARTBEAT_SEC', 0))
        except (TypeError, ValueError):
            hb = 0
        if hb > 0:
            slept = 0.0
            while slept < handle.delay and not handle.cancelled:
                step = min(hb, handle.delay - slept)
                self.socketio.sleep(step)
                slept += step
                self.app.logger.info(
                    f"[timer-heartbeat] call={handle.id} label={handle.label} remaining={max(0.0, handle.delay - slept)}s"
                )
        else:
            self.socketio.sleep(handle.delay)

    def _worker(self, handle: ScheduledCall, callback, args) -> None:
        self._sleep(handle)
        if handle.cancelled:
            self.app.logger.info(f"[timer-cancelled] call={handle.id} label={handle.label}")
            return
        handle.fired = True
        with self.app.app_context():
            try:
                callback(*args)
            except Exception:
                self.app.logger.exception(f"[timer-error] call={handle.id} label={handle.label}")
