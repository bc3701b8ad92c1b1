# ============================================
#   Relay — Countdown tasks
#   One in-flight countdown per key, cancellable
# ============================================

from typing import Callable, Dict, Hashable, Optional

from relay.logger import log_info, log_exception


class Countdown:
    def __init__(self, key: Hashable, steps: int):
        self.key = key
        self.steps = steps
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class Countdowns:
    """
    Background countdowns keyed by e.g. ("kick", sid) or ("clear",).

    start() refuses a key that is already running instead of stacking a
    second timer. Steps tick down from `steps` to 1, sleeping `interval`
    seconds after each tick, then `on_done` runs unless cancelled.
    """

    def __init__(self):
        self._active: Dict[Hashable, Countdown] = {}

    def is_active(self, key: Hashable) -> bool:
        return key in self._active

    def start(
        self,
        socketio,
        key: Hashable,
        steps: int,
        interval: float,
        on_tick: Optional[Callable[[int], None]],
        on_done: Callable[[], None],
    ) -> Optional[Countdown]:
        if key in self._active:
            return None

        countdown = Countdown(key, steps)
        self._active[key] = countdown

        def _task():
            try:
                for remaining in range(steps, 0, -1):
                    if countdown.cancelled:
                        return
                    if on_tick is not None:
                        on_tick(remaining)
                    socketio.sleep(interval)

                # released before on_done so its effects may start a new one
                self._release(countdown)
                if not countdown.cancelled:
                    on_done()
            except Exception:
                log_exception("scheduler", f"Countdown {key!r} failed")
            finally:
                self._release(countdown)

        socketio.start_background_task(_task)
        log_info("scheduler", f"Countdown {key!r} started ({steps} x {interval}s).")
        return countdown

    def _release(self, countdown: Countdown):
        if self._active.get(countdown.key) is countdown:
            del self._active[countdown.key]

    def cancel(self, key: Hashable) -> bool:
        countdown = self._active.pop(key, None)
        if countdown is None:
            return False
        countdown.cancel()
        log_info("scheduler", f"Countdown {key!r} cancelled.")
        return True

    def cancel_target(self, connection_id) -> int:
        """Cancel every countdown whose key names `connection_id`."""
        keys = [k for k in self._active if isinstance(k, tuple) and connection_id in k[1:]]
        for key in keys:
            self.cancel(key)
        return len(keys)

    def cancel_all(self):
        for key in list(self._active):
            self.cancel(key)
