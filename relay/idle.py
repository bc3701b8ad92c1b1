# ============================================
#     Relay — Idle sweep task
# ============================================

import time

import relay.state as state
from relay.broadcast import emit_presence
from relay.config import IDLE_SWEEP_SECONDS
from relay.logger import log_info, log_exception


def run_idle_sweep(socketio, now=None) -> bool:
    """
    One sweep. At most one presence broadcast, however many sessions flipped.
    """
    now = time.time() if now is None else now

    changed = state.registry.sweep_idle(now)
    if changed:
        emit_presence(socketio)
    return changed


def start_idle_sweep(socketio):
    """
    Start the recurring idle sweep background task.
    """
    log_info("idle", f"Starting idle sweep task (every {IDLE_SWEEP_SECONDS}s).")

    def _task():
        while True:
            try:
                socketio.sleep(IDLE_SWEEP_SECONDS)
                run_idle_sweep(socketio)
            except Exception as e:
                log_exception("idle", f"Error during idle sweep: {e}")

    socketio.start_background_task(_task)
