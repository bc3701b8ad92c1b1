# ============================================
#     Relay — Runtime Global State
# ============================================
# Process-wide singletons. Only socket handlers and the background tasks
# they start mutate these; eventlet runs them one at a time.

from dataclasses import dataclass

from relay.config import SLOW_MODE_ENABLED, SLOW_MODE_INTERVAL_SECONDS
from relay.registry import Registry
from relay.history import ChatHistory
from relay.scheduler import Countdowns


@dataclass
class ModerationState:
    temp_disable_active: bool = False
    slow_mode_enabled: bool = SLOW_MODE_ENABLED
    slow_mode_interval: float = SLOW_MODE_INTERVAL_SECONDS


# Connected sessions, pending password dialogs
registry = Registry()

# Global switches (never persisted)
moderation = ModerationState()

# ChatEvent log
history = ChatHistory()

# Kick / clear / disable / shutdown countdowns
countdowns = Countdowns()

# Called with restart=True/False once a shutdown countdown completes.
# app.py installs the real one.
shutdown_hook = None


def reset():
    """Back to a fresh process (in-memory only)."""
    countdowns.cancel_all()
    registry.clear()
    history.reset()

    moderation.temp_disable_active = False
    moderation.slow_mode_enabled = SLOW_MODE_ENABLED
    moderation.slow_mode_interval = SLOW_MODE_INTERVAL_SECONDS
