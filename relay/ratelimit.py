# ============================================
#   Relay — Slow mode (per-connection cooldown)
# ============================================


def check(session, now: float, moderation) -> bool:
    """
    Allow or throttle one ordinary message.

    A throttled message leaves the stored timestamp untouched, so the
    cooldown is measured from the last *accepted* message.
    """
    last = session.last_message_time

    if moderation.slow_mode_enabled and last is not None:
        if now - last < moderation.slow_mode_interval:
            return False

    session.last_message_time = now
    return True
