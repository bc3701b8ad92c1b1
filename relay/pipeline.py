# ============================================
#   Relay — Message admission pipeline
# ============================================
# Every inbound chat message walks these gates in order; the first
# rejection sends a private "Server" reply and stops:
#
#   0. pending reserved-name password dialog
#   1. session lookup (unknown connection → dropped)
#   2. privileged phrase / commands (always consumed here)
#   3. temp disable
#   4. soft-kick / full ban
#   5. slow mode
#   6. activity timestamp
#   7. profanity
#   8. publish

import hmac
import time

import relay.state as state
from relay import privilege, ratelimit, content_filter, commands
from relay.privilege import ChallengeResult
from relay.broadcast import (
    publish,
    broadcast_system_message,
    send_private_system_message,
    emit_presence,
    notify_reserved,
    announce_join,
)
from relay.config import MAX_MESSAGE_LENGTH
from relay.errors import RelayError, UserRejected, InputInvalid, LookupFailed
from relay.history import ChatEvent
from relay.registry import validate_name
from relay.storage import load_credential
from relay.logger import log_info, log_warning, log_exception


# =====================================================
#   RESERVED IDENTITY PASSWORD DIALOG
# =====================================================

def password_matches(attempt: str) -> bool:
    try:
        expected = load_credential()
    except RuntimeError:
        log_exception("pipeline", "Reserved identity credential unavailable")
        return False

    if not expected:
        return False

    return hmac.compare_digest(
        str(attempt or "").strip().encode("utf-8"),
        expected.encode("utf-8"),
    )


def _handle_password_attempt(socketio, sid, pending, text, now):
    if password_matches(text):
        try:
            session = state.registry.register(
                sid, pending.name, pending.color, pending.avatar, now, reserved=True
            )
        except RelayError as err:
            state.registry.pending.pop(sid, None)
            socketio.emit("identity_rejected", {"msg": err.message}, to=sid)
            return

        privilege.grant(session, now)
        announce_join(socketio, session)
        log_info("pipeline", f"{session.original_name} authenticated (sid={sid}).")
        return

    if pending.attempt == 1:
        pending.attempt = 2
        socketio.emit(
            "password_required",
            {"name": pending.name, "attempt": 2, "msg": "❌ Incorrect password. One more try."},
            to=sid,
        )
        log_warning("pipeline", f"Wrong {pending.name} password (sid={sid}), retry offered.")
        return

    state.registry.refuse(sid)
    socketio.emit(
        "identity_rejected",
        {"msg": "❌ Incorrect password. Registration refused."},
        to=sid,
    )
    log_warning("pipeline", f"Wrong {pending.name} password twice (sid={sid}), refused.")


# =====================================================
#   PRIVILEGED TEXT
# =====================================================

def _handle_privileged(socketio, session, text, now):
    sid = session.connection_id

    if privilege.is_elevation_phrase(text):
        result = privilege.challenge(session, now)

        if result is ChallengeResult.BLOCKED:
            raise UserRejected("❌ Unauthorized.")

        if result is ChallengeResult.CHALLENGED:
            send_private_system_message(socketio, sid, "Ok")
            return

        if result is ChallengeResult.GRANTED:
            send_private_system_message(socketio, sid, "Temp Admin Granted")
            notify_reserved(socketio, f"🛡️ {session.original_name} was granted temp admin.", exclude=sid)
            log_info("pipeline", f"Temp admin granted to {session.original_name} (sid={sid}).")
        return

    if not privilege.is_granted(session):
        log_warning("pipeline", f"Unauthorized command from {session.original_name}: {text[:80]}")
        raise UserRejected("❌ Unauthorized.")

    commands.execute(socketio, session, commands.parse_command(text))


# =====================================================
#   GATES
# =====================================================

def _check_moderation(session):
    if state.moderation.temp_disable_active:
        raise UserRejected("❌ Chat is temporarily disabled.")

    if session.fully_banned:
        raise UserRejected("🚫 You have been banned and cannot send messages.")

    if session.kicked:
        raise UserRejected("❌ You have been kicked and cannot send messages.")


def _check_gates(session, text, now):
    _check_moderation(session)

    if len(text) > MAX_MESSAGE_LENGTH:
        raise InputInvalid(f"Message too long ({len(text)} chars).")

    if not ratelimit.check(session, now, state.moderation):
        raise UserRejected("⏳ Slow mode is enabled. Please wait before sending another message.")

    session.touch(now)

    if content_filter.contains_profanity(text):
        log_info("pipeline", f"Message blocked from {session.original_name}: {text[:80]}")
        raise UserRejected("❌ Your message was blocked due to profanity.")


def admit_message(socketio, sid, text, now=None):
    """
    Run one chat message through the pipeline.
    Returns the published ChatEvent, or None if nothing was published.
    """
    now = time.time() if now is None else now

    if not isinstance(text, str):
        return None

    pending = state.registry.pending_for(sid)
    if pending is not None:
        _handle_password_attempt(socketio, sid, pending, text, now)
        return None

    session = state.registry.find(sid)
    if session is None or not text.strip():
        return None

    try:
        if privilege.is_privileged_text(text):
            _handle_privileged(socketio, session, text, now)
            return None

        _check_gates(session, text, now)

    except RelayError as err:
        send_private_system_message(socketio, sid, err.message)
        return None

    event = ChatEvent(
        author=session.original_name,
        text=text,
        color=session.color,
        avatar=session.avatar,
        timestamp=now,
    )
    publish(socketio, event)
    log_info("pipeline", f"💬 {session.original_name}: {text[:80]}")
    return event


# =====================================================
#   PRIVATE MESSAGES
# =====================================================

def admit_private(socketio, sid, recipient_name, text, now=None):
    """
    Deliver one private message. Same disable/kick/profanity gates as
    chat, no slow mode, nothing persisted.
    """
    now = time.time() if now is None else now

    sender = state.registry.find(sid)
    if sender is None or not isinstance(text, str) or not text.strip():
        return None

    try:
        if state.moderation.temp_disable_active:
            raise UserRejected("❌ Chat is temporarily disabled.")

        if sender.is_muted:
            raise UserRejected("❌ You cannot send messages right now.")

        recipient = state.registry.find_by_name(recipient_name)
        if recipient is None:
            raise LookupFailed(f"User '{recipient_name}' not found.")

        if len(text) > MAX_MESSAGE_LENGTH:
            raise InputInvalid(f"Message too long ({len(text)} chars).")

        if content_filter.contains_profanity(text):
            raise UserRejected("❌ Your private message was blocked due to profanity.")

    except RelayError as err:
        send_private_system_message(socketio, sid, err.message)
        return None

    sender.touch(now)

    event = ChatEvent(
        author=sender.display_name,
        text=text,
        color=sender.color,
        avatar=sender.avatar,
        timestamp=now,
    )
    payload = event.to_dict()
    payload["private"] = True
    payload["to"] = recipient.original_name

    socketio.emit("private_chat_event", payload, to=recipient.connection_id)
    log_info("pipeline", f"📩 Private from {sender.original_name} to {recipient.original_name}")
    return event


# =====================================================
#   RENAME
# =====================================================

def admit_rename(socketio, sid, new_name, now=None):
    """
    Rename a registered session. The announcement lands in the public
    history, so it passes the same moderation and slow-mode gates as chat.
    Returns (old_name, new_name), or None if refused.
    """
    now = time.time() if now is None else now

    session = state.registry.find(sid)
    if session is None:
        return None

    try:
        _check_moderation(session)
        new_name = validate_name(new_name)

        if content_filter.contains_profanity(new_name):
            raise UserRejected("❌ That name was blocked due to profanity.")

        if not ratelimit.check(session, now, state.moderation):
            raise UserRejected("⏳ Slow mode is enabled. Please wait before renaming again.")

        old_name, final_name = state.registry.rename(sid, new_name)

    except RelayError as err:
        send_private_system_message(socketio, sid, err.message)
        return None

    session.touch(now)

    socketio.emit("identity_accepted", {"name": final_name}, to=sid)
    broadcast_system_message(socketio, f"{old_name} is now known as {final_name}.")
    emit_presence(socketio)
    log_info("pipeline", f"✏️ {old_name} is now {final_name}")
    return old_name, final_name
