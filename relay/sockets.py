# ============================================
#   Relay — Socket.IO Handlers
# ============================================

import time

from flask import request
from flask_socketio import emit

import relay.state as state
from relay.broadcast import (
    announce_join,
    broadcast_system_message,
    emit_presence,
)
from relay.config import DEFAULT_COLOR
from relay.errors import RelayError
from relay.pipeline import admit_message, admit_private, admit_rename
from relay.logger import log_info, log_warning, log_exception


def _field(data, key, default=None):
    if isinstance(data, dict):
        return data.get(key, default)
    return default


def _avatar_for(name, avatar) -> str:
    if isinstance(avatar, str) and avatar.strip():
        return avatar.strip()[:2]
    name = str(name or "").strip()
    return name[:1].upper() if name else "?"


def register_handlers(socketio):

    # -----------------------------------------
    # CONNECT
    # -----------------------------------------
    @socketio.on("connect", namespace="/")
    def on_connect():
        emit("chat_history", state.history.snapshot())
        emit("disable_state", state.moderation.temp_disable_active)

        if state.moderation.temp_disable_active:
            emit("disable_on")

        log_info("sockets", f"Client connected: sid={request.sid}")

    # -----------------------------------------
    # REGISTER IDENTITY
    # -----------------------------------------
    @socketio.on("register_identity", namespace="/")
    def on_register(data):
        sid = request.sid
        name = _field(data, "name")
        color = _field(data, "color") or DEFAULT_COLOR
        avatar = _avatar_for(name, _field(data, "avatar"))

        try:
            registry = state.registry

            if registry.is_reserved_name(name):
                pending = registry.begin_password_challenge(sid, name, color, avatar)
                emit("password_required", {"name": pending.name, "attempt": pending.attempt}, to=sid)
                log_info("sockets", f"Password challenge opened for {pending.name} (sid={sid}).")
                return

            if state.moderation.temp_disable_active:
                emit("identity_rejected", {"msg": "❌ Chat is temporarily disabled."}, to=sid)
                return

            session = registry.register(sid, name, color, avatar, time.time())

        except RelayError as err:
            emit("identity_rejected", {"msg": err.message}, to=sid)
            log_warning("sockets", f"Registration rejected (sid={sid}): {err.message}")
            return
        except Exception:
            log_exception("sockets", f"Error registering sid={sid}")
            return

        announce_join(socketio, session)
        log_info("sockets", f"👤 {session.original_name} joined")

    # -----------------------------------------
    # CHAT MESSAGE
    # -----------------------------------------
    @socketio.on("chat_message", namespace="/")
    def on_chat_message(data):
        text = data if isinstance(data, str) else _field(data, "text")
        try:
            admit_message(socketio, request.sid, text)
        except Exception:
            log_exception("sockets", f"Error handling chat message from sid={request.sid}")

    # -----------------------------------------
    # PRIVATE MESSAGE
    # -----------------------------------------
    @socketio.on("private_message", namespace="/")
    def on_private_message(data):
        try:
            admit_private(
                socketio,
                request.sid,
                _field(data, "recipient"),
                _field(data, "text"),
            )
        except Exception:
            log_exception("sockets", f"Error handling private message from sid={request.sid}")

    # -----------------------------------------
    # TYPING
    # -----------------------------------------
    @socketio.on("typing", namespace="/")
    def on_typing(is_typing):
        session = state.registry.find(request.sid)
        if session is None or session.is_muted or state.moderation.temp_disable_active:
            return

        emit(
            "typing_indicator",
            {"user": session.display_name, "isTyping": bool(is_typing)},
            broadcast=True,
            include_self=False,
        )

    # -----------------------------------------
    # RENAME
    # -----------------------------------------
    @socketio.on("rename", namespace="/")
    def on_rename(data):
        new_name = data if isinstance(data, str) else _field(data, "name")
        try:
            admit_rename(socketio, request.sid, new_name)
        except Exception:
            log_exception("sockets", f"Error renaming sid={request.sid}")

    # -----------------------------------------
    # DISCONNECT
    # -----------------------------------------
    @socketio.on("disconnect", namespace="/")
    def on_disconnect(*_args):
        sid = request.sid
        log_info("sockets", f"Client disconnected: sid={sid}")

        state.countdowns.cancel_target(sid)
        session = state.registry.remove(sid)
        if session is None:
            return

        broadcast_system_message(socketio, f"{session.original_name} has left the chat.")
        emit_presence(socketio)
        log_info("sockets", f"❌ Disconnected: {session.original_name}")
