# ============================================
#   Relay — Broadcast / history sink
# ============================================

import relay.state as state
from relay.history import ChatEvent
from relay.logger import log_warning


def publish(socketio, event: ChatEvent):
    """
    Append, persist, broadcast. A failed write is already logged by
    storage and does not stop delivery.
    """
    if not state.history.append(event):
        log_warning("broadcast", "History not persisted; delivering anyway.")
    socketio.emit("chat_event", event.to_dict())


def broadcast_system_message(socketio, text: str):
    publish(socketio, ChatEvent.system(text))


def send_private_system_message(socketio, sid, text: str):
    socketio.emit("private_chat_event", ChatEvent.system(text).to_dict(), to=sid)


def emit_presence(socketio):
    socketio.emit("presence_update", state.registry.presence())


def notify_reserved(socketio, text: str, exclude=None):
    """Private notice to the reserved identity, if it is connected."""
    reserved = state.registry.reserved_session()
    if reserved is None or reserved.connection_id == exclude:
        return
    send_private_system_message(socketio, reserved.connection_id, text)


def announce_join(socketio, session):
    socketio.emit(
        "identity_accepted",
        {
            "name": session.original_name,
            "color": session.color,
            "avatar": session.avatar,
            "is_admin": session.is_reserved,
        },
        to=session.connection_id,
    )
    broadcast_system_message(socketio, f"{session.original_name} has joined the chat.")
    emit_presence(socketio)
