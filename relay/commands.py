# ============================================
#   Relay — Privileged command interpreter
#   "server init <subcommand> [args]"
# ============================================

import math
from dataclasses import dataclass
from typing import Union

import relay.config as config
import relay.state as state
from relay import privilege
from relay.broadcast import (
    broadcast_system_message,
    send_private_system_message,
    notify_reserved,
)
from relay.errors import UserRejected, InputInvalid, LookupFailed
from relay.storage import save_credential
from relay.logger import log_info, log_warning, log_exception


# =====================================================
#   COMMAND VARIANTS
# =====================================================

@dataclass(frozen=True)
class SlowModeToggle:
    enabled: bool


@dataclass(frozen=True)
class SlowModeInterval:
    seconds: float


@dataclass(frozen=True)
class SetTempDisable:
    disabled: bool


@dataclass(frozen=True)
class ClearHistory:
    pass


@dataclass(frozen=True)
class Kick:
    name: str


@dataclass(frozen=True)
class Ban:
    name: str


@dataclass(frozen=True)
class Unban:
    name: str


@dataclass(frozen=True)
class Block:
    name: str


@dataclass(frozen=True)
class ChangePassword:
    secret: str


@dataclass(frozen=True)
class Broadcast:
    text: str


@dataclass(frozen=True)
class Shutdown:
    restart: bool


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Unknown:
    text: str


Command = Union[
    SlowModeToggle, SlowModeInterval, SetTempDisable, ClearHistory,
    Kick, Ban, Unban, Block, ChangePassword, Broadcast, Shutdown, Help, Unknown,
]

_TARGETED = {"kick": Kick, "ban": Ban, "unban": Unban, "block": Block}


# =====================================================
#   PARSER
# =====================================================

def _usage(line: str) -> InputInvalid:
    return InputInvalid(f"Usage: {config.ELEVATION_PHRASE} {line}")


def parse_command(text: str) -> Command:
    """
    Parse privileged text into a command variant.
    Keywords are case-insensitive; arguments keep their case.
    Raises InputInvalid for a known keyword with bad arguments.
    """
    parts = str(text or "").split(None, 2)
    rest = parts[2].strip() if len(parts) > 2 else ""

    words = rest.split(None, 1)
    keyword = words[0].lower() if words else ""
    args = words[1].strip() if len(words) > 1 else ""

    if keyword == "slowmode":
        if args.lower() == "on":
            return SlowModeToggle(True)
        if args.lower() == "off":
            return SlowModeToggle(False)
        if not args:
            raise _usage("slowmode on|off|<seconds>")
        try:
            seconds = float(args)
        except ValueError:
            raise InputInvalid(f"'{args}' is not a valid number of seconds.")
        if not math.isfinite(seconds) or seconds <= 0:
            raise InputInvalid("Slow mode interval must be a positive number of seconds.")
        return SlowModeInterval(seconds)

    if keyword == "disable":
        return SetTempDisable(True)

    if keyword == "enable":
        return SetTempDisable(False)

    if keyword == "clear":
        return ClearHistory()

    if keyword in _TARGETED:
        if not args:
            raise _usage(f"{keyword} <name>")
        return _TARGETED[keyword](args)

    if keyword == "password":
        if not args:
            raise InputInvalid("Password cannot be empty.")
        return ChangePassword(args)

    if keyword == "broadcast":
        if not args:
            raise InputInvalid("Broadcast message cannot be empty.")
        if len(args) > config.MAX_MESSAGE_LENGTH:
            raise InputInvalid(f"Broadcast too long ({len(args)} chars).")
        return Broadcast(args)

    if keyword in ("shutdown", "restart"):
        return Shutdown(restart=keyword == "restart")

    if keyword == "help":
        return Help()

    return Unknown(rest)


# =====================================================
#   HELPERS
# =====================================================

def _require_reserved(actor):
    if not actor.is_reserved:
        raise UserRejected(f"❌ Only {state.registry.reserved_name} can use this command.")


def _resolve_target(actor, name: str):
    target = state.registry.find_by_name(name)
    if target is None:
        raise LookupFailed(f"User '{name}' not found.")
    if target.connection_id == actor.connection_id:
        raise UserRejected("You cannot target yourself.")
    if target.is_reserved:
        raise UserRejected(f"You cannot moderate {target.original_name}.")
    return target


def _send_to(socketio, connection_id, text: str):
    """Private notice, skipped if the connection is gone."""
    if state.registry.find(connection_id) is not None:
        send_private_system_message(socketio, connection_id, text)


# =====================================================
#   SLOW MODE
# =====================================================

def cmd_slowmode_toggle(socketio, actor, command: SlowModeToggle):
    state.moderation.slow_mode_enabled = command.enabled

    if command.enabled:
        broadcast_system_message(socketio, "⏳ Slow mode has been enabled.")
        log_info("commands", f"Slow mode enabled by {actor.original_name}")
        return "enabled slow mode"

    broadcast_system_message(socketio, "🚀 Slow mode has been disabled.")
    log_info("commands", f"Slow mode disabled by {actor.original_name}")
    return "disabled slow mode"


def cmd_slowmode_interval(socketio, actor, command: SlowModeInterval):
    state.moderation.slow_mode_interval = command.seconds
    send_private_system_message(
        socketio,
        actor.connection_id,
        f"⏳ Slow mode interval set to {command.seconds:g} seconds.",
    )
    log_info("commands", f"Slow mode interval = {command.seconds:g}s ({actor.original_name})")
    return f"set the slow mode interval to {command.seconds:g}s"


# =====================================================
#   TEMP DISABLE
# =====================================================

def _apply_disable(socketio):
    state.moderation.temp_disable_active = True
    socketio.emit("disable_on")
    socketio.emit("disable_state", True)
    log_warning("commands", "Chat temporarily disabled.")


def cmd_temp_disable(socketio, actor, command: SetTempDisable):
    moderation = state.moderation

    if not command.disabled:
        pending = state.countdowns.cancel(("disable",))
        if not moderation.temp_disable_active and not pending:
            raise UserRejected("Chat is not disabled.")

        moderation.temp_disable_active = False
        socketio.emit("disable_off")
        socketio.emit("disable_state", False)
        broadcast_system_message(socketio, "✅ Chat has been re-enabled.")
        log_info("commands", f"Chat re-enabled by {actor.original_name}")
        return "re-enabled chat"

    if moderation.temp_disable_active:
        raise UserRejected("Chat is already disabled.")

    delay = config.DISABLE_DELAY_SECONDS
    started = state.countdowns.start(
        socketio,
        ("disable",),
        steps=1,
        interval=delay,
        on_tick=lambda _n: broadcast_system_message(
            socketio, f"⚠️ Chat will be temporarily disabled in {delay:g} seconds."
        ),
        on_done=lambda: _apply_disable(socketio),
    )
    if started is None:
        raise UserRejected("Chat is already being disabled.")

    log_info("commands", f"Temp disable scheduled by {actor.original_name} ({delay:g}s)")
    return "temporarily disabled chat"


# =====================================================
#   CLEAR HISTORY
# =====================================================

def _finish_clear(socketio):
    state.history.clear()
    socketio.emit("history_cleared")
    log_info("commands", "Chat history cleared.")


def cmd_clear(socketio, actor, command: ClearHistory):
    started = state.countdowns.start(
        socketio,
        ("clear",),
        steps=config.CLEAR_COUNTDOWN_STEPS,
        interval=config.COUNTDOWN_SECONDS,
        on_tick=lambda n: broadcast_system_message(
            socketio, f"🧹 Chat history will be cleared in {n}..."
        ),
        on_done=lambda: _finish_clear(socketio),
    )
    if started is None:
        raise UserRejected("A history clear is already in progress.")

    log_info("commands", f"History clear started by {actor.original_name}")
    return "cleared the chat history"


# =====================================================
#   KICK / BAN / UNBAN / BLOCK
# =====================================================

def _finish_kick(socketio, target_id):
    target = state.registry.find(target_id)
    if target is None:
        return

    target.kicked = True
    send_private_system_message(socketio, target_id, "❌ You have been kicked and cannot send messages.")
    broadcast_system_message(socketio, f"👢 {target.original_name} has been kicked.")
    log_info("commands", f"Kicked '{target.original_name}'")


def cmd_kick(socketio, actor, command: Kick):
    target = _resolve_target(actor, command.name)
    if target.kicked:
        raise UserRejected(f"{target.original_name} is already kicked.")

    target_id = target.connection_id
    started = state.countdowns.start(
        socketio,
        ("kick", target_id),
        steps=config.KICK_COUNTDOWN_STEPS,
        interval=config.COUNTDOWN_SECONDS,
        on_tick=lambda n: _send_to(socketio, target_id, f"⚠️ You will be kicked in {n}..."),
        on_done=lambda: _finish_kick(socketio, target_id),
    )
    if started is None:
        raise UserRejected(f"A kick for {target.original_name} is already in progress.")

    send_private_system_message(socketio, actor.connection_id, f"Kicking {target.original_name}...")
    return f"kicked {target.original_name}"


def cmd_ban(socketio, actor, command: Ban):
    target = _resolve_target(actor, command.name)

    state.countdowns.cancel(("kick", target.connection_id))
    target.kicked = True
    target.fully_banned = True

    send_private_system_message(
        socketio, target.connection_id, "🚫 You have been banned and cannot send messages."
    )
    broadcast_system_message(socketio, f"🚫 {target.original_name} has been banned.")
    log_info("commands", f"Banned '{target.original_name}' (by {actor.original_name})")
    return f"banned {target.original_name}"


def cmd_unban(socketio, actor, command: Unban):
    target = _resolve_target(actor, command.name)

    state.countdowns.cancel(("kick", target.connection_id))
    target.kicked = False
    target.fully_banned = False
    privilege.revoke(target)

    send_private_system_message(socketio, target.connection_id, "✅ You can send messages again.")
    send_private_system_message(socketio, actor.connection_id, f"{target.original_name} has been unbanned.")
    log_info("commands", f"Unbanned '{target.original_name}' (by {actor.original_name})")
    return f"unbanned {target.original_name}"


def cmd_block(socketio, actor, command: Block):
    _require_reserved(actor)
    target = _resolve_target(actor, command.name)

    privilege.block(target)

    send_private_system_message(
        socketio, actor.connection_id, f"🔒 {target.original_name} can no longer gain admin access."
    )
    log_info("commands", f"Blocked '{target.original_name}' from admin access")
    return f"blocked {target.original_name} from admin access"


# =====================================================
#   PASSWORD / BROADCAST
# =====================================================

def cmd_password(socketio, actor, command: ChangePassword):
    _require_reserved(actor)

    try:
        save_credential(command.secret)
    except (OSError, RuntimeError):
        log_exception("commands", "Failed to persist the new password")
        raise UserRejected("❌ Could not update the password.")

    send_private_system_message(socketio, actor.connection_id, "🔑 Password updated.")
    return "changed the password"


def cmd_broadcast(socketio, actor, command: Broadcast):
    broadcast_system_message(socketio, f"📢 {command.text}")
    log_info("commands", f"Broadcast by {actor.original_name}: {command.text[:80]}")
    return f"broadcast: {command.text}"


# =====================================================
#   SHUTDOWN / RESTART
# =====================================================

def _finish_shutdown(socketio, restart: bool):
    socketio.emit("shutdown_initiated", {"restart": restart})
    log_warning("commands", f"Server {'restart' if restart else 'shutdown'} initiated.")

    hook = state.shutdown_hook
    if hook is None:
        log_warning("commands", "No shutdown hook installed; staying up.")
        return
    hook(restart)


def cmd_shutdown(socketio, actor, command: Shutdown):
    verb = "restarting" if command.restart else "shutting down"

    started = state.countdowns.start(
        socketio,
        ("shutdown",),
        steps=config.SHUTDOWN_COUNTDOWN_STEPS,
        interval=config.COUNTDOWN_SECONDS,
        on_tick=lambda n: broadcast_system_message(socketio, f"⚠️ Server {verb} in {n}..."),
        on_done=lambda: _finish_shutdown(socketio, command.restart),
    )
    if started is None:
        raise UserRejected("A shutdown is already in progress.")

    log_warning("commands", f"Server {verb} requested by {actor.original_name}")
    return "restarted the server" if command.restart else "shut down the server"


# =====================================================
#   HELP / UNKNOWN
# =====================================================

def cmd_help(socketio, actor, command: Help):
    p = config.ELEVATION_PHRASE
    base = (
        "Admin commands:\n"
        f"{p} slowmode on|off — toggle slow mode\n"
        f"{p} slowmode <seconds> — set slow mode interval\n"
        f"{p} disable | enable — temporarily disable chat\n"
        f"{p} clear — clear chat history\n"
        f"{p} kick <user>\n"
        f"{p} ban <user>\n"
        f"{p} unban <user>\n"
        f"{p} broadcast <message>\n"
        f"{p} shutdown | restart\n"
    )

    if actor.is_reserved:
        text = base + (
            f"\n{state.registry.reserved_name} only:\n"
            f"{p} block <user> — never allow admin access\n"
            f"{p} password <new password>\n"
        )
    else:
        text = base

    send_private_system_message(socketio, actor.connection_id, text)


def cmd_unknown(socketio, actor, command: Unknown):
    raise UserRejected(
        f"❓ Unknown command. Type '{config.ELEVATION_PHRASE} help' for the list."
    )


# =====================================================
#   DISPATCH
# =====================================================

_HANDLERS = {
    SlowModeToggle: cmd_slowmode_toggle,
    SlowModeInterval: cmd_slowmode_interval,
    SetTempDisable: cmd_temp_disable,
    ClearHistory: cmd_clear,
    Kick: cmd_kick,
    Ban: cmd_ban,
    Unban: cmd_unban,
    Block: cmd_block,
    ChangePassword: cmd_password,
    Broadcast: cmd_broadcast,
    Shutdown: cmd_shutdown,
    Help: cmd_help,
    Unknown: cmd_unknown,
}


def execute(socketio, actor, command: Command):
    """
    Run one authorized command. RelayError propagates to the caller.
    Successful actions by anyone but the reserved identity are audited
    to the reserved identity.
    """
    handler = _HANDLERS[type(command)]
    action = handler(socketio, actor, command)

    if action and not actor.is_reserved:
        notify_reserved(socketio, f"🛡️ {actor.original_name} {action}.")

    return action
