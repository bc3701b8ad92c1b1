# ============================================
#     Relay — Connection Registry
#     Sessions, identity uniqueness, presence, idle state
# ============================================

from dataclasses import dataclass
from typing import Dict, List, Optional

from relay.config import (
    RESERVED_NAME,
    MAX_NAME_LENGTH,
    IDLE_SUFFIX,
    IDLE_TIMEOUT_SECONDS,
)
from relay.errors import UserRejected, InputInvalid
from relay.privilege import PrivilegeRecord
from relay.logger import log_info


@dataclass
class Session:
    """
    Live state of one connection. Moderation flags live here so they
    survive a rename and vanish with the connection.
    """
    connection_id: str
    original_name: str
    color: str
    avatar: str
    last_activity: float
    is_idle: bool = False
    is_reserved: bool = False
    admin_blocked: bool = False
    kicked: bool = False
    fully_banned: bool = False
    last_message_time: Optional[float] = None
    privilege: Optional[PrivilegeRecord] = None

    @property
    def display_name(self) -> str:
        if self.is_idle:
            return f"{self.original_name}{IDLE_SUFFIX}"
        return self.original_name

    @property
    def is_muted(self) -> bool:
        return self.kicked or self.fully_banned

    def touch(self, now: float):
        self.last_activity = now

    def to_presence(self) -> dict:
        return {
            "username": self.display_name,
            "color": self.color,
            "avatar": self.avatar,
        }


@dataclass
class PendingRegistration:
    """Reserved-name registration waiting for its password (attempt 1 or 2)."""
    name: str
    color: str
    avatar: str
    attempt: int = 1


def validate_name(name) -> str:
    """
    Return the cleaned identity or raise InputInvalid.
        - 1 to MAX_NAME_LENGTH characters after stripping
        - no control characters
        - may not impersonate the idle marker
    """
    if not isinstance(name, str):
        raise InputInvalid("Please choose a name.")

    name = name.strip()
    if not name:
        raise InputInvalid("Please choose a name.")

    if len(name) > MAX_NAME_LENGTH:
        raise InputInvalid(f"Names are limited to {MAX_NAME_LENGTH} characters.")

    if any(not ch.isprintable() for ch in name):
        raise InputInvalid("Names cannot contain control characters.")

    if name.lower().endswith(IDLE_SUFFIX.strip()):
        raise InputInvalid("That name is not allowed.")

    return name


class Registry:
    """Active sessions keyed by connection id, in join order."""

    def __init__(self, reserved_name: str = RESERVED_NAME):
        self.reserved_name = reserved_name
        self.sessions: Dict[str, Session] = {}
        self.pending: Dict[str, PendingRegistration] = {}
        # Connections that failed the reserved-name password twice
        self.refused = set()

    # -----------------------------------------
    # LOOKUPS
    # -----------------------------------------
    def find(self, connection_id) -> Optional[Session]:
        return self.sessions.get(connection_id)

    def find_by_name(self, name) -> Optional[Session]:
        """Case-insensitive over both original and display names."""
        if not isinstance(name, str) or not name.strip():
            return None

        target = name.strip().lower()
        for session in self.sessions.values():
            if session.original_name.lower() == target or session.display_name.lower() == target:
                return session
        return None

    def reserved_session(self) -> Optional[Session]:
        for session in self.sessions.values():
            if session.is_reserved:
                return session
        return None

    def is_reserved_name(self, name) -> bool:
        return isinstance(name, str) and name.strip().lower() == self.reserved_name.lower()

    def presence(self) -> List[dict]:
        return [s.to_presence() for s in self.sessions.values()]

    def __len__(self):
        return len(self.sessions)

    # -----------------------------------------
    # IDENTITY
    # -----------------------------------------
    def unique_name(self, name: str, exclude: Optional[str] = None) -> str:
        """Append 2, 3, ... until no other session holds the name (case-insensitive)."""
        taken = {
            s.original_name.lower()
            for cid, s in self.sessions.items()
            if cid != exclude
        }
        taken.add(self.reserved_name.lower())

        candidate = name
        suffix = 2
        while candidate.lower() in taken:
            tag = str(suffix)
            candidate = f"{name[:MAX_NAME_LENGTH - len(tag)]}{tag}"
            suffix += 1
        return candidate

    def register(self, connection_id, name, color, avatar, now: float, reserved: bool = False) -> Session:
        if connection_id in self.sessions:
            raise UserRejected("You are already registered.")

        name = validate_name(name)

        if self.is_reserved_name(name):
            if not reserved:
                raise UserRejected(f"The name '{name}' is reserved.")
            if self.reserved_session() is not None:
                raise UserRejected(f"{self.reserved_name} is already connected.")
            final_name = self.reserved_name
        else:
            final_name = self.unique_name(name)

        session = Session(
            connection_id=connection_id,
            original_name=final_name,
            color=color,
            avatar=avatar,
            last_activity=now,
            is_reserved=reserved,
        )
        self.sessions[connection_id] = session
        self.pending.pop(connection_id, None)

        log_info("registry", f"Registered '{final_name}' (sid={connection_id}).")
        return session

    def begin_password_challenge(self, connection_id, name, color, avatar) -> PendingRegistration:
        if connection_id in self.sessions:
            raise UserRejected("You are already registered.")

        if connection_id in self.refused:
            raise UserRejected(f"Registration as {self.reserved_name} was refused.")

        if self.reserved_session() is not None:
            raise UserRejected(f"{self.reserved_name} is already connected.")

        # an open dialog keeps its attempt count
        pending = self.pending.get(connection_id)
        if pending is not None:
            return pending

        pending = PendingRegistration(name=self.reserved_name, color=color, avatar=avatar)
        self.pending[connection_id] = pending
        return pending

    def pending_for(self, connection_id) -> Optional[PendingRegistration]:
        return self.pending.get(connection_id)

    def refuse(self, connection_id):
        self.pending.pop(connection_id, None)
        self.refused.add(connection_id)

    def rename(self, connection_id, new_name):
        """Return (old_name, new_name)."""
        session = self.sessions.get(connection_id)
        if session is None:
            raise UserRejected("You are not registered.")

        if session.is_reserved:
            raise UserRejected(f"{self.reserved_name} cannot be renamed.")

        new_name = validate_name(new_name)
        if self.is_reserved_name(new_name):
            raise UserRejected(f"The name '{new_name}' is reserved.")

        old_name = session.original_name
        session.original_name = self.unique_name(new_name, exclude=connection_id)

        log_info("registry", f"Renamed '{old_name}' → '{session.original_name}'.")
        return old_name, session.original_name

    def remove(self, connection_id) -> Optional[Session]:
        self.pending.pop(connection_id, None)
        self.refused.discard(connection_id)
        return self.sessions.pop(connection_id, None)

    def clear(self):
        self.sessions.clear()
        self.pending.clear()
        self.refused.clear()

    # -----------------------------------------
    # IDLE CLASSIFICATION
    # -----------------------------------------
    def sweep_idle(self, now: float, timeout: float = IDLE_TIMEOUT_SECONDS) -> bool:
        """
        Flip sessions between idle and active.
        Returns True if at least one session changed.
        """
        changed = False

        for session in self.sessions.values():
            is_now_idle = now - session.last_activity > timeout

            if is_now_idle and not session.is_idle:
                session.is_idle = True
                log_info("registry", f"{session.original_name} is now idle")
                changed = True
            elif not is_now_idle and session.is_idle:
                session.is_idle = False
                log_info("registry", f"{session.original_name} is active again")
                changed = True

        return changed
