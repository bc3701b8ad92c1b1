# ============================================
#   Relay — Privilege Ledger
#   UNCHALLENGED → CHALLENGED(t0) → GRANTED
# ============================================

from dataclasses import dataclass
from enum import Enum

from relay.config import ELEVATION_PHRASE, PRIVILEGE_WINDOW_SECONDS


class ChallengeResult(Enum):
    CHALLENGED = "challenged"
    GRANTED = "granted"
    ALREADY_GRANTED = "already_granted"
    BLOCKED = "blocked"


@dataclass
class PrivilegeRecord:
    first_challenge_time: float
    granted: bool = False


def _normalize(text: str) -> str:
    return " ".join(str(text or "").lower().split())


def is_elevation_phrase(text: str) -> bool:
    return _normalize(text) == ELEVATION_PHRASE


def is_privileged_text(text: str) -> bool:
    """
    True for the bare phrase and for every "<phrase> <subcommand>" form.
    "server initialize" is ordinary chat.
    """
    normalized = _normalize(text)
    return normalized == ELEVATION_PHRASE or normalized.startswith(ELEVATION_PHRASE + " ")


def challenge(session, now: float, window: float = PRIVILEGE_WINDOW_SECONDS) -> ChallengeResult:
    """
    Apply one elevation phrase to `session`.

    - blocked sessions never get a record
    - a granted record stays granted
    - no record, or a record whose first challenge is more than `window`
      seconds old, (re)opens the challenge at `now`
    - a second challenge inside the window grants
    """
    if session.admin_blocked:
        return ChallengeResult.BLOCKED

    record = session.privilege
    if record is not None and record.granted:
        return ChallengeResult.ALREADY_GRANTED

    if record is None or now - record.first_challenge_time > window:
        session.privilege = PrivilegeRecord(first_challenge_time=now)
        return ChallengeResult.CHALLENGED

    record.granted = True
    return ChallengeResult.GRANTED


def grant(session, now: float):
    """Direct grant, used for the reserved identity after its password check."""
    session.privilege = PrivilegeRecord(first_challenge_time=now, granted=True)


def is_granted(session) -> bool:
    if session.admin_blocked:
        return False
    return bool(session.privilege and session.privilege.granted)


def revoke(session):
    session.privilege = None


def block(session):
    """Permanent for the lifetime of the connection."""
    session.admin_blocked = True
    session.privilege = None
