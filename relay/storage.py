# ============================================
#   Relay — JSON Persistence
#   Chat history log + reserved identity credential
# ============================================

import os
import json
import base64

from cryptography.fernet import Fernet, InvalidToken

from relay.config import (
    HISTORY_FILE,
    CREDENTIAL_FILE,
    SECRET_KEY,
    INITIAL_ADMIN_PASSWORD,
)
from relay.logger import log_info, log_warning, log_exception


def _safe_read_json(path: str, default):
    """
    Safe JSON reader with fallback.
    Returns `default` on missing file or parse errors.
    """
    if not os.path.exists(path):
        return default

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        log_exception("storage", f"Error reading {path}")
        return default


def _atomic_write_json(path: str, payload):
    """
    Atomic JSON write: write temp file then os.replace().
    """
    base = os.path.dirname(path)
    if base:
        os.makedirs(base, exist_ok=True)

    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        raise


# =====================================================
#   CHAT HISTORY
# =====================================================

def load_history():
    """
    Load the persisted event log. Anything that is not a list of dicts
    is discarded with a warning.
    """
    data = _safe_read_json(HISTORY_FILE, [])

    if not isinstance(data, list):
        log_warning("storage", "chat-history.json invalid format (expected list), ignoring.")
        return []

    events = [e for e in data if isinstance(e, dict)]
    log_info("storage", f"Loaded {len(events)} history events.")
    return events


def save_history(events) -> bool:
    """
    Overwrite the persisted log with `events`.
    Failures are logged and reported, never raised: delivery must not
    depend on the durable copy.
    """
    try:
        _atomic_write_json(HISTORY_FILE, list(events))
        return True
    except Exception:
        log_exception("storage", "Failed writing chat-history.json")
        return False


# =====================================================
#   RESERVED IDENTITY CREDENTIAL (obfuscated at rest)
# =====================================================

def _get_cipher():
    if not SECRET_KEY:
        raise RuntimeError("RELAY_SECRET_KEY is not set")

    key = base64.urlsafe_b64encode(
        SECRET_KEY.encode("utf-8")[:32].ljust(32, b"0")
    )
    return Fernet(key)


def load_credential() -> str:
    """
    Return the reserved identity's password.
    Falls back to RELAY_ADMIN_PASSWORD when nothing was persisted yet.
    """
    data = _safe_read_json(CREDENTIAL_FILE, None)
    if not isinstance(data, dict) or not data.get("token"):
        return INITIAL_ADMIN_PASSWORD

    try:
        return _get_cipher().decrypt(data["token"].encode("utf-8")).decode("utf-8")
    except InvalidToken:
        log_warning("storage", "Credential token could not be decrypted (key changed?).")
        return ""


def save_credential(secret: str):
    token = _get_cipher().encrypt(secret.encode("utf-8")).decode("utf-8")
    _atomic_write_json(CREDENTIAL_FILE, {"token": token})
    log_info("storage", "Reserved identity credential updated.")
