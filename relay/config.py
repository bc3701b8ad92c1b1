# ============================================
#     Relay — Global Configuration
# ============================================

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


# =========================================
#   ENVIRONMENT
# =========================================
# Expected values: "dev", "prod"
ENV = os.getenv("RELAY_ENV", "dev").lower()

IS_PROD = ENV == "prod"

# =========================================
#   PATHS — PERSISTENCE ROOT
# =========================================
# In dev, we default to a local folder inside the repo: ./var/data
# Override with RELAY_PERSIST_ROOT=/custom/path

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

PERSIST_ROOT = (
    os.getenv("RELAY_PERSIST_ROOT")
    or ("/var/data" if IS_PROD else os.path.join(PROJECT_ROOT, "var", "data"))
)

HISTORY_FILE = os.path.join(PERSIST_ROOT, "chat-history.json")
CREDENTIAL_FILE = os.path.join(PERSIST_ROOT, "credential.json")

LOG_DIR = os.path.join(PERSIST_ROOT, "logs")
DEFAULT_LOG_FILE = os.path.join(LOG_DIR, "relay.log")
LOG_FILE = os.getenv("RELAY_LOG_FILE", DEFAULT_LOG_FILE)
LOG_LEVEL = os.getenv("RELAY_LOG_LEVEL", "INFO").upper()
LOG_CONSOLE = _env_bool("RELAY_LOG_CONSOLE", not IS_PROD)

os.makedirs(PERSIST_ROOT, exist_ok=True)
os.makedirs(LOG_DIR, exist_ok=True)

PORT = int(os.getenv("PORT", "3000"))

# =========================================
#   IDENTITY
# =========================================
# The reserved identity is single-instance and gated by a shared secret.
RESERVED_NAME = os.getenv("RELAY_RESERVED_NAME", "Admin")

# Used only when no credential file exists yet.
INITIAL_ADMIN_PASSWORD = os.getenv("RELAY_ADMIN_PASSWORD", "")

# Key material for the credential file (Fernet).
SECRET_KEY = os.getenv("RELAY_SECRET_KEY", "")

MAX_NAME_LENGTH = 24
IDLE_SUFFIX = " (idle)"

SYSTEM_AUTHOR = "Server"
SYSTEM_COLOR = "#000000"
SYSTEM_AVATAR = "S"
DEFAULT_COLOR = "#000000"

# =========================================
#   GENERAL PARAMETERS
# =========================================
IDLE_TIMEOUT_SECONDS = 5 * 60     # Inactivity before a session turns idle
IDLE_SWEEP_SECONDS = 5            # Idle sweep tick
MAX_MESSAGE_LENGTH = 1000         # Hard cap on message size (chars)

# =========================================
#   MODERATION
# =========================================
ELEVATION_PHRASE = "server init"
PRIVILEGE_WINDOW_SECONDS = 10

SLOW_MODE_ENABLED = _env_bool("RELAY_SLOW_MODE", True)
SLOW_MODE_INTERVAL_SECONDS = _env_float("RELAY_SLOW_MODE_INTERVAL", 2.0)

COUNTDOWN_SECONDS = _env_float("RELAY_COUNTDOWN_SECONDS", 1.0)
KICK_COUNTDOWN_STEPS = 3
CLEAR_COUNTDOWN_STEPS = 3
SHUTDOWN_COUNTDOWN_STEPS = 5
DISABLE_DELAY_SECONDS = _env_float("RELAY_DISABLE_DELAY_SECONDS", 3.0)

# =========================================
#   PROFANITY WORD LISTS
# =========================================
DEFAULT_PROFANITY_URLS = [
    "https://www.cs.cmu.edu/~biglou/resources/bad-words.txt",
    "https://raw.githubusercontent.com/zacanger/profane-words/master/words.json",
]

PROFANITY_URLS = [
    u.strip()
    for u in os.getenv("RELAY_PROFANITY_URLS", ",".join(DEFAULT_PROFANITY_URLS)).split(",")
    if u.strip()
]

PROFANITY_FETCH_TIMEOUT = _env_float("RELAY_PROFANITY_FETCH_TIMEOUT", 8.0)
