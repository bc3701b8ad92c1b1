# ============================================
#     Relay — Main Application
# ============================================

# -------------------------------------------------
#   EVENTLET PATCH (single cooperative loop)
# -------------------------------------------------
import eventlet
eventlet.monkey_patch()

import os
import sys
import logging

from flask import Flask
from flask_socketio import SocketIO

# -----------------------------------------
#   ENV VARIABLES (.env)
# -----------------------------------------
from dotenv import load_dotenv
load_dotenv()

import relay.state as state
from relay.config import PORT, PERSIST_ROOT
from relay.content_filter import load_profanity_lists
from relay.idle import start_idle_sweep
from relay.sockets import register_handlers
from relay.logger import log_info, log_warning, log_error

# =========================================
#   FLASK + SOCKET.IO
# =========================================
app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*")


# =========================================
#   SHUTDOWN / RESTART HOOK
# =========================================
def _shutdown(restart: bool):
    log_warning("app", "Restarting process..." if restart else "Shutting down...")
    logging.shutdown()

    if restart:
        os.execv(sys.executable, [sys.executable] + sys.argv)
    os._exit(0)


state.shutdown_hook = _shutdown

# =========================================
#   LOAD HISTORY AT STARTUP
# =========================================
try:
    state.history.load()
    log_info("app", f"History loaded from {PERSIST_ROOT}.")
except Exception as e:
    log_error("app", f"Error loading chat history at startup: {e}")

# =========================================
#   BACKGROUND TASKS
# =========================================
# Word lists are fetched off the startup path; until they arrive the
# blocklist is empty.
socketio.start_background_task(load_profanity_lists)

try:
    start_idle_sweep(socketio)
    log_info("app", "Idle sweep task started.")
except Exception as e:
    log_error("app", f"Error starting idle sweep task: {e}")

# =========================================
#   REGISTER ALL SOCKET.IO HANDLERS
# =========================================
register_handlers(socketio)
log_info("app", "Socket handlers registered successfully.")

# =========================================
#   RUN SERVER
# =========================================
if __name__ == "__main__":
    log_info("app", f"Server starting on port {PORT}...")
    socketio.run(app, host="0.0.0.0", port=PORT)
