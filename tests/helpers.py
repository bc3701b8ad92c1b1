"""
Shared test setup for the relay test suite.

Importing this module points the persistence root at a temporary
directory and shortens every countdown BEFORE relay.config is imported,
so it must be the first project import in every test module.
"""

import os
import sys
import time
import tempfile

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

TMP_ROOT = tempfile.mkdtemp(prefix="relay-tests-")

os.environ["RELAY_PERSIST_ROOT"] = TMP_ROOT
os.environ["RELAY_LOG_CONSOLE"] = "false"
os.environ["RELAY_SECRET_KEY"] = "unit-test-secret"
os.environ["RELAY_ADMIN_PASSWORD"] = "hunter2"
os.environ["RELAY_RESERVED_NAME"] = "Admin"
os.environ["RELAY_SLOW_MODE"] = "true"
os.environ["RELAY_SLOW_MODE_INTERVAL"] = "2"
os.environ["RELAY_COUNTDOWN_SECONDS"] = "0.01"
os.environ["RELAY_DISABLE_DELAY_SECONDS"] = "0.01"
os.environ["RELAY_PROFANITY_URLS"] = ""

from flask import Flask
from flask_socketio import SocketIO

import relay.state as state
from relay import content_filter
from relay.config import HISTORY_FILE, CREDENTIAL_FILE
from relay.sockets import register_handlers

ADMIN_PASSWORD = "hunter2"


def reset_all():
    """Fresh in-memory state and no files on disk."""
    state.reset()
    state.shutdown_hook = None
    content_filter.set_words(())
    for path in (HISTORY_FILE, CREDENTIAL_FILE):
        if os.path.exists(path):
            os.remove(path)


def make_server():
    app = Flask(__name__)
    socketio = SocketIO(app, async_mode="threading")
    register_handlers(socketio)
    return app, socketio


def wait_for(predicate, timeout=2.0, interval=0.01):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def sid_of(name):
    session = state.registry.find_by_name(name)
    return session.connection_id if session else None


class Client:
    """Socket.IO test client that keeps everything it has received."""

    def __init__(self, app, socketio):
        self.raw = socketio.test_client(app)
        self.received = []

    def pull(self):
        self.received.extend(self.raw.get_received())
        return self.received

    def events(self, name):
        self.pull()
        return [r["args"][0] if r["args"] else None for r in self.received if r["name"] == name]

    def count(self, name):
        self.pull()
        return len([r for r in self.received if r["name"] == name])

    def texts(self, name="private_chat_event"):
        return [e["text"] for e in self.events(name)]

    def reset(self):
        self.pull()
        self.received = []

    def register(self, name, color="#123456", avatar=None):
        self.raw.emit("register_identity", {"name": name, "color": color, "avatar": avatar})

    def say(self, text):
        self.raw.emit("chat_message", text)

    def login_admin(self, password=ADMIN_PASSWORD):
        self.register("Admin")
        self.say(password)

    def disconnect(self):
        self.raw.disconnect()
