# ============================================
#     Relay — Chat history
#     Append-only event log, persisted wholesale on every mutation
# ============================================

import time
from dataclasses import dataclass, field
from typing import List

from relay.config import SYSTEM_AUTHOR, SYSTEM_COLOR, SYSTEM_AVATAR
from relay.storage import load_history, save_history
from relay.logger import log_info


@dataclass
class ChatEvent:
    author: str
    text: str
    color: str
    avatar: str
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def system(cls, text: str, now: float = None) -> "ChatEvent":
        return cls(
            author=SYSTEM_AUTHOR,
            text=text,
            color=SYSTEM_COLOR,
            avatar=SYSTEM_AVATAR,
            timestamp=time.time() if now is None else now,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ChatEvent":
        return cls(
            author=str(data.get("user", "")),
            text=str(data.get("text", "")),
            color=data.get("color") or SYSTEM_COLOR,
            avatar=data.get("avatar") or "",
            timestamp=data.get("time") or 0,
        )

    def to_dict(self) -> dict:
        """Wire / file format."""
        return {
            "user": self.author,
            "text": self.text,
            "color": self.color,
            "avatar": self.avatar,
            "time": self.timestamp,
        }


class ChatHistory:
    def __init__(self):
        self._events: List[ChatEvent] = []

    def load(self):
        self._events = [ChatEvent.from_dict(e) for e in load_history()]
        log_info("history", f"History restored ({len(self._events)} events).")

    def append(self, event: ChatEvent) -> bool:
        """
        Keep the event in memory, then rewrite the file.
        Returns False when the durable copy failed.
        """
        self._events.append(event)
        return save_history(self.snapshot())

    def clear(self) -> bool:
        self._events = []
        log_info("history", "History cleared.")
        return save_history([])

    def reset(self):
        """Drop in-memory events without touching the file."""
        self._events = []

    def snapshot(self) -> List[dict]:
        return [e.to_dict() for e in self._events]

    def __len__(self):
        return len(self._events)
