# frontend/clipboard.py

import threading
from dataclasses import dataclass


class ClipboardAccessError(Exception):
    """The browser refused to hand over clipboard contents."""


@dataclass(frozen=True)
class ClipboardItem:
    media_type: str
    data: bytes


def first_image(items):
    for item in items:
        if item.media_type and item.media_type.startswith("image/"):
            return item
    return None


class PasteListener:
    """Routes page-wide paste events to the controller subscribed for a session.

    One subscription per session key; subscribing an already subscribed key
    does nothing.
    """

    def __init__(self):
        self._handlers = {}
        self._lock = threading.Lock()

    def subscribe(self, key, handler):
        with self._lock:
            if key in self._handlers:
                return False
            self._handlers[key] = handler
            return True

    def unsubscribe(self, key):
        with self._lock:
            return self._handlers.pop(key, None) is not None

    def is_subscribed(self, key):
        with self._lock:
            return key in self._handlers

    def dispatch(self, key, items):
        with self._lock:
            handler = self._handlers.get(key)
        if handler is None:
            return False
        handler(items)
        return True
