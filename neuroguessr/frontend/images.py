# frontend/images.py

import secrets
import threading
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError


def is_image(data, media_type):
    """True when the declared media type is an image type and Pillow can parse the bytes."""
    if not data or not media_type or not media_type.startswith("image/"):
        return False
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return False
    return True


@dataclass(frozen=True)
class Preview:
    data: bytes
    media_type: str


class PreviewStore:
    """Holds preview bytes behind revocable tokens.

    A token stays servable until ``release`` is called for it; nothing is
    reclaimed implicitly.
    """

    def __init__(self):
        self._previews = {}
        self._lock = threading.Lock()

    def acquire(self, data, media_type):
        token = secrets.token_urlsafe(16)
        with self._lock:
            self._previews[token] = Preview(data, media_type)
        return token

    def get(self, token):
        with self._lock:
            return self._previews.get(token)

    def release(self, token):
        with self._lock:
            return self._previews.pop(token, None) is not None

    def __len__(self):
        with self._lock:
            return len(self._previews)


@dataclass(frozen=True)
class ImageSelection:
    data: bytes
    media_type: str
    filename: str
    preview_token: str
