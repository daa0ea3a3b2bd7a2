# frontend/workflow.py

import enum
import math
import threading
import time
from dataclasses import dataclass
from typing import Optional

import requests

from neuroguessr.frontend.clipboard import ClipboardAccessError, first_image
from neuroguessr.frontend.images import ImageSelection, is_image
from neuroguessr.logger_setup import setup_logger

log = setup_logger('frontend')

MAP_URL_TEMPLATE = "https://www.google.com/maps/search/?api=1&query={lat},{lon}"
PASTED_FILENAME = "pasted-image.png"
CLIENT_TIMEOUT = 60  # seconds

NOT_AN_IMAGE = "Please choose an image file."
NO_FILE = "No file selected."
FILE_TOO_LARGE = "Image is too large."
NO_CLIPBOARD_IMAGE = "No image found in clipboard."
CLIPBOARD_DENIED = "Clipboard access denied. Try Ctrl+V."
GENERIC_FAILURE = "Something went wrong."
MALFORMED_RESPONSE = "Malformed response from server."


class RequestState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class SubmitRejected(Exception):
    pass


class MalformedResponse(ValueError):
    pass


@dataclass(frozen=True)
class GeoResult:
    lat: float
    lon: float
    confidence: float


def _number(body, key, low, high):
    value = body.get(key)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponse(f"'{key}' missing or not a number")
    value = float(value)
    if not math.isfinite(value) or not low <= value <= high:
        raise MalformedResponse(f"'{key}' out of range: {value}")
    return value


def parse_result(body):
    if not isinstance(body, dict):
        raise MalformedResponse("response body is not an object")
    return GeoResult(
        lat=_number(body, "lat", -90.0, 90.0),
        lon=_number(body, "lon", -180.0, 180.0),
        confidence=_number(body, "confidence", 0.0, 1.0),
    )


def error_message(response):
    """The ``error`` string of a failed response, or a status-code message."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return f"Server Error: {response.status_code}"


@dataclass(frozen=True)
class ResultView:
    latitude: str
    longitude: str
    confidence: str
    confidence_width: str
    map_url: str


@dataclass(frozen=True)
class View:
    phase: str
    preview_token: Optional[str]
    can_submit: bool
    loading: bool
    error: Optional[str]
    result: Optional[ResultView]


def render_result(result):
    return ResultView(
        latitude=f"{result.lat:.5f}",
        longitude=f"{result.lon:.5f}",
        confidence=f"{result.confidence * 100:.1f}%",
        confidence_width=f"{result.confidence * 100:g}%",
        map_url=MAP_URL_TEMPLATE.format(lat=result.lat, lon=result.lon),
    )


def render_state(selection, state, result=None, error=None, notice=None, in_flight=False):
    """Map controller state to what the page shows. No side effects.

    ``in_flight`` stays true until the outstanding request settles, even when a
    newer selection has already moved ``state`` back to idle.
    """
    loading = in_flight or state is RequestState.LOADING
    if selection is None:
        phase = "empty"
    elif loading:
        phase = "loading"
    elif state is RequestState.ERROR:
        phase = "error"
    elif state is RequestState.SUCCESS:
        phase = "success"
    else:
        phase = "ready"

    shown_error = notice or (error if state is RequestState.ERROR else None)
    shown_result = render_result(result) if state is RequestState.SUCCESS and result else None

    return View(
        phase=phase,
        preview_token=selection.preview_token if selection else None,
        can_submit=selection is not None and not loading,
        loading=loading,
        error=shown_error,
        result=shown_result,
    )


class GeoWorkflow:
    """Image selection, submission and result state for one browser session.

    Transitions happen under ``_lock``; the network call itself runs outside
    it. Every accepted selection bumps ``generation`` so that the outcome of
    a request started before it is dropped.
    """

    def __init__(self, previews, endpoint, post=requests.post, timeout=CLIENT_TIMEOUT):
        self.previews = previews
        self.endpoint = endpoint
        self.timeout = timeout
        self._post = post
        self._lock = threading.Lock()
        self._listener = None
        self._key = None

        self.selection = None
        self.state = RequestState.IDLE
        self.result = None
        self.error = None
        self.notice = None
        self.generation = 0
        self._in_flight = False

    # lifecycle

    def mount(self, listener, key):
        if self._listener is not None:
            return
        listener.subscribe(key, self.on_paste)
        self._listener, self._key = listener, key

    def teardown(self):
        with self._lock:
            try:
                if self._listener is not None:
                    self._listener.unsubscribe(self._key)
            finally:
                self._listener = self._key = None
                self._release_selection()
                self.generation += 1

    def _release_selection(self):
        if self.selection is not None:
            self.previews.release(self.selection.preview_token)
            self.selection = None

    # selection

    def select(self, data, media_type, filename):
        if not is_image(data, media_type):
            with self._lock:
                self.notice = NOT_AN_IMAGE
            log.info(f"Rejected selection {filename!r} ({media_type})")
            return False

        token = self.previews.acquire(data, media_type)
        with self._lock:
            self._release_selection()
            self.selection = ImageSelection(data, media_type, filename, token)
            self.state = RequestState.IDLE
            self.result = None
            self.error = None
            self.notice = None
            self.generation += 1
        log.info(f"Selected {filename!r} ({media_type}, {len(data)} bytes)")
        return True

    def missing_file(self):
        with self._lock:
            self.notice = NO_FILE

    def file_too_large(self):
        with self._lock:
            self.notice = FILE_TOO_LARGE

    def paste_from_clipboard(self, reader):
        try:
            items = reader()
        except ClipboardAccessError as e:
            log.warning(f"Clipboard read failed: {e}")
            with self._lock:
                self.notice = CLIPBOARD_DENIED
            return False

        item = first_image(items)
        if item is None:
            with self._lock:
                self.notice = NO_CLIPBOARD_IMAGE
            return False
        return self.select(item.data, item.media_type, PASTED_FILENAME)

    def on_paste(self, items):
        # page-wide paste: only the first pasted file counts, non-images are ignored
        if not items:
            return
        item = items[0]
        if item.media_type and item.media_type.startswith("image/"):
            self.select(item.data, item.media_type, PASTED_FILENAME)

    # submission

    def submit(self):
        with self._lock:
            if self.selection is None:
                raise SubmitRejected("No image selected")
            if self._in_flight:
                raise SubmitRejected("A request is already in flight")
            self._in_flight = True
            self.state = RequestState.LOADING
            self.result = None
            self.error = None
            self.notice = None
            generation = self.generation
            selection = self.selection

        try:
            state, value = self._request(selection)
        except Exception as e:
            log.error(f"Locate request failed unexpectedly: {e!r}")
            state, value = RequestState.ERROR, GENERIC_FAILURE

        with self._lock:
            self._in_flight = False
            if generation != self.generation:
                log.info("Dropping response for a superseded selection")
                return False
            self.state = state
            if state is RequestState.SUCCESS:
                self.result = value
            else:
                self.error = value
        return True

    def _request(self, selection):
        files = {"file": (selection.filename, selection.data, selection.media_type)}
        t = time.time()
        try:
            res = self._post(self.endpoint, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"Request to {self.endpoint} failed: {e}")
            return RequestState.ERROR, GENERIC_FAILURE
        log.info(f"[Locate Request] took {time.time() - t:.4f}s (status {res.status_code})")

        if not res.ok:
            return RequestState.ERROR, error_message(res)

        try:
            return RequestState.SUCCESS, parse_result(res.json())
        except (ValueError, MalformedResponse) as e:
            log.error(f"Malformed response: {e}")
            return RequestState.ERROR, MALFORMED_RESPONSE

    def render(self):
        with self._lock:
            return render_state(self.selection, self.state, self.result, self.error, self.notice,
                                self._in_flight)
