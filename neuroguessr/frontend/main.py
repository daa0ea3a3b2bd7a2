# frontend/main.py

import secrets
import threading
import time

import requests
from flask import (Blueprint, Response, abort, current_app, redirect, render_template,
                   request, session, url_for)
from werkzeug.exceptions import RequestEntityTooLarge

from neuroguessr.frontend.clipboard import ClipboardAccessError, ClipboardItem, PasteListener
from neuroguessr.frontend.images import PreviewStore
from neuroguessr.frontend.workflow import GeoWorkflow, SubmitRejected
from neuroguessr.logger_setup import setup_logger

log = setup_logger('frontend')

SESSION_KEY = "sid"
SESSION_IDLE_TIMEOUT = 30 * 60  # seconds

bp = Blueprint("frontend", __name__, template_folder="templates")


class SessionRegistry:
    """One GeoWorkflow per browser session, torn down explicitly or when idle."""

    def __init__(self, post=requests.post, idle_timeout=SESSION_IDLE_TIMEOUT, clock=time.monotonic):
        self.previews = PreviewStore()
        self.listener = PasteListener()
        self.post = post
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._sessions = {}
        self._lock = threading.Lock()

    def get(self, sid, endpoint):
        expired = []
        with self._lock:
            now = self._clock()
            for key, (_, seen) in list(self._sessions.items()):
                if key != sid and now - seen > self.idle_timeout:
                    expired.append(self._sessions.pop(key)[0])
            entry = self._sessions.get(sid)
            if entry is None:
                workflow = GeoWorkflow(self.previews, endpoint, post=self.post)
                workflow.mount(self.listener, sid)
            else:
                workflow = entry[0]
            self._sessions[sid] = (workflow, now)

        for old in expired:
            old.teardown()
        if expired:
            log.info(f"Expired {len(expired)} idle session(s)")
        return workflow

    def close(self, sid):
        with self._lock:
            entry = self._sessions.pop(sid, None)
        if entry is None:
            return False
        entry[0].teardown()
        return True

    def close_all(self):
        with self._lock:
            entries = list(self._sessions.values())
            self._sessions.clear()
        for workflow, _ in entries:
            workflow.teardown()

    def __len__(self):
        with self._lock:
            return len(self._sessions)


def _registry():
    return current_app.extensions["neuroguessr_sessions"]


def _sid():
    if SESSION_KEY not in session:
        session[SESSION_KEY] = secrets.token_hex(16)
    return session[SESSION_KEY]


def _workflow():
    return _registry().get(_sid(), current_app.config["PROXY_ENDPOINT"])


def _page(workflow, status=200):
    return render_template("index.html", view=workflow.render()), status


@bp.errorhandler(RequestEntityTooLarge)
def too_large(e):
    log.info(f"Rejected oversized upload to {request.path}")
    _workflow().file_too_large()
    return redirect(url_for("frontend.index"))


@bp.route("/")
def index():
    return _page(_workflow())


@bp.route("/select", methods=["POST"])
def select():
    workflow = _workflow()
    file = request.files.get("image")
    if not file or not file.filename:
        workflow.missing_file()
    else:
        workflow.select(file.read(), file.mimetype, file.filename)
    return redirect(url_for("frontend.index"))


@bp.route("/paste", methods=["POST"])
def paste():
    workflow = _workflow()

    def read_clipboard():
        if request.form.get("denied"):
            raise ClipboardAccessError(request.form.get("reason", "permission denied"))
        return [ClipboardItem(f.mimetype, f.read()) for f in request.files.getlist("item")]

    workflow.paste_from_clipboard(read_clipboard)
    return redirect(url_for("frontend.index"))


@bp.route("/paste-event", methods=["POST"])
def paste_event():
    _workflow()
    items = [ClipboardItem(f.mimetype, f.read()) for f in request.files.getlist("file")]
    _registry().listener.dispatch(_sid(), items)
    return "", 204


@bp.route("/locate", methods=["POST"])
def locate():
    workflow = _workflow()
    try:
        workflow.submit()
    except SubmitRejected as e:
        log.info(f"Submit rejected: {e}")
        return _page(workflow, 409)
    return redirect(url_for("frontend.index"))


@bp.route("/preview/<token>")
def preview(token):
    found = _registry().previews.get(token)
    if found is None:
        abort(404)
    return Response(found.data, mimetype=found.media_type)


@bp.route("/teardown", methods=["POST"])
def teardown():
    if SESSION_KEY in session:
        _registry().close(session[SESSION_KEY])
    return redirect(url_for("frontend.index"))
