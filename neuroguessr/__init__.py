import atexit
import secrets

import requests
from flask import Flask

from neuroguessr.config import MAX_CONTENT_LENGTH, PROXY_ENDPOINT, ProxyConfig
from neuroguessr.frontend import SessionRegistry
from neuroguessr.frontend import bp as frontend_bp
from neuroguessr.proxy import bp as proxy_bp


def create_app(config=None, post=requests.post, proxy_endpoint=PROXY_ENDPOINT):
    """Build the Flask app serving the page and the upload proxy.

    ``config`` defaults to ``ProxyConfig.from_env()``, read once here.
    ``post`` is what the page uses to reach the proxy at ``proxy_endpoint``.
    """
    app = Flask(__name__)
    app.config["PROXY_CONFIG"] = config if config is not None else ProxyConfig.from_env()
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
    app.config["PROXY_ENDPOINT"] = proxy_endpoint
    app.secret_key = secrets.token_hex(32)

    sessions = SessionRegistry(post=post)
    app.extensions["neuroguessr_sessions"] = sessions
    atexit.register(sessions.close_all)

    app.register_blueprint(proxy_bp)
    app.register_blueprint(frontend_bp)
    return app
