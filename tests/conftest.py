import json
from io import BytesIO

import pytest
from PIL import Image

from neuroguessr import create_app
from neuroguessr.config import ProxyConfig

PARIS = {"lat": 48.8566, "lon": 2.3522, "confidence": 0.87}


def make_png(color="red", size=(4, 4)):
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakePost:
    """Stands in for ``requests.post``; records calls and replays responses."""

    def __init__(self, response=None, side_effect=None):
        self.response = response if response is not None else FakeResponse(200, PARIS)
        self.side_effect = side_effect
        self.calls = []

    def __call__(self, url, files=None, timeout=None):
        captured = {}
        for field, (name, content, media_type) in (files or {}).items():
            # upload streams are closed once the request ends
            if hasattr(content, "read"):
                content = content.read()
            captured[field] = (name, content, media_type)
        self.calls.append({"url": url, "files": captured, "timeout": timeout})
        if self.side_effect is not None:
            result = self.side_effect(url, files)
            if result is not None:
                return result
        return self.response


@pytest.fixture
def png():
    return make_png()


@pytest.fixture
def proxy_config():
    return ProxyConfig(backend_url="http://geo.test/")


@pytest.fixture
def page_post():
    return FakePost()


@pytest.fixture
def app(proxy_config, page_post):
    app = create_app(config=proxy_config, post=page_post)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
