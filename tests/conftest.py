import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from config import Settings
from groq_client import GroqClient
from main import create_app


@pytest.fixture
def anyio_backend():
    return "asyncio"


class Upstream:
    """Stand-in for api.groq.com: records requests, replies with a canned response."""

    def __init__(self):
        self.requests = []
        self.reply = httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})
        self.error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply

    def respond(self, status_code=200, json_body=None, text=None):
        if text is not None:
            self.reply = httpx.Response(status_code, text=text)
        else:
            self.reply = httpx.Response(status_code, json=json_body)

    def fail(self, error):
        self.error = error

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def groq(upstream):
    return GroqClient(api_key="gsk_test_key", transport=httpx.MockTransport(upstream))


@pytest.fixture
def static_root(tmp_path):
    root = tmp_path / "static"
    root.mkdir()
    (root / "math-solver.html").write_text("<h1>solver</h1>", encoding="utf-8")
    (root / "app.js").write_text("console.log('hi');", encoding="utf-8")
    (root / "style.css").write_text("body {}", encoding="utf-8")
    (root / "notes.bin").write_bytes(b"\x00\x01")
    (root / "assets").mkdir()
    (tmp_path / "secret.txt").write_text("top secret", encoding="utf-8")
    return root


@pytest.fixture
def settings(static_root):
    return Settings(groq_api_key="gsk_test_key", static_root=static_root)


@pytest.fixture
def client(settings, groq):
    app = create_app(settings=settings, groq=groq)
    with TestClient(app) as c:
        yield c


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def log_records():
    """Collect records from the app logger (it does not propagate to root)."""
    handler = RecordingHandler()
    logger = logging.getLogger("mathsolver")
    logger.addHandler(handler)
    yield handler.records
    logger.removeHandler(handler)
