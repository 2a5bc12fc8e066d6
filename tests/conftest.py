"""
Pytest configuration for voxcapture tests.

Provides fixtures for proper Qt object cleanup between tests and shared
fakes for the external collaborators (credentials, HTTP session).
"""
import json
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QCoreApplication


@pytest.fixture(autouse=True)
def cleanup_qt_objects(qtbot, request):
    """
    Process pending Qt events after each test so deleteLater() calls and
    queued signals from worker threads do not leak into the next test.
    """
    yield

    app = QCoreApplication.instance()
    if app:
        app.processEvents()


class FakeCredentials:
    def __init__(self, key=None):
        self.key = key
        self.checks = 0

    def has_credential(self):
        self.checks += 1
        return bool(self.key)

    def get_credential(self):
        return self.key


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, reason="OK", body=None):
        self.status_code = status_code
        self._json_data = json_data
        self.reason = reason
        if body is None:
            body = json.dumps(json_data).encode() if json_data is not None else b""
        self.content = body
        self.closed = False

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json_data is None:
            raise ValueError("No JSON object could be decoded")
        return self._json_data

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Stands in for requests.Session; records calls and whether it was closed."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(json_data={"text": ""})
        self.error = error
        self.calls = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def close(self):
        self.closed = True

    def _request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)


@pytest.fixture
def credentials():
    return FakeCredentials("sk-test-key")


@pytest.fixture
def audio_dir(tmp_path):
    path = tmp_path / "audio"
    path.mkdir()
    return path
