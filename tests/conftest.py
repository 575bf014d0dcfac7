import json

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code=200, body=b"", reason="OK"):
        self.status_code = status_code
        self.body = body
        self.reason = reason
        self.closed = False

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]

    def json(self):
        return json.loads(self.body.decode("utf-8"))

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class FakeGitHub:
    """Serves canned responses by URL and records every requested URL and its headers in order."""

    def __init__(self):
        self.routes = {}
        self.requested = []
        self.headers = []

    def file(self, url, body, status_code=200, reason="OK"):
        self.routes[url] = FakeResponse(status_code, body, reason)

    def listing(self, url, entries):
        self.routes[url] = FakeResponse(200, json.dumps(entries).encode("utf-8"))

    def fail(self, url, error):
        self.routes[url] = error

    def get(self, url, headers=None, stream=False, timeout=None):
        self.requested.append(url)
        self.headers.append(headers)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, b'{"message": "Not Found"}', "Not Found")
        if isinstance(route, Exception):
            raise route
        return route


@pytest.fixture
def github(monkeypatch):
    fake = FakeGitHub()
    monkeypatch.setattr(requests, "get", fake.get)
    return fake


def api(path, branch="main", owner="acme", repo="widgets"):
    return f"https://api.github.com/repos/{owner}/{repo}/contents/{path}?ref={branch}"


def dl(path, branch="main", owner="acme", repo="widgets"):
    return f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{path}"


def file_entry(path):
    return {"name": path.split("/")[-1], "path": path, "type": "file", "download_url": dl(path)}


def dir_entry(path, name=None):
    return {"name": name or path.split("/")[-1], "path": path, "type": "dir", "download_url": None}
