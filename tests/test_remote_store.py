import pytest
import requests

from cipherstudio.storage.remote import RemoteProjectStore, RemoteStoreError


class _Resp:
    def __init__(self, status_code: int, data=None, text: str = ""):
        self.status_code = status_code
        self._data = data
        self.text = text

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class _Sess:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json))
        key = (method, url)
        if key not in self.routes:
            return _Resp(404, {"detail": "not_found"}, text="Not Found")
        resp = self.routes[key]
        if isinstance(resp, Exception):
            raise resp
        if callable(resp):
            return resp(method, url, json)
        return resp


def test_save_project_posts_snapshot(monkeypatch):
    monkeypatch.setenv("CIPHERSTUDIO_API_BASE_URL", "https://api.example/")

    def _echo(method, url, body):
        return _Resp(200, {"project": dict(body, updatedAt="2024-01-01T00:00:00+00:00")})

    s = _Sess({("POST", "https://api.example/api/projects"): _echo})
    store = RemoteProjectStore.from_env(session=s)
    rec = store.save_project("p1", "Demo", {"/App.js": "X"})

    assert s.calls == [
        (
            "POST",
            "https://api.example/api/projects",
            {"projectId": "p1", "projectName": "Demo", "files": {"/App.js": "X"}},
        )
    ]
    assert rec.project_id == "p1"
    assert rec.project_name == "Demo"
    assert rec.files == {"/App.js": "X"}
    assert rec.updated_at


def test_save_project_server_error_raises():
    url = "https://api.example/api/projects"
    s = _Sess({("POST", url): _Resp(500, {"detail": "boom"})})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    with pytest.raises(RemoteStoreError) as e:
        store.save_project("p1", "Demo", {"/App.js": "X"})
    assert e.value.status_code == 500
    assert e.value.payload == {"detail": "boom"}


def test_save_project_transport_error_is_wrapped():
    url = "https://api.example/api/projects"
    s = _Sess({("POST", url): requests.ConnectionError("refused")})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    with pytest.raises(RemoteStoreError) as e:
        store.save_project("p1", "Demo", {"/App.js": "X"})
    assert e.value.status_code is None


def test_save_project_malformed_response_raises():
    url = "https://api.example/api/projects"
    s = _Sess({("POST", url): _Resp(200, {"ok": True})})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    with pytest.raises(RemoteStoreError):
        store.save_project("p1", "Demo", {"/App.js": "X"})


def test_load_project_not_found_returns_none():
    s = _Sess({})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    assert store.load_project("missing-id") is None
    assert s.calls[0][1] == "https://api.example/api/projects/missing-id"


def test_load_project_quotes_id():
    s = _Sess({})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    store.load_project("a/b c")
    assert s.calls[0][1] == "https://api.example/api/projects/a%2Fb%20c"


def test_load_project_success():
    url = "https://api.example/api/projects/p1"
    s = _Sess(
        {("GET", url): _Resp(200, {"projectName": "Demo", "files": {"App.js": "X", "/b.js": "Y"}})}
    )
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    rec = store.load_project("p1")
    assert rec is not None
    assert rec.project_id is None
    assert rec.project_name == "Demo"
    assert list(rec.files) == ["/App.js", "/b.js"]


def test_load_project_empty_files_is_an_error():
    url = "https://api.example/api/projects/p1"
    s = _Sess({("GET", url): _Resp(200, {"projectName": "Demo", "files": {}})})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    with pytest.raises(RemoteStoreError):
        store.load_project("p1")


def test_load_project_invalid_json_raises():
    url = "https://api.example/api/projects/p1"
    s = _Sess({("GET", url): _Resp(200, ValueError("no json"), text="<html>")})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    with pytest.raises(RemoteStoreError):
        store.load_project("p1")


def test_save_project_accepts_minimal_confirmation():
    url = "https://api.example/api/projects"
    s = _Sess({("POST", url): _Resp(200, {"project": {"projectId": "p1"}})})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    rec = store.save_project("p1", "Demo", {"/App.js": "X"})
    assert rec.project_id == "p1"
    assert rec.project_name is None
    assert rec.files == {}


def test_save_project_confirmation_without_id_raises():
    url = "https://api.example/api/projects"
    s = _Sess({("POST", url): _Resp(200, {"project": {"projectName": "Demo"}})})
    store = RemoteProjectStore(base_url="https://api.example", session=s)
    with pytest.raises(RemoteStoreError):
        store.save_project("p1", "Demo", {"/App.js": "X"})
