import requests

from errors import ErrorKind
from http_client import HttpClient


def fake_response(status=200, body=b'{"ok": true}', url="https://api.example.com/x", reason="OK"):
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp._content = body
    resp.encoding = "utf-8"
    resp.url = url
    return resp


def test_get_json_passes_params_and_timeout(monkeypatch):
    client = HttpClient(timeout=5)
    seen = {}

    def request(method, url, **kwargs):
        seen.update(method=method, url=url, **kwargs)
        return fake_response()

    monkeypatch.setattr(client.session, "request", request)
    assert client.get_json("https://api.example.com/x", params={"a": "1"}, headers={"access-token": "t"}) == {"ok": True}
    assert seen["method"] == "GET"
    assert seen["params"] == {"a": "1"}
    assert seen["headers"] == {"access-token": "t"}
    assert seen["timeout"] == 5


def test_post_and_put(monkeypatch):
    client = HttpClient()
    methods = []

    def request(method, url, **kwargs):
        methods.append((method, kwargs.get("json"), kwargs.get("data")))
        return fake_response(body=b"plain text")

    monkeypatch.setattr(client.session, "request", request)
    assert client.post_json("https://api.example.com/x", json={"a": 1}) == "plain text"
    assert client.put_json("https://api.example.com/x", data={"b": 2}) == "plain text"
    assert methods == [("POST", {"a": 1}, None), ("PUT", None, {"b": 2})]


def test_verify_flag_and_headers():
    client = HttpClient(verify=False, headers={"User-Agent": "bills/1.0"})
    assert client.session.verify is False
    assert client.session.headers["User-Agent"] == "bills/1.0"
    assert "Accept" in client.session.headers
    client.close()


def test_call_retries_http_errors(monkeypatch):
    client = HttpClient()
    statuses = iter([503, 502, 200])
    waits = []
    monkeypatch.setattr("retry_util.time.sleep", waits.append)

    def request(method, url, **kwargs):
        status = next(statuses)
        return fake_response(status=status, reason="OK" if status == 200 else "Bad Gateway")

    monkeypatch.setattr(client.session, "request", request)
    result = client.call("GET", "https://api.example.com/x?token=abc", max_attempts=3)
    assert result.ok
    assert result.payload == {"ok": True}
    assert result.attempt_count == 3
    assert waits == [2.0, 4.0]


def test_call_returns_failure_after_exhaustion(monkeypatch):
    client = HttpClient()
    monkeypatch.setattr("retry_util.time.sleep", lambda s: None)

    def request(method, url, **kwargs):
        raise requests.exceptions.ConnectionError("Name or service not known")

    monkeypatch.setattr(client.session, "request", request)
    result = client.call("PUT", "https://api.example.com/x", max_attempts=2)
    assert not result.ok
    assert result.error.kind is ErrorKind.TRANSPORT
    assert result.attempt_count == 2


def test_context_manager_closes_session(monkeypatch):
    closed = []
    with HttpClient() as client:
        monkeypatch.setattr(client.session, "close", lambda: closed.append(True))
    assert closed == [True]
