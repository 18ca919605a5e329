import requests

from query_engine.llm_client import LLMClient
from utils import http_utils
from utils.http_utils import FetchFailed, FetchOk, get_json


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_get_json_ok(monkeypatch):
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update(url=url, params=params, timeout=timeout)
        return DummyResponse(200, [{"symbol": "AAPL"}])

    monkeypatch.setattr(http_utils.requests, "get", fake_get)
    result = get_json("https://example.test/profile/AAPL", params={"apikey": "k"}, timeout=3)

    assert result == FetchOk([{"symbol": "AAPL"}])
    assert captured == {"url": "https://example.test/profile/AAPL", "params": {"apikey": "k"}, "timeout": 3}


def test_get_json_status_failures(monkeypatch):
    for status, reason in [(403, "plan/key restriction"), (404, "not found"), (429, "rate limited"), (500, "http 500")]:
        monkeypatch.setattr(http_utils.requests, "get", lambda *a, _s=status, **k: DummyResponse(_s))
        assert get_json("https://example.test/x") == FetchFailed(reason, status)


def test_get_json_timeout_and_bad_body(monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(http_utils.requests, "get", timeout)
    assert get_json("https://example.test/x") == FetchFailed("timeout")

    monkeypatch.setattr(http_utils.requests, "get", lambda *a, **k: DummyResponse(200, ValueError("bad")))
    assert get_json("https://example.test/x") == FetchFailed("invalid json", 200)


def _completion(content, finish_reason="stop"):
    return {"choices": [{"message": {"content": content}, "finish_reason": finish_reason}]}


def test_llm_client_returns_reply_text(monkeypatch):
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(json=json, headers=headers)
        return DummyResponse(200, _completion("  SELECT 1  "))

    monkeypatch.setattr("query_engine.llm_client.requests.post", fake_post)
    text = LLMClient("sk-test").complete("system", "user", model="gpt-4o", temperature=0.1, max_tokens=50)

    assert text == "SELECT 1"
    assert captured["headers"]["Authorization"] == "Bearer sk-test"
    assert captured["json"]["model"] == "gpt-4o"
    assert captured["json"]["messages"][0] == {"role": "system", "content": "system"}


def test_llm_client_retries_rate_limit_once(monkeypatch):
    responses = [DummyResponse(429, text="slow down"), DummyResponse(200, _completion("ok"))]
    monkeypatch.setattr("query_engine.llm_client.requests.post", lambda *a, **k: responses.pop(0))
    delays = []

    client = LLMClient("sk-test", sleep=delays.append)
    assert client.complete("s", "u", model="gpt-4o") == "ok"
    assert delays == [2.0]


def test_llm_client_failures_return_none(monkeypatch):
    monkeypatch.setattr("query_engine.llm_client.requests.post",
                        lambda *a, **k: DummyResponse(401, text="invalid key"))
    assert LLMClient("sk-test").complete("s", "u", model="gpt-4o") is None

    monkeypatch.setattr("query_engine.llm_client.requests.post",
                        lambda *a, **k: DummyResponse(200, _completion("", "content_filter")))
    assert LLMClient("sk-test").complete("s", "u", model="gpt-4o") is None


def test_llm_client_without_key_makes_no_request(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr("query_engine.llm_client.requests.post", fail)
    assert LLMClient("").complete("s", "u", model="gpt-4o") is None
