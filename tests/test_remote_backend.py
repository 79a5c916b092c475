from __future__ import annotations

import asyncio
import json

import pytest
import requests

from analyzer.errors import HttpError
from analyzer.http_client import HttpClient, HttpConfig
from analyzer.normalizer import normalize
from analyzer.remote_backend import (
    SYSTEM_PROMPT,
    RemoteBackend,
    RemoteConfig,
    extract_reply_text,
    parse_reply,
)
from analyzer.sentiment_types import BackendMode, RawSentiment, SentimentBucket


class _FakeResponse:
    def __init__(self, status_code: int, payload=None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class _FakeSession:
    def __init__(self, response=None, exc: Exception | None = None):
        self.headers: dict[str, str] = {}
        self.calls: list[dict] = []
        self._response = response
        self._exc = exc

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self._exc is not None:
            raise self._exc
        return self._response


def _backend(session: _FakeSession) -> RemoteBackend:
    http = HttpClient(HttpConfig(timeout_sec=1.0, user_agent="test"), session=session)
    cfg = RemoteConfig(
        base_url="https://openrouter.ai/api/v1/",
        model="test/model",
        max_tokens=30,
        temperature=0.0,
    )
    return RemoteBackend(cfg, http)


def _chat(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_parse_reply_falls_back_to_keyword_search():
    assert parse_reply("I think this is pretty POSITIVE overall") == RawSentiment("POSITIVE", 0.7)


def test_parse_reply_keyword_search_is_case_insensitive():
    assert parse_reply("rather negative, honestly") == RawSentiment("NEGATIVE", 0.7)


def test_parse_reply_without_keywords_is_neutral():
    assert parse_reply("Hard to say.") == RawSentiment("NEUTRAL", 0.7)


def test_parse_reply_structured_label_is_uppercased():
    raw = parse_reply('{"label":"negative","score":0.83}')
    assert raw == RawSentiment("NEGATIVE", 0.83)

    result = normalize(raw, BackendMode.REMOTE, "item")
    assert result.bucket is SentimentBucket.NEGATIVE
    assert result.confidence == 0.83


def test_parse_reply_defaults_score_when_missing_or_not_numeric():
    assert parse_reply('{"label":"POSITIVE"}') == RawSentiment("POSITIVE", 0.7)
    assert parse_reply('{"label":"POSITIVE","score":"high"}') == RawSentiment("POSITIVE", 0.7)
    assert parse_reply('{"label":"POSITIVE","score":true}') == RawSentiment("POSITIVE", 0.7)


def test_parse_reply_defaults_label_to_neutral():
    assert parse_reply('{"score":0.9}') == RawSentiment("NEUTRAL", 0.9)


def test_parse_reply_accepts_fenced_json():
    assert parse_reply('```json\n{"label":"POSITIVE","score":0.95}\n```') == RawSentiment("POSITIVE", 0.95)


def test_parse_reply_non_object_json_uses_keyword_search():
    assert parse_reply('["NEGATIVE"]') == RawSentiment("NEGATIVE", 0.7)


def test_extract_reply_text_tolerates_odd_shapes():
    assert extract_reply_text(_chat("  hi  ")) == "hi"
    assert extract_reply_text({"choices": []}) == ""
    assert extract_reply_text({"choices": [{"message": {}}]}) == ""
    assert extract_reply_text(None) == ""


def test_classify_sends_one_request_with_prompt_and_bearer_token():
    session = _FakeSession(_FakeResponse(200, _chat('{"label":"POSITIVE","score":0.91}')))
    backend = _backend(session)

    raw = asyncio.run(backend.classify("Great product!", "sk-test"))

    assert raw == RawSentiment("POSITIVE", 0.91)
    assert len(session.calls) == 1
    call = session.calls[0]
    assert call["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    body = call["json"]
    assert body["model"] == "test/model"
    assert body["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert body["messages"][1] == {"role": "user", "content": "Great product!"}
    assert body["max_tokens"] == 30
    assert body["temperature"] == 0.0


def test_classify_non_2xx_raises_http_error_with_excerpt():
    session = _FakeSession(_FakeResponse(401, text="x" * 500))
    backend = _backend(session)

    with pytest.raises(HttpError) as exc_info:
        asyncio.run(backend.classify("text", "bad-key"))

    assert exc_info.value.status == 401
    assert len(exc_info.value.body) == 120
    assert "401" in str(exc_info.value)
    assert len(session.calls) == 1


def test_classify_network_failure_raises_http_error_without_retry():
    session = _FakeSession(exc=requests.ConnectionError("connection refused"))
    backend = _backend(session)

    with pytest.raises(HttpError) as exc_info:
        asyncio.run(backend.classify("text", "sk-test"))

    assert exc_info.value.status == 0
    assert len(session.calls) == 1


def test_classify_free_text_reply_never_raises():
    session = _FakeSession(_FakeResponse(200, _chat("Sure! This one is NEGATIVE.")))
    raw = asyncio.run(_backend(session).classify("meh", "sk-test"))
    assert raw == RawSentiment("NEGATIVE", 0.7)


def test_parse_reply_non_string_label_uses_keyword_search():
    assert parse_reply('{"label":["POSITIVE"],"score":0.9}') == RawSentiment("POSITIVE", 0.7)


def test_parse_reply_out_of_range_score_uses_fallback():
    assert parse_reply('{"label":"POSITIVE","score":95}') == RawSentiment("POSITIVE", 0.7)
    assert parse_reply('{"label":"NEGATIVE","score":-0.2}') == RawSentiment("NEGATIVE", 0.7)
    assert parse_reply('{"label":"NEGATIVE","score":1}') == RawSentiment("NEGATIVE", 1.0)
