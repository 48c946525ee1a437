"""Tests for the analysis service transports."""

import asyncio

import pytest
import requests
from decision_checkpoint import transport as transport_module
from decision_checkpoint.analysis import AugmentationKind
from decision_checkpoint.config import Settings
from decision_checkpoint.errors import TransportError
from decision_checkpoint.transport import ChatCompletionsTransport, StaticTransport

LOGIC = AugmentationKind.LOGIC_CONSISTENCY


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def completion(content):
    return {"choices": [{"message": {"content": content}}]}


class TestChatCompletionsTransport:
    def setup_method(self):
        self.transport = ChatCompletionsTransport(api_key="test-key", base_url="https://example.test/")

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            ChatCompletionsTransport(api_key="")

    def test_url(self):
        assert self.transport.url == "https://example.test/v1/chat/completions"

    def test_from_settings(self):
        t = ChatCompletionsTransport.from_settings(Settings(analysis_api_key="k", analysis_model="m"))
        assert t.model == "m"
        assert t.api_key == "k"

    def test_successful_request(self, monkeypatch):
        sent = {}

        def fake_post(url, json, headers, timeout):
            sent.update(url=url, json=json, headers=headers, timeout=timeout)
            return FakeResponse(payload=completion('{"consistencyScore": 7}'))

        monkeypatch.setattr(transport_module.requests, "post", fake_post)
        text = asyncio.run(self.transport.request(LOGIC, "prompt"))
        assert text == '{"consistencyScore": 7}'
        assert sent["headers"]["Authorization"] == "Bearer test-key"
        assert sent["json"]["messages"][1] == {"role": "user", "content": "prompt"}
        assert sent["json"]["response_format"] == {"type": "json_object"}

    def test_http_error_status(self, monkeypatch):
        monkeypatch.setattr(transport_module.requests, "post", lambda *a, **k: FakeResponse(status_code=503))
        with pytest.raises(TransportError):
            self.transport._post(LOGIC, "prompt")

    def test_connection_error(self, monkeypatch):
        def fake_post(*args, **kwargs):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(transport_module.requests, "post", fake_post)
        with pytest.raises(TransportError):
            self.transport._post(LOGIC, "prompt")

    def test_bad_envelope(self, monkeypatch):
        monkeypatch.setattr(transport_module.requests, "post", lambda *a, **k: FakeResponse(payload={"choices": []}))
        with pytest.raises(TransportError):
            self.transport._post(LOGIC, "prompt")

    def test_empty_content(self, monkeypatch):
        monkeypatch.setattr(transport_module.requests, "post", lambda *a, **k: FakeResponse(payload=completion(" ")))
        with pytest.raises(TransportError):
            self.transport._post(LOGIC, "prompt")


class TestStaticTransport:
    def test_returns_canned_response(self):
        t = StaticTransport({LOGIC: "ok"})
        assert asyncio.run(t.request(LOGIC, "p")) == "ok"
        assert t.calls == [(LOGIC, "p")]

    def test_sequence_last_repeats(self):
        t = StaticTransport({"logic-consistency": ["a", "b"]})
        assert [asyncio.run(t.request(LOGIC, "p")) for _ in range(3)] == ["a", "b", "b"]

    def test_raises_exceptions(self):
        t = StaticTransport({LOGIC: TransportError("down")})
        with pytest.raises(TransportError):
            asyncio.run(t.request(LOGIC, "p"))

    def test_no_response_configured(self):
        t = StaticTransport({})
        with pytest.raises(TransportError):
            asyncio.run(t.request(LOGIC, "p"))
