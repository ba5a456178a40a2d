import json as jsonlib

import pytest
import requests

from sitebuilder import llm_client
from sitebuilder.config import ProviderDescriptor
from sitebuilder.errors import ProviderCallError, ProviderNotImplementedError


def _provider(pid: str, endpoint: str = "https://llm.example/v1", model: str = "m-1") -> ProviderDescriptor:
    return ProviderDescriptor(id=pid, endpoint=endpoint, model=model, apiKeyEnv=f"{pid.upper()}_API_KEY")


class FakeResp:
    def __init__(self, status, payload=None, text=None):
        self.status_code = status
        self._payload = payload
        self.text = text if text is not None else jsonlib.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture()
def captured(monkeypatch):
    calls = []
    responses = []

    def fake_post(url, headers=None, params=None, json=None, timeout=None, **kwargs):
        calls.append({"url": url, "headers": headers, "params": params, "json": json, "timeout": timeout})
        return responses.pop(0)

    monkeypatch.setattr(requests, "post", fake_post)
    return calls, responses


REPLY = '{"html":"<p>x</p>","css":"p{}","js":"1;"}'


def test_openai_shape(captured):
    calls, responses = captured
    responses.append(FakeResp(200, {"output_text": REPLY}))
    out = llm_client.dispatch(_provider("openai"), "sk-123", "a bakery")
    assert out == REPLY
    call = calls[0]
    assert call["url"] == "https://llm.example/v1"
    assert call["headers"]["Authorization"] == "Bearer sk-123"
    assert call["headers"]["Content-Type"] == "application/json"
    assert call["params"] is None
    body = call["json"]
    assert body["model"] == "m-1"
    assert [m["role"] for m in body["input"]] == ["system", "user"]
    assert body["input"][0]["content"] == llm_client.SYSTEM_INSTRUCTION
    assert body["input"][1]["content"] == "Build a website for: a bakery"


def test_openai_reads_raw_output_items(captured):
    _, responses = captured
    payload = {
        "output": [
            {"type": "reasoning", "content": []},
            {"type": "message", "content": [{"type": "output_text", "text": REPLY}]},
        ]
    }
    responses.append(FakeResp(200, payload))
    assert llm_client.dispatch(_provider("openai"), "k", "p") == REPLY


def test_anthropic_shape(captured):
    calls, responses = captured
    responses.append(FakeResp(200, {"content": [{"type": "text", "text": REPLY}]}))
    out = llm_client.dispatch(_provider("anthropic"), "ak-1", "a zoo")
    assert out == REPLY
    call = calls[0]
    assert call["headers"]["x-api-key"] == "ak-1"
    assert call["headers"]["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in call["headers"]
    body = call["json"]
    assert body["max_tokens"] == 1800
    assert body["system"] == llm_client.SYSTEM_INSTRUCTION
    assert body["messages"] == [{"role": "user", "content": "Build a website for: a zoo"}]


def test_gemini_shape(captured):
    calls, responses = captured
    payload = {"candidates": [{"content": {"parts": [{"text": REPLY}]}}]}
    responses.append(FakeResp(200, payload))
    out = llm_client.dispatch(_provider("gemini"), "g&key", "a shop")
    assert out == REPLY
    call = calls[0]
    assert call["params"] == {"key": "g&key"}
    assert "Authorization" not in call["headers"]
    parts = call["json"]["contents"][0]["parts"]
    assert parts[0]["text"] == llm_client.SYSTEM_INSTRUCTION + "\nBuild a website for: a shop"


def test_raw_text_is_not_parsed(captured):
    _, responses = captured
    responses.append(FakeResp(200, {"output_text": "definitely not json"}))
    assert llm_client.dispatch(_provider("openai"), "k", "p") == "definitely not json"


def test_unknown_provider_id_is_not_implemented(captured):
    calls, _ = captured
    with pytest.raises(ProviderNotImplementedError) as ei:
        llm_client.dispatch(_provider("mistral"), "k", "p")
    assert "Provider not implemented: mistral" in str(ei.value)
    assert calls == []


def test_non_2xx_raises(captured):
    _, responses = captured
    responses.append(FakeResp(401, {"error": {"message": "bad key"}}))
    with pytest.raises(ProviderCallError) as ei:
        llm_client.dispatch(_provider("anthropic"), "k", "p")
    assert "401" in str(ei.value)


def test_non_json_body_raises(captured):
    _, responses = captured
    responses.append(FakeResp(200, None, text="<html>gateway</html>"))
    with pytest.raises(ProviderCallError):
        llm_client.dispatch(_provider("openai"), "k", "p")


@pytest.mark.parametrize(
    "pid,payload",
    [
        ("openai", {"id": "resp_1"}),
        ("anthropic", {"content": []}),
        ("gemini", {"candidates": [{"content": {}}]}),
        ("gemini", {"promptFeedback": {"blockReason": "SAFETY"}}),
    ],
)
def test_missing_text_path_raises(captured, pid, payload):
    _, responses = captured
    responses.append(FakeResp(200, payload))
    with pytest.raises(ProviderCallError):
        llm_client.dispatch(_provider(pid), "k", "p")


def test_network_error_raises(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "post", boom)
    with pytest.raises(ProviderCallError) as ei:
        llm_client.dispatch(_provider("openai"), "k", "p")
    assert "connection refused" in str(ei.value)


def test_no_timeout_by_default(captured, monkeypatch):
    calls, responses = captured
    monkeypatch.setattr(llm_client.config, "LLM_TIMEOUT_SECS", None)
    responses.append(FakeResp(200, {"output_text": REPLY}))
    llm_client.dispatch(_provider("openai"), "k", "p")
    assert calls[0]["timeout"] is None


def test_registry_covers_default_providers():
    assert set(llm_client.PROVIDER_CLIENTS) == {"openai", "anthropic", "gemini"}


def test_client_missing_hook_fails_at_instantiation():
    class HalfClient(llm_client.ProviderClient):
        provider_id = "half"

        def build_request(self, provider, api_key, prompt):
            return {}, {}, {}

    with pytest.raises(TypeError):
        HalfClient()


def test_all_registered_clients_are_provider_clients():
    for pid, client in llm_client.PROVIDER_CLIENTS.items():
        assert isinstance(client, llm_client.ProviderClient)
        assert client.provider_id == pid
