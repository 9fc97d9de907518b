"""Shared fixtures: a fake upstream behind httpx.MockTransport."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from llm_relay.config import ServerConfig
from llm_relay.llm import create_proxy_app


API_KEY = "sk-test-secret"


class FakeUpstream:
    """Records outbound requests and answers with a canned response."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.json_body = {"id": "chatcmpl-1", "choices": []}
        self.text = None
        self.exc = None

    def reply(self, status_code=200, json_body=None, text=None):
        self.status_code = status_code
        self.json_body = json_body
        self.text = text

    def fail(self, exc):
        self.exc = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def config():
    return ServerConfig(api_key=API_KEY)


@pytest.fixture
def client(config, upstream):
    return TestClient(create_proxy_app(config, transport=upstream.transport))


@pytest.fixture
def make_client(upstream):
    """Build a client for an arbitrary ServerConfig."""
    def _make(server_config):
        return TestClient(create_proxy_app(server_config, transport=upstream.transport))
    return _make


@pytest.fixture(autouse=True)
def _clean_environ(monkeypatch):
    """Keep the developer's own relay settings out of the tests.

    Empty values count as unset and stop load_dotenv from filling them in.
    """
    for name in (
        "LLM_API_KEY",
        "LLM_API_URL",
        "LLM_MODEL",
        "LLM_TIMEOUT",
        "RELAY_HOST",
        "RELAY_PORT",
        "LLM_RELAY_CONFIG",
        "DEEPSEEK_API_KEY",
        "KIMI_API_KEY",
        "SILICONFLOW_API_KEY",
        "OPENROUTER_API_KEY",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
    ):
        monkeypatch.setenv(name, "")
