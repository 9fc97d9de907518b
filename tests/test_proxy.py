"""Tests for the relay routes."""

import httpx
from fastapi.testclient import TestClient

from llm_relay.config import ServerConfig
from llm_relay.llm import create_proxy_app


API_KEY = "sk-test-secret"


HI = {"messages": [{"role": "user", "content": "hi"}]}


# =============================================================================
# Health
# =============================================================================

def test_health_reports_credential(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["hasApiKey"] is True
    assert "timestamp" in data
    assert API_KEY not in resp.text


def test_health_without_credential(make_client):
    resp = make_client(ServerConfig()).get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["hasApiKey"] is False


def test_providers_listing_hides_keys(make_client):
    resp = make_client(ServerConfig(api_key=API_KEY, provider_keys={"kimi": "kimi-secret"})).get(
        "/api/ai/providers"
    )

    assert resp.status_code == 200
    providers = resp.json()["providers"]
    assert providers["kimi"]["configured"] is True
    assert providers["openai"]["configured"] is False
    assert "deepseek-chat" in providers["deepseek"]["models"]
    assert "kimi-secret" not in resp.text


# =============================================================================
# Chat: pre-flight failures never reach the upstream
# =============================================================================

def test_chat_without_credential_is_500(make_client, upstream):
    client = make_client(ServerConfig())

    for body in (HI, {"messages": "nope"}, {}):
        resp = client.post("/api/ai/chat", json=body)
        assert resp.status_code == 500
        assert resp.json()["error"] == "Missing API Key"
        assert "LLM_API_KEY" in resp.json()["message"]

    resp = client.post("/api/ai/chat", content=b"not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 500
    assert upstream.requests == []


def test_chat_missing_messages_is_400(client, upstream):
    resp = client.post("/api/ai/chat", json={"model": "x"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request", "message": "messages must be an array"}
    assert upstream.requests == []


def test_chat_messages_not_a_list_is_400(client, upstream):
    resp = client.post("/api/ai/chat", json={"messages": {"role": "user", "content": "hi"}})

    assert resp.status_code == 400
    assert upstream.requests == []


def test_chat_invalid_json_is_400(client, upstream):
    resp = client.post("/api/ai/chat", content=b"{broken", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert upstream.requests == []


def test_chat_malformed_message_is_400(client, upstream):
    resp = client.post("/api/ai/chat", json={"messages": [{"role": "user"}]})

    assert resp.status_code == 400
    assert "content" in resp.json()["message"]
    assert upstream.requests == []


def test_chat_unknown_provider_is_400(client, upstream):
    resp = client.post("/api/ai/chat", json={**HI, "provider": "nope"})

    assert resp.status_code == 400
    data = resp.json()
    assert data["error"] == "Unknown provider"
    assert "deepseek" in data["available"]
    assert upstream.requests == []


# =============================================================================
# Chat: outbound request
# =============================================================================

def test_chat_outbound_request_defaults(client, upstream):
    """A bare message list is forwarded with every default applied."""
    upstream.reply(200, {"id": "abc", "choices": [{"message": {"content": "hello"}}]})

    resp = client.post("/api/ai/chat", json=HI)

    assert resp.status_code == 200
    assert len(upstream.requests) == 1

    request = upstream.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.deepseek.com/chat/completions"
    assert request.headers["Authorization"] == f"Bearer {API_KEY}"
    assert upstream.last_body == {
        "model": "deepseek-chat",
        "messages": [{"role": "user", "content": "hi"}],
        "stream": False,
        "temperature": 0.7,
        "max_tokens": 2048,
    }


def test_chat_uses_configured_default_model(make_client, upstream):
    client = make_client(ServerConfig(api_key=API_KEY, api_url="https://llm.example/v1", default_model="my-model"))

    client.post("/api/ai/chat", json=HI)

    assert str(upstream.requests[0].url) == "https://llm.example/v1/chat/completions"
    assert upstream.last_body["model"] == "my-model"


def test_chat_falls_back_when_no_default_model(make_client, upstream):
    client = make_client(ServerConfig(api_key=API_KEY, default_model=None))

    client.post("/api/ai/chat", json=HI)

    assert upstream.last_body["model"] == "deepseek-chat"


def test_chat_explicit_fields_win(client, upstream):
    client.post("/api/ai/chat", json={
        **HI,
        "model": "deepseek-reasoner",
        "temperature": 0.1,
        "max_tokens": 64,
        "stream": False,
    })

    body = upstream.last_body
    assert body["model"] == "deepseek-reasoner"
    assert body["temperature"] == 0.1
    assert body["max_tokens"] == 64


def test_chat_null_fields_take_defaults(client, upstream):
    client.post("/api/ai/chat", json={**HI, "temperature": None, "max_tokens": None})

    assert upstream.last_body["temperature"] == 0.7
    assert upstream.last_body["max_tokens"] == 2048


def test_chat_registry_provider(make_client, upstream):
    client = make_client(ServerConfig(api_key=API_KEY, provider_keys={"kimi": "kimi-secret"}))

    resp = client.post("/api/ai/chat", json={**HI, "provider": "kimi"})

    assert resp.status_code == 200
    request = upstream.requests[0]
    assert str(request.url) == "https://api.moonshot.cn/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer kimi-secret"
    assert upstream.last_body["model"] == "kimi-k2-thinking"


def test_chat_registry_provider_without_key_is_500(client, upstream):
    resp = client.post("/api/ai/chat", json={**HI, "provider": "openai"})

    assert resp.status_code == 500
    assert "OPENAI_API_KEY" in resp.json()["message"]
    assert upstream.requests == []


def test_chat_default_key_never_sent_to_other_registry_host(make_client, upstream):
    config = ServerConfig.from_env({
        "LLM_API_KEY": "sk-openai-secret",
        "LLM_API_URL": "https://api.openai.com/v1",
    })
    client = make_client(config)

    resp = client.post("/api/ai/chat", json={**HI, "provider": "deepseek"})

    assert resp.status_code == 500
    assert resp.json()["error"] == "Missing API Key"
    assert "DEEPSEEK_API_KEY" in resp.json()["message"]
    assert upstream.requests == []


def test_chat_default_key_backs_its_own_registry_entry(make_client, upstream):
    client = make_client(ServerConfig.from_env({"LLM_API_KEY": API_KEY}))

    client.post("/api/ai/chat", json={**HI, "provider": "deepseek"})

    request = upstream.requests[0]
    assert str(request.url) == "https://api.deepseek.com/chat/completions"
    assert request.headers["Authorization"] == f"Bearer {API_KEY}"


def test_chat_fractional_max_tokens_is_forwarded(client, upstream):
    resp = client.post("/api/ai/chat", json={**HI, "max_tokens": 1.5})

    assert resp.status_code == 200
    assert upstream.last_body["max_tokens"] == 1.5


def test_chat_non_positive_max_tokens_is_400(client, upstream):
    resp = client.post("/api/ai/chat", json={**HI, "max_tokens": 0})

    assert resp.status_code == 400
    assert upstream.requests == []


def test_chat_anthropic_is_normalized(make_client, upstream):
    client = make_client(ServerConfig(provider_keys={"anthropic": "ant-secret"}))
    upstream.reply(200, {
        "id": "msg_1",
        "model": "claude-sonnet-4-20250514",
        "content": [{"type": "text", "text": "bonjour"}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 3, "output_tokens": 1},
    })

    resp = client.post("/api/ai/chat", json={
        "provider": "anthropic",
        "messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ],
    })

    assert resp.status_code == 200
    request = upstream.requests[0]
    assert str(request.url) == "https://api.anthropic.com/v1/messages"
    assert request.headers["x-api-key"] == "ant-secret"
    assert "Authorization" not in request.headers
    assert upstream.last_body["system"] == "be brief"
    assert upstream.last_body["messages"] == [{"role": "user", "content": "hi"}]

    data = resp.json()
    assert data["object"] == "chat.completion"
    assert data["choices"][0]["message"] == {"role": "assistant", "content": "bonjour"}
    assert data["choices"][0]["finish_reason"] == "end_turn"


# =============================================================================
# Chat: upstream outcomes
# =============================================================================

def test_chat_relays_success_verbatim(client, upstream):
    payload = {
        "id": "chatcmpl-42",
        "object": "chat.completion",
        "model": "deepseek-chat",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": "yo"}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
    }
    upstream.reply(200, payload)

    resp = client.post("/api/ai/chat", json=HI)

    assert resp.status_code == 200
    assert resp.json() == payload


def test_chat_relays_upstream_error_status(client, upstream):
    upstream.reply(429, text="rate limit exceeded")

    resp = client.post("/api/ai/chat", json=HI)

    assert resp.status_code == 429
    data = resp.json()
    assert data["status"] == 429
    assert data["message"] == "rate limit exceeded"
    assert data["error"] == "DeepSeek API Error"


def test_chat_network_failure_is_500(client, upstream):
    upstream.fail(httpx.ConnectError("connection refused"))

    resp = client.post("/api/ai/chat", json=HI)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error", "message": "connection refused"}


def test_chat_malformed_upstream_json_is_500(client, upstream):
    upstream.reply(200, text="<html>oops</html>")

    resp = client.post("/api/ai/chat", json=HI)

    assert resp.status_code == 500
    assert resp.json()["error"] == "Internal Server Error"


# =============================================================================
# Models
# =============================================================================

def test_models_relays_listing(client, upstream):
    listing = {"object": "list", "data": [{"id": "deepseek-chat", "owned_by": "deepseek"}]}
    upstream.reply(200, listing)

    resp = client.get("/api/ai/models")

    assert resp.status_code == 200
    assert resp.json() == listing
    request = upstream.requests[0]
    assert request.method == "GET"
    assert str(request.url) == "https://api.deepseek.com/models"
    assert request.headers["Authorization"] == f"Bearer {API_KEY}"


def test_models_without_credential_is_500(make_client, upstream):
    resp = make_client(ServerConfig()).get("/api/ai/models")

    assert resp.status_code == 500
    assert upstream.requests == []


def test_models_relays_upstream_error(client, upstream):
    upstream.reply(401, text='{"error": "bad key"}')

    resp = client.get("/api/ai/models")

    assert resp.status_code == 401
    assert resp.json()["message"] == '{"error": "bad key"}'


def test_models_network_failure_is_500(client, upstream):
    upstream.fail(httpx.ReadTimeout("timed out"))

    resp = client.get("/api/ai/models")

    assert resp.status_code == 500
    assert resp.json()["message"] == "timed out"


# =============================================================================
# Fallback and CORS
# =============================================================================

def test_unknown_path_is_404(client):
    resp = client.get("/api/does-not-exist")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found", "path": "/api/does-not-exist"}


def test_wrong_method_is_404(client):
    resp = client.get("/api/ai/chat")

    assert resp.status_code == 404
    assert resp.json()["path"] == "/api/ai/chat"


def test_cors_preflight(client):
    resp = client.options(
        "/api/ai/chat",
        headers={
            "Origin": "https://app.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "POST" in resp.headers["access-control-allow-methods"]


def test_trailing_slash_is_404(client):
    resp = client.get("/api/health/", follow_redirects=False)

    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found", "path": "/api/health/"}


def test_unhandled_error_is_500_with_cors(config, upstream):
    app = create_proxy_app(config, transport=upstream.transport)

    @app.get("/api/explode")
    async def explode():
        raise RuntimeError("kaboom")

    client = TestClient(app)
    resp = client.get("/api/explode", headers={"Origin": "https://app.example"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error", "message": "kaboom"}
    assert resp.headers["access-control-allow-origin"] == "*"
