"""
Upstream provider registry.

Known chat-completion APIs the relay can forward to when a request names a
provider explicitly. Requests without a provider go to the configured
default upstream (``LLM_API_URL``), which is not part of this table.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any


OPENAI_FORMAT = "openai"
ANTHROPIC_FORMAT = "anthropic"

ANTHROPIC_VERSION = "2023-06-01"


@dataclass
class ProviderConfig:
    """A single upstream LLM API."""
    id: str
    name: str
    url: str
    models: List[str] = field(default_factory=list)
    key_envs: List[str] = field(default_factory=list)
    wire_format: str = OPENAI_FORMAT
    extra_headers: Dict[str, str] = field(default_factory=dict)

    @property
    def default_model(self) -> Optional[str]:
        return self.models[0] if self.models else None

    @property
    def chat_path(self) -> str:
        if self.wire_format == ANTHROPIC_FORMAT:
            return "/messages"
        return "/chat/completions"

    def build_headers(self, api_key: str) -> Dict[str, str]:
        """Outbound headers carrying the server-side credential."""
        headers = {"Content-Type": "application/json"}
        if self.wire_format == ANTHROPIC_FORMAT:
            headers["x-api-key"] = api_key
            headers["anthropic-version"] = ANTHROPIC_VERSION
        else:
            headers["Authorization"] = f"Bearer {api_key}"
        headers.update(self.extra_headers)
        return headers

    def summary(self, configured: bool, include_models: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "configured": configured}
        if include_models:
            data["models"] = list(self.models)
        return data


PROVIDERS: Dict[str, ProviderConfig] = {
    "deepseek": ProviderConfig(
        id="deepseek",
        name="DeepSeek",
        url="https://api.deepseek.com",
        models=["deepseek-chat", "deepseek-reasoner", "deepseek-coder"],
        key_envs=["DEEPSEEK_API_KEY"],
    ),
    "kimi": ProviderConfig(
        id="kimi",
        name="Kimi (Moonshot)",
        url="https://api.moonshot.cn/v1",
        models=[
            "kimi-k2-thinking",
            "moonshot-v1-128k",
            "moonshot-v1-32k",
            "moonshot-v1-8k",
            "kimi-latest",
        ],
        key_envs=["KIMI_API_KEY"],
    ),
    "siliconflow": ProviderConfig(
        id="siliconflow",
        name="SiliconFlow",
        url="https://api.siliconflow.cn/v1",
        models=[
            "deepseek-ai/DeepSeek-V3",
            "deepseek-ai/DeepSeek-R1",
            "Qwen/Qwen2.5-72B-Instruct",
            "Qwen/QwQ-32B",
            "THUDM/GLM-4-9B-0414",
            "meta-llama/Llama-3.3-70B-Instruct",
            "Pro/Qwen/Qwen2.5-7B-Instruct",
        ],
        key_envs=["SILICONFLOW_API_KEY"],
    ),
    "openrouter": ProviderConfig(
        id="openrouter",
        name="OpenRouter",
        url="https://openrouter.ai/api/v1",
        models=[
            "anthropic/claude-3.5-sonnet",
            "openai/gpt-4o",
            "openai/o1",
            "google/gemini-2.0-flash",
            "deepseek/deepseek-r1",
            "moonshotai/kimi-k2-thinking",
        ],
        key_envs=["OPENROUTER_API_KEY"],
        extra_headers={"X-Title": "LLM Relay"},
    ),
    "openai": ProviderConfig(
        id="openai",
        name="OpenAI",
        url="https://api.openai.com/v1",
        models=["gpt-4o", "gpt-4o-mini", "o1", "o1-mini", "o3-mini", "gpt-4-turbo"],
        key_envs=["OPENAI_API_KEY"],
    ),
    "anthropic": ProviderConfig(
        id="anthropic",
        name="Anthropic",
        url="https://api.anthropic.com/v1",
        models=[
            "claude-sonnet-4-20250514",
            "claude-3-5-sonnet-latest",
            "claude-3-5-haiku-latest",
            "claude-3-opus-latest",
        ],
        key_envs=["ANTHROPIC_API_KEY"],
        wire_format=ANTHROPIC_FORMAT,
    ),
}


def get_provider(provider_id: str) -> Optional[ProviderConfig]:
    return PROVIDERS.get(provider_id)


def default_provider(api_url: str, default_model: Optional[str]) -> ProviderConfig:
    """Provider entry for the configured default upstream.

    Borrows the display name of a registry entry with the same base URL so
    upstream errors read "DeepSeek API Error" rather than a generic label.
    """
    url = api_url.rstrip("/")
    name = "LLM"
    for provider in PROVIDERS.values():
        if provider.url.rstrip("/") == url:
            name = provider.name
            break

    return ProviderConfig(
        id="default",
        name=name,
        url=url,
        models=[default_model] if default_model else [],
        key_envs=["LLM_API_KEY"],
    )
