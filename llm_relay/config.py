"""
Configuration management for LLM Relay.

Settings come from the process environment and, optionally, a YAML file
with environment variable expansion. Nothing here is mutated after startup.
"""

import os
import re
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

import yaml

from .providers import PROVIDERS


DEFAULT_API_URL = "https://api.deepseek.com"
DEFAULT_MODEL = "deepseek-chat"
DEFAULT_TIMEOUT = 120.0


@dataclass
class HTTPConfig:
    """HTTP listener configuration."""
    host: str = "0.0.0.0"
    port: int = 8787
    workers: int = 1
    reload: bool = False


@dataclass
class ServerConfig:
    """Upstream credentials and defaults for the AI routes."""
    api_key: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    default_model: Optional[str] = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT
    # provider id -> key, for requests that name a registry provider
    provider_keys: Dict[str, str] = field(default_factory=dict)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ServerConfig":
        """Load config from environment variables."""
        env = os.environ if environ is None else environ

        api_key = env.get("LLM_API_KEY") or None
        api_url = env.get("LLM_API_URL") or DEFAULT_API_URL

        return cls(
            api_key=api_key,
            api_url=api_url,
            default_model=env.get("LLM_MODEL") or DEFAULT_MODEL,
            timeout=float(env.get("LLM_TIMEOUT") or DEFAULT_TIMEOUT),
            provider_keys=share_default_key(registry_keys(env), api_key, api_url),
        )


def registry_keys(env: Dict[str, str]) -> Dict[str, str]:
    """Keys from each provider's dedicated environment variables."""
    keys = {}
    for provider_id, provider in PROVIDERS.items():
        for key_env in provider.key_envs:
            if env.get(key_env):
                keys[provider_id] = env[key_env]
                break
    return keys


def share_default_key(
    provider_keys: Dict[str, str],
    api_key: Optional[str],
    api_url: str,
) -> Dict[str, str]:
    """Let the default credential back the registry entry for its own host.

    The default key is never attached to any other host.
    """
    keys = dict(provider_keys)
    if not api_key:
        return keys
    url = api_url.rstrip("/")
    for provider_id, provider in PROVIDERS.items():
        if provider_id not in keys and provider.url.rstrip("/") == url:
            keys[provider_id] = api_key
    return keys


@dataclass
class RelayConfig:
    """Root configuration for LLM Relay."""
    server: ServerConfig = field(default_factory=ServerConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "RelayConfig":
        env = os.environ if environ is None else environ
        return cls(
            server=ServerConfig.from_env(env),
            http=HTTPConfig(
                host=env.get("RELAY_HOST") or "0.0.0.0",
                port=int(env.get("RELAY_PORT") or "8787"),
            ),
        )


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values."""
    if isinstance(value, str):
        # Match ${VAR} or $VAR patterns
        pattern = r'\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)'

        def replace(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, "")

        return re.sub(pattern, replace, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(v) for v in value]
    return value


def load_config(path: str | Path) -> RelayConfig:
    """Load configuration from YAML file.

    Keys missing from the file fall back to the environment, so a file that
    only sets ``http.port`` still picks up ``LLM_API_KEY``.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    data = expand_env_vars(raw)
    defaults = RelayConfig.from_env()

    http_data = data.get("http") or {}
    http = HTTPConfig(
        host=http_data.get("host", defaults.http.host),
        port=int(http_data.get("port", defaults.http.port)),
        workers=int(http_data.get("workers", 1)),
        reload=bool(http_data.get("reload", False)),
    )

    llm_data = data.get("llm") or {}
    provider_keys = registry_keys(os.environ)
    for provider_id, key in (llm_data.get("provider_keys") or {}).items():
        if key:
            provider_keys[provider_id] = key

    api_key = llm_data.get("api_key") or defaults.server.api_key
    api_url = llm_data.get("api_url") or defaults.server.api_url

    server = ServerConfig(
        api_key=api_key,
        api_url=api_url,
        default_model=llm_data.get("model") or defaults.server.default_model,
        timeout=float(llm_data.get("timeout", defaults.server.timeout)),
        provider_keys=share_default_key(provider_keys, api_key, api_url),
    )

    return RelayConfig(server=server, http=http)


def create_default_config() -> str:
    """Generate default configuration YAML."""
    return """# LLM Relay Configuration

http:
  host: 0.0.0.0
  port: 8787
  workers: 1

# Default upstream (any OpenAI-compatible chat completions API)
llm:
  api_key: ${LLM_API_KEY}
  api_url: https://api.deepseek.com
  model: deepseek-chat
  timeout: 120

  # Keys for requests that pick a provider explicitly
  # provider_keys:
  #   kimi: ${KIMI_API_KEY}
  #   openrouter: ${OPENROUTER_API_KEY}
"""
