"""
LLM HTTP Relay

Backend-for-frontend that forwards chat completion requests from a web
client to an OpenAI-compatible LLM API. The server-side credential is
attached on the outbound leg only and never returned to callers.

Routes (base path ``/api``):
    GET  /health        -> status and credential presence
    GET  /ai/providers  -> provider table
    POST /ai/chat       -> upstream /chat/completions
    GET  /ai/models     -> upstream /models
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Any, Union

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import ServerConfig
from ..providers import PROVIDERS, ProviderConfig, default_provider, get_provider
from .models import ChatRequest, RelayError
from .payloads import build_chat_body, normalize_chat_response, resolve_model
from .upstream import UpstreamClient, UpstreamResult

logger = logging.getLogger("llm-relay.proxy")

API_PREFIX = "/api"


@dataclass
class UpstreamTarget:
    """Resolved upstream for one request."""
    provider: ProviderConfig
    api_key: str
    default_model: Optional[str]


# =============================================================================
# Boundary checks
# =============================================================================

def missing_key_error(provider: ProviderConfig) -> RelayError:
    return RelayError(
        status_code=500,
        error="Missing API Key",
        message=f"{provider.key_envs[0]} is not configured",
        extra={"provider": provider.name},
    )


def resolve_target(config: ServerConfig, provider_id: Any = None) -> Union[UpstreamTarget, RelayError]:
    """
    Pick the upstream and credential for a request.

    With no credential configured at all this fails with 500 before the
    provider name is even looked at.
    """
    default = default_provider(config.api_url, config.default_model)

    if not config.has_api_key and not config.provider_keys:
        return missing_key_error(default)

    if provider_id is None:
        if not config.has_api_key:
            return missing_key_error(default)
        return UpstreamTarget(
            provider=default,
            api_key=config.api_key,
            default_model=config.default_model,
        )

    provider = get_provider(provider_id) if isinstance(provider_id, str) else None
    if provider is None:
        return RelayError(
            status_code=400,
            error="Unknown provider",
            message=f"Unsupported provider: {provider_id}",
            extra={"available": list(PROVIDERS)},
        )

    api_key = config.provider_keys.get(provider.id)
    if not api_key:
        return missing_key_error(provider)

    return UpstreamTarget(provider=provider, api_key=api_key, default_model=provider.default_model)


def parse_chat_request(body: Any) -> Union[ChatRequest, RelayError]:
    """Validate an inbound chat body without contacting the upstream."""
    if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
        return RelayError(
            status_code=400,
            error="Invalid request",
            message="messages must be an array",
        )

    try:
        return ChatRequest.model_validate(body)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        return RelayError(status_code=400, error="Invalid request", message=details)


def relay_status(status_code: int) -> int:
    """Upstream error status to hand back to the caller.

    Codes outside 300-599 are not legal error responses and become 502.
    """
    if 300 <= status_code <= 599:
        return status_code
    return 502


def upstream_error(provider: ProviderConfig, result: UpstreamResult) -> RelayError:
    if result.error is not None:
        return internal_error(result.error)

    return RelayError(
        status_code=relay_status(result.status_code),
        error=f"{provider.name} API Error",
        message=result.text or "",
        extra={"status": result.status_code},
    )


def internal_error(message: str) -> RelayError:
    return RelayError(status_code=500, error="Internal Server Error", message=message)


def error_response(error: RelayError) -> JSONResponse:
    return JSONResponse(content=error.to_dict(), status_code=error.status_code)


# =============================================================================
# Proxy
# =============================================================================

class LLMProxy:
    """
    HTTP relay for OpenAI-compatible LLM APIs.

    Configuration is passed in explicitly; ``transport`` replaces the httpx
    network transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: ServerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.transport = transport

        self.app = FastAPI(
            title="LLM Relay",
            description="Backend-for-frontend relay for chat completion APIs",
            version=__version__,
            docs_url=f"{API_PREFIX}/docs",
            redoc_url=None,
            openapi_url=f"{API_PREFIX}/openapi.json",
            redirect_slashes=False,
        )
        self.app.state.config = config

        self.router = APIRouter(prefix=API_PREFIX, redirect_slashes=False)
        self._setup_routes()
        self.app.include_router(self.router)
        self._setup_exception_handlers()
        self._setup_middleware()

    def _setup_middleware(self):
        # Registered before CORS so the 500 envelope still gets CORS headers
        @self.app.middleware("http")
        async def catch_unhandled(request: Request, call_next):
            try:
                return await call_next(request)
            except Exception as e:
                logger.error(f"Unhandled error on {request.url.path}: {e}")
                return error_response(internal_error(str(e)))

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    def _setup_exception_handlers(self):
        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            # A known path with the wrong method is still an undefined route
            if exc.status_code in (404, 405):
                return JSONResponse(
                    content={"error": "Not Found", "path": request.url.path},
                    status_code=404,
                )
            return JSONResponse(
                content={"error": str(exc.detail), "message": str(exc.detail)},
                status_code=exc.status_code,
            )

    def _client(self, target: UpstreamTarget) -> UpstreamClient:
        return UpstreamClient(
            base_url=target.provider.url,
            headers=target.provider.build_headers(target.api_key),
            timeout=self.config.timeout,
            transport=self.transport,
            provider_name=target.provider.name,
        )

    def _setup_routes(self):
        @self.router.get("/health")
        async def health():
            return {
                "status": "ok",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "hasApiKey": self.config.has_api_key,
                "version": __version__,
                "providers": {
                    provider_id: provider.summary(provider_id in self.config.provider_keys)
                    for provider_id, provider in PROVIDERS.items()
                },
            }

        @self.router.get("/ai/providers")
        async def providers():
            return {
                "providers": {
                    provider_id: provider.summary(
                        provider_id in self.config.provider_keys,
                        include_models=True,
                    )
                    for provider_id, provider in PROVIDERS.items()
                }
            }

        @self.router.post("/ai/chat")
        async def chat(request: Request):
            """Relay a chat completion to the upstream API."""
            try:
                try:
                    body = await request.json()
                except ValueError:
                    body = None

                provider_id = body.get("provider") if isinstance(body, dict) else None
                target = resolve_target(self.config, provider_id)
                if isinstance(target, RelayError):
                    logger.warning(f"Chat rejected: {target.error}")
                    return error_response(target)

                chat_request = parse_chat_request(body)
                if isinstance(chat_request, RelayError):
                    return error_response(chat_request)

                model = resolve_model(chat_request, target.default_model)
                payload = build_chat_body(target.provider, chat_request, model)
                logger.info(
                    f"Chat → {target.provider.name} model={model} "
                    f"messages={len(chat_request.messages)}"
                )

                result = await self._client(target).post_json(target.provider.chat_path, payload)
                if not result.ok:
                    return error_response(upstream_error(target.provider, result))

                return JSONResponse(
                    content=normalize_chat_response(target.provider, result.data),
                    status_code=200,
                )
            except Exception as e:
                logger.error(f"AI Chat Error: {e}")
                return error_response(internal_error(str(e)))

        @self.router.get("/ai/models")
        async def models(provider: Optional[str] = None):
            """Relay the upstream model listing."""
            try:
                target = resolve_target(self.config, provider)
                if isinstance(target, RelayError):
                    return error_response(target)

                result = await self._client(target).get_json("/models")
                if not result.ok:
                    return error_response(upstream_error(target.provider, result))

                return JSONResponse(content=result.data, status_code=200)
            except Exception as e:
                logger.error(f"AI Models Error: {e}")
                return error_response(internal_error(str(e)))


def create_proxy_app(
    config: Optional[ServerConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Factory function for creating the relay app."""
    proxy = LLMProxy(config=config or ServerConfig.from_env(), transport=transport)
    return proxy.app
