"""
LLM Relay - Backend-for-frontend for chat completion APIs

Forwards chat requests from a web client to an upstream LLM API, attaching
the server-held credential on the way out.
"""

__version__ = "0.1.0"

from .config import RelayConfig, ServerConfig, load_config
from .server import create_app

__all__ = [
    "__version__",
    "RelayConfig",
    "ServerConfig",
    "load_config",
    "create_app",
]
