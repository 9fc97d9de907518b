"""
Project diagnostics.

Each check returns a ``CheckResult``; ``run_checks`` runs them in order and
turns unexpected exceptions into failed results.
"""

import sys
import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import httpx

from .config import ServerConfig
from .envcheck import check_env_file

logger = logging.getLogger("llm-relay.diagnose")

MIN_PYTHON = (3, 10)


class CheckStatus(Enum):
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"
    INFO = "info"


@dataclass
class CheckResult:
    name: str
    status: CheckStatus
    message: str

    @property
    def failed(self) -> bool:
        return self.status == CheckStatus.FAIL


def check_python_version(version: Tuple[int, ...] = None) -> CheckResult:
    version = tuple(version or sys.version_info[:3])
    current = ".".join(str(v) for v in version)
    if version[:2] < MIN_PYTHON:
        required = ".".join(str(v) for v in MIN_PYTHON)
        return CheckResult("Python version", CheckStatus.FAIL, f"{current} is too old, need >= {required}")
    return CheckResult("Python version", CheckStatus.OK, current)


def check_env(env_file: str | Path = ".env") -> CheckResult:
    result = check_env_file(env_file)
    if not result.file_found:
        return CheckResult(
            "Environment", CheckStatus.FAIL,
            f"{result.env_file} not found, copy .env.example and fill it in",
        )
    if result.errors:
        names = ", ".join(s.spec.name for s in result.errors)
        return CheckResult("Environment", CheckStatus.FAIL, f"missing or placeholder: {names}")
    if result.warnings:
        names = ", ".join(s.spec.name for s in result.warnings)
        return CheckResult("Environment", CheckStatus.WARN, f"optional not set: {names}")
    return CheckResult("Environment", CheckStatus.OK, "all variables configured")


def check_upstream(
    config: ServerConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> CheckResult:
    """Call the upstream model listing with the configured credential."""
    if not config.has_api_key:
        return CheckResult("Upstream API", CheckStatus.WARN, "skipped, LLM_API_KEY not set")

    url = f"{config.api_url.rstrip('/')}/models"
    try:
        with httpx.Client(timeout=10.0, transport=transport) as client:
            response = client.get(url, headers={"Authorization": f"Bearer {config.api_key}"})
    except httpx.HTTPError as e:
        return CheckResult("Upstream API", CheckStatus.WARN, f"unreachable ({e})")

    if response.is_success:
        return CheckResult("Upstream API", CheckStatus.OK, f"{config.api_url} reachable")
    if response.status_code in (401, 403):
        return CheckResult("Upstream API", CheckStatus.FAIL, f"credential rejected ({response.status_code})")
    return CheckResult("Upstream API", CheckStatus.WARN, f"unexpected status {response.status_code}")


def check_relay(base_url: str, transport: Optional[httpx.BaseTransport] = None) -> CheckResult:
    """Ping ``/api/health`` on a running relay."""
    try:
        with httpx.Client(timeout=5.0, transport=transport) as client:
            data = client.get(f"{base_url.rstrip('/')}/api/health").json()
    except (httpx.HTTPError, ValueError) as e:
        return CheckResult("Relay server", CheckStatus.INFO, f"not running ({e})")

    if not data.get("hasApiKey"):
        return CheckResult("Relay server", CheckStatus.WARN, "running without LLM_API_KEY")
    return CheckResult("Relay server", CheckStatus.OK, f"running (v{data.get('version', '?')})")


def check_git(cwd: str | Path = ".") -> CheckResult:
    try:
        proc = subprocess.run(
            ["git", "status", "--porcelain"],
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return CheckResult("Git status", CheckStatus.WARN, "git not available")

    if proc.returncode != 0:
        return CheckResult("Git status", CheckStatus.WARN, "not a git repository")

    changed = [line for line in proc.stdout.splitlines() if line.strip()]
    if not changed:
        return CheckResult("Git status", CheckStatus.OK, "working tree clean")
    return CheckResult("Git status", CheckStatus.INFO, f"{len(changed)} uncommitted file(s)")


def run_checks(checks: List[Tuple[str, Callable[[], CheckResult]]]) -> List[CheckResult]:
    results = []
    for name, fn in checks:
        try:
            results.append(fn())
        except Exception as e:
            logger.error(f"Check '{name}' crashed: {e}")
            results.append(CheckResult(name, CheckStatus.FAIL, str(e)))
    return results
