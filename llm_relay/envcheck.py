"""
Environment file validation.

Checks that a ``.env`` file exists and that every required variable holds a
real value rather than an empty string or a template placeholder.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, List

from dotenv import dotenv_values


@dataclass
class EnvVarSpec:
    """A variable the relay reads from its environment."""
    name: str
    description: str
    example: str
    optional: bool = False


ENV_VARS: List[EnvVarSpec] = [
    EnvVarSpec(
        name="LLM_API_KEY",
        description="Upstream LLM API key (kept server-side)",
        example="sk-...",
    ),
    EnvVarSpec(
        name="LLM_API_URL",
        description="Upstream base URL",
        example="https://api.deepseek.com",
        optional=True,
    ),
    EnvVarSpec(
        name="LLM_MODEL",
        description="Default model when a request names none",
        example="deepseek-chat",
        optional=True,
    ),
]


@dataclass
class EnvVarStatus:
    spec: EnvVarSpec
    configured: bool


@dataclass
class EnvCheckResult:
    """Outcome of checking one env file."""
    env_file: Path
    file_found: bool
    statuses: List[EnvVarStatus]

    @property
    def errors(self) -> List[EnvVarStatus]:
        return [s for s in self.statuses if not s.configured and not s.spec.optional]

    @property
    def warnings(self) -> List[EnvVarStatus]:
        return [s for s in self.statuses if not s.configured and s.spec.optional]

    @property
    def ok(self) -> bool:
        return self.file_found and not self.errors

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def is_placeholder(name: str, value: Optional[str]) -> bool:
    """True for unset values and template values like ``your_llm_api_key_here``."""
    if not value or not value.strip():
        return True
    return value == f"your_{name.lower()}_here" or "placeholder" in value.lower()


def check_env(values: Dict[str, Optional[str]], specs: List[EnvVarSpec] = None) -> List[EnvVarStatus]:
    specs = ENV_VARS if specs is None else specs
    return [
        EnvVarStatus(spec=spec, configured=not is_placeholder(spec.name, values.get(spec.name)))
        for spec in specs
    ]


def check_env_file(path: str | Path = ".env", specs: List[EnvVarSpec] = None) -> EnvCheckResult:
    path = Path(path)

    if not path.exists():
        return EnvCheckResult(env_file=path, file_found=False, statuses=[])

    values = dotenv_values(path)
    return EnvCheckResult(env_file=path, file_found=True, statuses=check_env(values, specs))


def render_env_template(specs: List[EnvVarSpec] = None) -> str:
    """Contents for ``.env.example``."""
    specs = ENV_VARS if specs is None else specs
    lines = ["# LLM Relay environment", ""]
    for spec in specs:
        lines.append(f"# {spec.description}{' (optional)' if spec.optional else ''}")
        lines.append(f"# e.g. {spec.example}")
        lines.append(f"{spec.name}=your_{spec.name.lower()}_here")
        lines.append("")
    return "\n".join(lines)
