"""
Container deployment helpers.

Thin wrappers around the ``docker`` CLI. Commands are built as argument
lists so they can be printed or inspected before running.
"""

import logging
import subprocess
from typing import List, Optional

logger = logging.getLogger("llm-relay.deploy")

DEFAULT_IMAGE = "llm-relay:latest"
CONTAINER_PORT = 8787


class DeployError(Exception):
    """A docker command failed."""

    def __init__(self, command: List[str], returncode: int):
        self.command = command
        self.returncode = returncode
        super().__init__(f"{' '.join(command)} exited with {returncode}")


def build_command(image: str = DEFAULT_IMAGE, context: str = ".") -> List[str]:
    return ["docker", "build", "-t", image, context]


def run_command(
    image: str = DEFAULT_IMAGE,
    port: int = CONTAINER_PORT,
    env_file: Optional[str] = ".env",
    name: str = "llm-relay",
) -> List[str]:
    cmd = ["docker", "run", "--rm", "--name", name, "-p", f"{port}:{CONTAINER_PORT}"]
    if env_file:
        cmd += ["--env-file", env_file]
    cmd.append(image)
    return cmd


def push_command(image: str = DEFAULT_IMAGE) -> List[str]:
    return ["docker", "push", image]


def docker_available() -> bool:
    """True when the docker daemon answers ``docker info``."""
    try:
        proc = subprocess.run(["docker", "info"], capture_output=True)
    except FileNotFoundError:
        return False
    return proc.returncode == 0


def execute(command: List[str]) -> None:
    """Run a command with inherited stdio; raise ``DeployError`` on failure."""
    logger.info(f"Running: {' '.join(command)}")
    proc = subprocess.run(command)
    if proc.returncode != 0:
        raise DeployError(command, proc.returncode)
