"""``RemoteRunner`` implementations: run a shell command and return its stdout.

``LocalRunner`` runs on this machine (the proxy lives on the Pi itself);
``SSHRunner`` runs through the system ``ssh`` client, so keys, agents and
``~/.ssh/config`` work as they do in a terminal.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from typing import List, Optional, Sequence

from pi_concierge.config.constants import TOOL_DEFAULT_TIMEOUT_S
from pi_concierge.config.schema import ToolsConfig
from pi_concierge.domain import ToolBackendError

logger = logging.getLogger(__name__)

_MAX_STDERR_CHARS = 300


class LocalRunner:
    """Runs commands with ``sh -c`` on the local host."""

    def __init__(self, timeout_s: float = TOOL_DEFAULT_TIMEOUT_S) -> None:
        self._timeout = timeout_s

    def argv(self, command: str) -> List[str]:
        return ["sh", "-c", command]

    async def run(self, command: str) -> str:
        argv = self.argv(command)
        logger.debug("Running %s", " ".join(shlex.quote(a) for a in argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ToolBackendError(f"Cannot start {argv[0]!r}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise ToolBackendError(f"Command timed out after {self._timeout}s: {command}") from e

        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()[:_MAX_STDERR_CHARS]
            raise ToolBackendError(f"Command failed (rc={proc.returncode}): {command}: {err}")
        return stdout.decode("utf-8", errors="replace")


class SSHRunner(LocalRunner):
    """Runs commands on *host* over ssh."""

    def __init__(
        self,
        host: str,
        user: Optional[str] = None,
        port: int = 22,
        options: Sequence[str] = (),
        timeout_s: float = TOOL_DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__(timeout_s=timeout_s)
        self._destination = f"{user}@{host}" if user else host
        self._port = port
        self._options = list(options)

    def argv(self, command: str) -> List[str]:
        return ["ssh", *self._options, "-p", str(self._port), self._destination, command]


def build_runner(config: ToolsConfig) -> LocalRunner:
    """Runner for ``config.backend`` (``'ssh'`` or ``'local'``)."""
    if config.backend == "ssh":
        return SSHRunner(
            host=config.ssh_host or "",
            user=config.ssh_user,
            port=config.ssh_port,
            options=config.ssh_options,
            timeout_s=config.timeout_s,
        )
    if config.backend == "local":
        return LocalRunner(timeout_s=config.timeout_s)
    raise ValueError(f"Tools backend {config.backend!r} does not run shell commands")
