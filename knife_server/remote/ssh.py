"""
Remote command execution on the chef server.

Uses `asyncssh`, driven synchronously so callers stay plain blocking code.
"""

import asyncio
import shlex
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Coroutine, List, Optional, TypeVar

import asyncssh
from loguru import logger

T = TypeVar("T")

USER_SWITCH_COMMAND = 'sudo USER=root HOME="$(getent passwd root | cut -d : -f 6)"'


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    return str(value)


class SSHCommandError(Exception):
    def __init__(self, host: str, command: str, return_code: int, stderr: str):
        self.host = host
        self.command = command
        self.return_code = return_code
        self.stderr = stderr
        super().__init__(f"Command on {host} exited with {return_code}: {stderr.strip()}")


class SSH:
    """
    SSH connection parameters for one host, with a blocking ``exec``.

    Commands run as root: a non-root user gets them wrapped in ``sudo``.
    """

    def __init__(
        self,
        host: Optional[str],
        user: str = "root",
        port: int = 22,
        keys: Optional[List[Optional[str]]] = None,
        known_hosts: Optional[str] = None,
        connect_timeout: float = 30.0,
    ):
        if not host:
            raise ValueError("SSH host is required")
        self.host = host
        self.user = user
        self.port = port
        self.keys = [k for k in (keys or []) if k]
        self.known_hosts = known_hosts
        self.connect_timeout = connect_timeout

    def _run_coro(self, coro: Coroutine[Any, Any, T]) -> T:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)

        with ThreadPoolExecutor(max_workers=1) as executor:
            fut = executor.submit(asyncio.run, coro)
            return fut.result()

    async def _connect(self) -> asyncssh.SSHClientConnection:
        return await asyncssh.connect(
            self.host,
            port=self.port,
            username=self.user,
            client_keys=self.keys or None,
            known_hosts=self.known_hosts,
            connect_timeout=self.connect_timeout,
        )

    def full_command(self, command: str) -> str:
        if self.user == "root":
            return command
        return f"{USER_SWITCH_COMMAND} bash -c {shlex.quote(command)}"

    async def _exec(self, command: str, input: Optional[str]) -> str:
        full_cmd = self.full_command(command)
        async with await self._connect() as conn:
            res = await conn.run(full_cmd, input=input, check=False)
        exit_status = res.exit_status if res.exit_status is not None else -1
        if exit_status != 0:
            raise SSHCommandError(self.host, command, int(exit_status), _as_text(res.stderr))
        return _as_text(res.stdout)

    def exec(self, command: str, input: Optional[str] = None) -> str:
        """Run ``command`` on the host and return its stdout.

        Raises SSHCommandError on a nonzero exit status.
        """
        logger.debug(f"ssh {self.user}@{self.host}:{self.port} $ {command}")
        return self._run_coro(self._exec(command, input))
