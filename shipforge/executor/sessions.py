from __future__ import annotations

import logging
import os
import signal
import subprocess
from dataclasses import dataclass

from fabric import Connection
from invoke.exceptions import CommandTimedOut
from paramiko.ssh_exception import SSHException

from shipforge.hosts import Endpoint

from .types import TIMEOUT_EXIT_STATUS, ConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completed:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _kill_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


class LocalSession:
    """Runs scripts through the local shell."""

    def __init__(self, endpoint: Endpoint) -> None:
        self.endpoint = endpoint

    def run(self, script: str, *, timeout: float | None = None) -> Completed:
        # Own session, so a timeout or interrupt can kill every process the script started.
        try:
            proc = subprocess.Popen(
                script,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                start_new_session=True,
            )
        except OSError as exc:
            raise ConnectionError(self.endpoint.label, str(exc)) from exc

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill_group(proc)
            stdout, stderr = proc.communicate()
            return Completed(TIMEOUT_EXIT_STATUS, _text(stdout), _text(stderr), timed_out=True)
        except BaseException:
            _kill_group(proc)
            proc.wait()
            raise

        return Completed(proc.returncode, stdout, stderr)

    def close(self) -> None:
        pass


class SshSession:
    """One SSH connection to a remote endpoint, opened on first use."""

    def __init__(self, endpoint: Endpoint, *, connect_timeout: float | None = None) -> None:
        self.endpoint = endpoint
        connect_kwargs = {}
        if endpoint.key_filename is not None:
            connect_kwargs["key_filename"] = endpoint.key_filename

        self.connection = Connection(
            endpoint.host,
            user=endpoint.user,
            port=endpoint.port,
            connect_timeout=connect_timeout,
            forward_agent=endpoint.forward_agent,
            connect_kwargs=connect_kwargs,
        )

    def open(self) -> None:
        if self.connection.is_connected:
            return
        logger.debug("Connecting to %s", self.endpoint.label)
        try:
            self.connection.open()
        except (SSHException, OSError) as exc:
            raise ConnectionError(self.endpoint.label, str(exc) or type(exc).__name__) from exc

    def run(self, script: str, *, timeout: float | None = None) -> Completed:
        self.open()
        try:
            result = self.connection.run(script, warn=True, hide=True, timeout=timeout)
        except CommandTimedOut as exc:
            return Completed(
                TIMEOUT_EXIT_STATUS,
                _text(exc.result.stdout),
                _text(exc.result.stderr),
                timed_out=True,
            )
        except (SSHException, OSError) as exc:
            raise ConnectionError(self.endpoint.label, str(exc) or type(exc).__name__) from exc

        return Completed(result.exited, result.stdout, result.stderr)

    def close(self) -> None:
        self.connection.close()


class SessionPool:
    """
    Sessions opened during one run, keyed by endpoint.

    A session is reused by every task that targets the same endpoint. The
    pool belongs to a single run; `close` releases every session it opened.
    """

    def __init__(self, *, connect_timeout: float | None = None) -> None:
        self.connect_timeout = connect_timeout
        self._sessions: dict[Endpoint, LocalSession | SshSession] = {}

    def get(self, endpoint: Endpoint) -> LocalSession | SshSession:
        session = self._sessions.get(endpoint)
        if session is None:
            if endpoint.is_local:
                session = LocalSession(endpoint)
            else:
                session = SshSession(endpoint, connect_timeout=self.connect_timeout)
            self._sessions[endpoint] = session
        return session

    def close(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            try:
                session.close()
            except (SSHException, OSError) as exc:
                logger.warning("Failed to close session to %s: %s", session.endpoint.label, exc)

    def __len__(self) -> int:
        return len(self._sessions)
