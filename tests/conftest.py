# tests/conftest.py
from __future__ import annotations

from types import SimpleNamespace

import pytest
from invoke.exceptions import CommandTimedOut


class FakeConnection:
    """Stands in for fabric.Connection; records every script it is asked to run."""

    instances: list[FakeConnection] = []
    exit_codes: dict[str, int] = {}
    open_error: Exception | None = None
    timeout_hosts: set[str] = set()

    def __init__(self, host, user=None, port=None, **kwargs):
        self.host = host
        self.user = user
        self.port = port
        self.kwargs = kwargs
        self.is_connected = False
        self.closed = False
        self.scripts: list[str] = []
        FakeConnection.instances.append(self)

    def open(self):
        if FakeConnection.open_error is not None:
            raise FakeConnection.open_error
        self.is_connected = True

    def run(self, command, warn=False, hide=False, timeout=None):
        assert warn is True
        self.scripts.append(command)
        result = SimpleNamespace(
            exited=FakeConnection.exit_codes.get(self.host, 0),
            stdout=f"ran on {self.host}\n",
            stderr="",
        )
        if self.host in FakeConnection.timeout_hosts:
            raise CommandTimedOut(result, timeout)
        return result

    def close(self):
        self.is_connected = False
        self.closed = True


@pytest.fixture
def fake_ssh(monkeypatch: pytest.MonkeyPatch) -> type[FakeConnection]:
    FakeConnection.instances = []
    FakeConnection.exit_codes = {}
    FakeConnection.open_error = None
    FakeConnection.timeout_hosts = set()
    monkeypatch.setattr("shipforge.executor.sessions.Connection", FakeConnection)
    return FakeConnection
