"""Shared pytest fixtures for the logto test suite."""

import os

import pytest

from logto.config import Config, Destination


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep LOGTO_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("LOGTO_"):
            monkeypatch.delenv(key)


@pytest.fixture()
def kmsg_file(tmp_path):
    """A regular file standing in for /dev/kmsg."""
    path = tmp_path / "kmsg"
    path.write_bytes(b"")
    return path


@pytest.fixture()
def syslog_calls(monkeypatch):
    """Capture syslog submissions instead of talking to the daemon."""
    import syslog

    calls = []
    monkeypatch.setattr(syslog, "openlog", lambda *a, **kw: None)
    monkeypatch.setattr(syslog, "closelog", lambda: None)
    monkeypatch.setattr(syslog, "syslog", lambda prio, msg: calls.append((prio, msg)))
    return calls


def make_config(**overrides) -> Config:
    values = {"destination": Destination.SYSLOG, "command": ("true",)}
    values.update(overrides)
    return Config(**values)
