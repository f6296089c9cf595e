"""Shared test fixtures for hashpipe."""

import os
import queue
import tempfile
import threading
import time

import pytest

from hashpipe.core.exceptions import ConnectionFailure
from hashpipe.gateway.connection import Connection
from hashpipe.gateway.message import Message

_END = object()


class FakeConnection(Connection):
    """In-memory connection.

    Inbound lines are queued with :meth:`push` and end with :meth:`close`.
    Sends are recorded; sends to targets in ``fail_targets`` raise.
    """

    def __init__(self, nickname="hashpipe", *, identify_error=None, fail_targets=()):
        self.nickname = nickname
        self.identify_error = identify_error
        self.fail_targets = set(fail_targets)
        self.identified = False
        self.sent: list[tuple] = []
        self.quits: list[str] = []
        self._inbound: queue.Queue = queue.Queue()
        self._lock = threading.Lock()

    def push(self, line):
        self._inbound.put(Message.parse(line))

    def push_error(self, exc):
        self._inbound.put(exc)

    def close(self):
        self._inbound.put(_END)

    def identify(self):
        if self.identify_error is not None:
            raise self.identify_error
        self.identified = True

    def messages(self):
        while True:
            item = self._inbound.get()
            if item is _END:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    def send_raw(self, message):
        with self._lock:
            self.sent.append(("raw", message.wire))

    def send_to(self, target, text):
        if target in self.fail_targets:
            raise ConnectionFailure(f"cannot send to {target}")
        with self._lock:
            self.sent.append(("privmsg", target, text))

    def disconnect(self, reason):
        with self._lock:
            self.quits.append(reason)


def wait_until(predicate, timeout=2.0, interval=0.01):
    """Poll *predicate* until true; fail the test on timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(interval)
    pytest.fail("condition not met in time")


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "irc": {
            "server": "irc.example.net",
            "port": 6697,
            "tls": True,
            "nick": "piper",
            "channels": ["#ops", "#builds"],
        },
        "pipe": {"quiet": True},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def fake_connection():
    """Factory for FakeConnection instances."""
    return FakeConnection


@pytest.fixture
def wait_for():
    return wait_until


@pytest.fixture
def stdin_pipe():
    """A real OS pipe: write lines into ``writer``, read them back as ``reader``.

    Reads block until data arrives or the writer is closed, like a terminal.
    """
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "r")
    writer = os.fdopen(write_fd, "w")
    yield reader, writer
    for f in (writer, reader):
        try:
            f.close()
        except OSError:
            pass
