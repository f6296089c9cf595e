"""Supervisor: owns the process lifecycle of a pipe.

Runs two phases on the main thread:

* **JOINING**: only the connection reader runs.  The supervisor waits
  until the server has finished registration *and* every required
  channel has been joined (channels the server refuses stop being
  required).
* **RELAYING**: the input relay is started and lines flow until input
  ends, the connection goes away, a fatal error is reported, or a
  termination signal arrives.

Whichever way a phase ends, shutdown sends exactly one QUIT.
"""

from __future__ import annotations

import enum
import signal
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TextIO

from loguru import logger

from hashpipe.core.config import DEFAULT_QUIT_MESSAGE
from hashpipe.core.exceptions import ConnectionFailure
from hashpipe.gateway.channels import CLOSED, Rendezvous, Selector
from hashpipe.gateway.connection import Connection
from hashpipe.gateway.events import (
    ChannelJoined,
    ChannelJoinFailed,
    Connected,
    Failure,
    GatewayEvent,
    IoFailure,
    ParseFailure,
    PeerQuit,
    ProtocolFailure,
)
from hashpipe.gateway.reader import ConnectionReader
from hashpipe.gateway.relay import InputRelay


class ExitStatus(enum.IntEnum):
    """Process exit codes.  A termination signal exits with 128 + signal number."""

    OK = 0
    CONNECTION_LOST = 3
    PROTOCOL_ERROR = 4
    IO_ERROR = 5


class Phase(enum.Enum):
    JOINING = "joining"
    RELAYING = "relaying"
    SHUTDOWN = "shutdown"


def signal_status(signum: int) -> int:
    """Shell convention: a process ended by signal N exits with 128 + N."""
    return 128 + int(signum)


@dataclass
class JoinProgress:
    """Join accounting for the JOINING phase."""

    required_count: int
    joined_count: int = 0
    connected: bool = False

    @property
    def complete(self) -> bool:
        return self.connected and self.joined_count >= self.required_count


class Supervisor:
    """Starts the workers and decides when the pipe stops.

    Args:
        connection: The shared connection handle.
        targets: Channels to join and speak in, in order.
        raw_in: Treat input lines as raw protocol lines.
        raw_out: Echo inbound lines untouched.
        quiet: Do not print channel messages.
        quit_message: Text sent with the final QUIT.
        stdin: Input stream (defaults to ``sys.stdin``).
        stdout: Output stream (defaults to ``sys.stdout``).
        selector: Selector the event channels are created from.
        signals: Channel carrying termination signals; must come from
            *selector*.  One is created when omitted.
    """

    def __init__(
        self,
        connection: Connection,
        targets: Sequence[str] = (),
        *,
        raw_in: bool = False,
        raw_out: bool = False,
        quiet: bool = False,
        quit_message: str = DEFAULT_QUIT_MESSAGE,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        selector: Selector | None = None,
        signals: Rendezvous | None = None,
    ):
        self.connection = connection
        self.targets = tuple(targets)
        self.raw_in = raw_in
        self.raw_out = raw_out
        self.quiet = quiet
        self.quit_message = quit_message
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout

        self.selector = selector or Selector()
        self.signals = signals or self.selector.channel("signals")
        self.reader_events = self.selector.channel("reader")
        self.relay_events = self.selector.channel("relay")

        self.phase = Phase.JOINING
        self.progress: JoinProgress | None = None
        self._quit_sent = False
        self._shutdown_lock = threading.Lock()

    def run(self) -> int:
        """Run both phases and shut down.  Returns the process exit status."""
        reader = ConnectionReader(
            self.connection,
            self.reader_events,
            output=self.stdout,
            raw=self.raw_out,
            quiet=self.quiet,
        )
        _start_worker(reader.run, "hashpipe-reader")

        try:
            status = self._join()
            if status is None:
                status = self._relay()
        finally:
            self.shutdown()
        return status

    # ── JOINING ────────────────────────────────────────────────────

    def _join(self) -> int | None:
        """Wait until registered and joined.  Returns an exit status to stop early."""
        self.phase = Phase.JOINING
        progress = self.progress = JoinProgress(required_count=len(self.targets))
        logger.info(f"Waiting to join {progress.required_count} channel(s): {', '.join(self.targets) or '-'}")

        while not progress.complete:
            source, item = self.selector.select(self.signals, self.reader_events)

            if source is self.signals:
                return self._on_signal(item)
            if item is CLOSED:
                logger.error("Connection reader stopped before channels were joined")
                return ExitStatus.CONNECTION_LOST

            if isinstance(item, Connected):
                logger.info("Registered with server")
                progress.connected = True
            elif isinstance(item, ChannelJoined):
                progress.joined_count += 1
                logger.info(f"Joined {item.channel} ({progress.joined_count}/{progress.required_count})")
            elif isinstance(item, ChannelJoinFailed):
                progress.required_count -= 1
                logger.warning(f"Could not join {item.reason}; continuing without it")
            elif isinstance(item, (PeerQuit, IoFailure, ProtocolFailure)):
                logger.error(f"Lost connection while joining: {_describe(item)}")
                return _fatal_status(item)

        logger.info(f"Joined {progress.joined_count} channel(s)")
        return None

    # ── RELAYING ───────────────────────────────────────────────────

    def _relay(self) -> int:
        self.phase = Phase.RELAYING
        relay = InputRelay(
            self.connection,
            self.targets,
            self.relay_events,
            input=self.stdin,
            raw=self.raw_in,
        )
        _start_worker(relay.run, "hashpipe-relay")

        while True:
            source, item = self.selector.select(self.signals, self.reader_events, self.relay_events)

            if source is self.signals:
                return self._on_signal(item)

            if source is self.relay_events:
                if item is CLOSED:
                    logger.info("Input finished")
                    return ExitStatus.OK
                if isinstance(item, IoFailure):
                    logger.error(f"Input relay failed: {item.description}")
                    return ExitStatus.IO_ERROR
                if isinstance(item, (ParseFailure, ProtocolFailure)):
                    logger.warning(f"Skipped input: {item.description}")
                continue

            # Connection reader
            if item is CLOSED:
                logger.error("Connection reader stopped")
                return ExitStatus.CONNECTION_LOST
            if isinstance(item, (PeerQuit, IoFailure, ProtocolFailure)):
                logger.error(f"Connection ended: {_describe(item)}")
                return _fatal_status(item)

    # ── Shutdown ───────────────────────────────────────────────────

    def shutdown(self) -> None:
        """Send QUIT (once) and close the event channels."""
        with self._shutdown_lock:
            if self._quit_sent:
                return
            self._quit_sent = True
            self.phase = Phase.SHUTDOWN

        try:
            self.connection.disconnect(self.quit_message)
        except ConnectionFailure as exc:
            logger.warning(f"Could not send QUIT: {exc}")

        # Unblocks any worker waiting in send(); workers are not joined.
        for channel in (self.signals, self.reader_events, self.relay_events):
            channel.close()

    def _on_signal(self, signum: Any) -> int:
        if signum is CLOSED:
            logger.warning("Signal watcher stopped")
            return signal_status(signal.SIGTERM)
        name = getattr(signum, "name", str(signum))
        logger.warning(f"Received {name} during {self.phase.value}, quitting")
        return signal_status(signum)


def _describe(event: GatewayEvent) -> str:
    if isinstance(event, Failure):
        return event.description
    if isinstance(event, PeerQuit):
        return f"server closed the session ({event.reason or 'no reason given'})"
    return repr(event)


def _fatal_status(event: GatewayEvent) -> int:
    if isinstance(event, IoFailure):
        return ExitStatus.IO_ERROR
    if isinstance(event, ProtocolFailure):
        return ExitStatus.PROTOCOL_ERROR
    return ExitStatus.CONNECTION_LOST


def _start_worker(target: Callable[[], None], name: str) -> threading.Thread:
    thread = threading.Thread(target=target, name=name, daemon=True)
    thread.start()
    return thread
