"""Input relay: the worker that owns stdin.

Each line read is sent to the connection: as a PRIVMSG to every target
channel (formatted mode), or parsed and sent as a complete protocol line
(raw mode).  End of input is reported by closing the event channel.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TextIO

from loguru import logger

from hashpipe.core.exceptions import ChannelClosed, ConnectionFailure, MessageParseError
from hashpipe.gateway.channels import Rendezvous
from hashpipe.gateway.connection import Connection
from hashpipe.gateway.events import failure_from_exception
from hashpipe.gateway.message import Message

LINE_TERMINATOR = "\r\n"


class InputRelay:
    """Copies lines from *input* to the connection.

    Send failures are reported and skipped: a failed send to one target
    does not stop the remaining targets or the following lines.
    """

    def __init__(
        self,
        connection: Connection,
        targets: Sequence[str],
        events: Rendezvous,
        *,
        input: TextIO,
        raw: bool = False,
    ):
        self.connection = connection
        self.targets = tuple(targets)
        self.events = events
        self.input = input
        self.raw = raw

    def run(self) -> None:
        """Thread entry point."""
        with self.events:
            try:
                self._relay()
            except ChannelClosed:
                logger.debug("Supervisor stopped listening; input relay exiting")

    def _relay(self) -> None:
        count = 0
        try:
            for line in self.input:
                self.relay_line(line.rstrip("\r\n"))
                count += 1
        except (OSError, UnicodeError) as exc:
            event = failure_from_exception(exc)
            logger.error(f"Reading input failed: {event.description}")
            self.events.send(event)
            return
        logger.info(f"End of input after {count} lines")

    def relay_line(self, line: str) -> None:
        """Send one input line (without its terminator)."""
        if self.raw:
            try:
                message = Message.parse(line + LINE_TERMINATOR)
            except MessageParseError as exc:
                event = failure_from_exception(exc)
                logger.warning(event.description)
                self.events.send(event)
                return
            self._send(self.connection.send_raw, message)
        else:
            for target in self.targets:
                self._send(self.connection.send_to, target, line)

    def _send(self, send: Callable[..., Any], *args: Any) -> None:
        try:
            send(*args)
        except ConnectionFailure as exc:
            event = failure_from_exception(exc)
            logger.warning(f"Send failed, continuing: {event.description}")
            self.events.send(event)
