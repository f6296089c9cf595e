"""Connection reader: the worker that owns the inbound side of the connection.

Registers with the server, then turns every inbound message into at most
one :class:`~hashpipe.gateway.events.GatewayEvent` for the supervisor
and prints channel messages to stdout.
"""

from __future__ import annotations

from typing import TextIO

from loguru import logger

from hashpipe.core.exceptions import ChannelClosed, ConnectionFailure
from hashpipe.gateway.channels import Rendezvous
from hashpipe.gateway.connection import Connection
from hashpipe.gateway.events import (
    ChannelJoined,
    ChannelJoinFailed,
    Connected,
    GatewayEvent,
    PeerQuit,
    ProtocolFailure,
    failure_from_exception,
)
from hashpipe.gateway.message import Message

# Numeric replies that mean a JOIN was refused
JOIN_FAILURES = {
    "403": "no such channel",
    "405": "joined too many channels",
    "437": "channel is temporarily unavailable",
    "471": "channel is full",
    "473": "channel is invite-only",
    "474": "banned from channel",
    "475": "bad channel key",
    "476": "bad channel mask",
    "477": "registered nickname required",
}

# End of MOTD / no MOTD: registration is complete
REGISTERED = frozenset({"376", "422"})

# Nickname refused during registration
NICK_REJECTED = {
    "432": "erroneous nickname",
    "433": "nickname already in use",
    "437": "nickname is temporarily unavailable",
}

CHANNEL_PREFIXES = "#&+!"


def format_privmsg(message: Message) -> str:
    """Render a PRIVMSG as ``sender->target: text``."""
    return f"{message.source_nick or ''}->{message.target}: {message.text}"


def classify(message: Message, nickname: str) -> GatewayEvent | None:
    """Return the event *message* should raise, or None if it raises none.

    JOIN and QUIT only count when they concern our own nickname; other
    users coming and going in a channel are not connection events.
    """
    command = message.command

    if command == "JOIN":
        if _is_self(message, nickname):
            return ChannelJoined(channel=message.target or "")
        return None
    if command == "QUIT":
        if _is_self(message, nickname):
            return PeerQuit(reason=message.text)
        return None
    if command == "ERROR":
        return PeerQuit(reason=message.text)
    if command in REGISTERED:
        return Connected()
    if command in NICK_REJECTED and not _names_channel(message):
        nick = message.params[1] if len(message.params) > 2 else nickname
        return ProtocolFailure(cause=ConnectionFailure(f"{NICK_REJECTED[command]}: {nick}"))
    if command in JOIN_FAILURES:
        channel = message.params[1] if len(message.params) > 2 else ""
        reason = f"{channel or 'channel'}: {JOIN_FAILURES[command]}"
        if len(message.params) > 2:
            reason += f" ({message.text})"
        return ChannelJoinFailed(channel=channel, reason=reason)
    return None


def _is_self(message: Message, nickname: str) -> bool:
    source = message.source_nick
    return source is None or source.casefold() == nickname.casefold()


def _names_channel(message: Message) -> bool:
    # 437 is sent for both nicknames and channels
    return len(message.params) > 2 and message.params[1][:1] in CHANNEL_PREFIXES


class ConnectionReader:
    """Reads the connection until it ends, reporting to *events*.

    Args:
        connection: The shared connection handle.
        events: Channel to the supervisor; closed when the reader exits.
        output: Stream channel messages are printed to.
        raw: Echo every inbound line untouched (suppresses formatted output).
        quiet: Suppress formatted output.
    """

    def __init__(
        self,
        connection: Connection,
        events: Rendezvous,
        *,
        output: TextIO,
        raw: bool = False,
        quiet: bool = False,
    ):
        self.connection = connection
        self.events = events
        self.output = output
        self.raw = raw
        self.quiet = quiet

    def run(self) -> None:
        """Thread entry point."""
        with self.events:
            try:
                self._read()
            except ChannelClosed:
                logger.debug("Supervisor stopped listening; connection reader exiting")

    def _read(self) -> None:
        try:
            self.connection.identify()
        except (OSError, ConnectionFailure) as exc:
            self._report(exc)
            self.events.send(PeerQuit(reason="could not register with server"))
            return

        try:
            for message in self.connection.messages():
                self._handle(message)
        except (OSError, ConnectionFailure) as exc:
            self._report(exc)
            self.events.send(PeerQuit(reason=str(exc)))
            return

        self.events.send(PeerQuit(reason="connection closed"))

    def _handle(self, message: Message) -> None:
        if self.raw:
            self._write(message.wire)
        elif message.command == "PRIVMSG" and not self.quiet:
            self._write(format_privmsg(message))

        event = classify(message, self.connection.nickname)
        if event is not None:
            logger.debug(f"Connection event: {event}")
            self.events.send(event)

    def _write(self, text: str) -> None:
        try:
            self.output.write(text + "\n")
            self.output.flush()
        except OSError as exc:
            self._report(exc)

    def _report(self, exc: Exception) -> None:
        event = failure_from_exception(exc)
        logger.error(event.description)
        self.events.send(event)
