"""IRC connection: the single live server connection shared by all workers.

:class:`Connection` is the surface the workers and the supervisor use.
:class:`IrcConnection` implements it on top of the ``irc`` package's
reactor: the reactor is only ever driven from the thread iterating
:meth:`Connection.messages` (the connection reader), while sends may come
from any thread and are serialized by a lock.
"""

from __future__ import annotations

import functools
import ssl
import threading
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable, Iterator

import irc.client
import irc.connection
from jaraco.stream import buffer
from loguru import logger

from hashpipe.core.exceptions import ConnectionFailure, MessageParseError
from hashpipe.gateway.message import Message


class Connection(ABC):
    """Abstract IRC connection.

    Implementations must make :meth:`send_raw`, :meth:`send_to` and
    :meth:`disconnect` safe to call concurrently with each other and with
    an iteration of :meth:`messages` running on another thread.
    """

    nickname: str

    @abstractmethod
    def identify(self) -> None:
        """Connect and register (NICK/USER).  Raises ConnectionFailure."""

    @abstractmethod
    def messages(self) -> Iterator[Message]:
        """Yield inbound messages, blocking until one arrives.

        Ends when the server closes the connection; raises
        ConnectionFailure on transport errors.
        """

    @abstractmethod
    def send_raw(self, message: Message) -> None:
        """Send a complete protocol message as-is."""

    @abstractmethod
    def send_to(self, target: str, text: str) -> None:
        """Send *text* as a PRIVMSG to *target*."""

    @abstractmethod
    def disconnect(self, reason: str) -> None:
        """Send QUIT with *reason*."""


class IrcConnection(Connection):
    """Connection backed by ``irc.client.Reactor``.

    Besides relaying lines, the adapter keeps the session alive the way a
    client library is expected to: it answers PING and joins the
    configured channels once the server has finished registration.

    Args:
        server: Hostname of the IRC server.
        port: TCP port.
        nickname: Nickname to register with.
        channels: Channels to join after registration.
        tls: Wrap the socket in TLS (hostname verified).
        poll_interval: Seconds each reactor poll may block.
    """

    def __init__(
        self,
        server: str,
        port: int = 6667,
        nickname: str = "hashpipe",
        channels: Iterable[str] = (),
        *,
        tls: bool = False,
        poll_interval: float = 0.2,
        reactor: irc.client.Reactor | None = None,
    ):
        self.server = server
        self.port = port
        self.nickname = nickname
        self.channels = tuple(channels)
        self.tls = tls
        self.poll_interval = poll_interval

        self._reactor = reactor or irc.client.Reactor()
        self._connection = self._reactor.server()
        self._connection.buffer_class = buffer.LenientDecodingLineBuffer
        self._send_lock = threading.Lock()
        self._inbox: deque[Message] = deque()

        self._reactor.add_global_handler("all_raw_messages", self._on_raw_line)
        self._reactor.add_global_handler("endofmotd", self._on_registered)
        self._reactor.add_global_handler("nomotd", self._on_registered)
        # The reactor's built-in PONG handler writes outside the send lock
        self._reactor.remove_global_handler("ping", irc.client._ping_ponger)
        self._reactor.add_global_handler("ping", self._on_ping)

    def __repr__(self) -> str:
        scheme = "ircs" if self.tls else "irc"
        return f"<IrcConnection {scheme}://{self.server}:{self.port} as {self.nickname}>"

    # ── Connection API ─────────────────────────────────────────────

    def identify(self) -> None:
        logger.info(f"Connecting to {self.server}:{self.port} as {self.nickname} (tls={self.tls})")
        try:
            self._connection.connect(
                self.server,
                self.port,
                self.nickname,
                connect_factory=self._connect_factory(),
            )
        except irc.client.ServerConnectionError as exc:
            raise ConnectionFailure(f"Could not connect to {self.server}:{self.port}: {exc}") from exc

    def messages(self) -> Iterator[Message]:
        while True:
            try:
                self._reactor.process_once(timeout=self.poll_interval)
            except (irc.client.IRCError, OSError) as exc:
                raise ConnectionFailure(f"Connection to {self.server} failed: {exc}") from exc

            while self._inbox:
                yield self._inbox.popleft()

            if not self._connection.is_connected():
                logger.info(f"Connection to {self.server} closed")
                return

    def send_raw(self, message: Message) -> None:
        self._send(self._connection.send_raw, message.wire)

    def send_to(self, target: str, text: str) -> None:
        self._send(self._connection.privmsg, target, text)

    def disconnect(self, reason: str) -> None:
        logger.info(f"Sending QUIT to {self.server}: {reason!r}")
        self._send(self._connection.quit, reason)

    # ── Internal ───────────────────────────────────────────────────

    def _connect_factory(self) -> irc.connection.Factory:
        if not self.tls:
            return irc.connection.Factory()
        context = ssl.create_default_context()
        return irc.connection.Factory(wrapper=functools.partial(context.wrap_socket, server_hostname=self.server))

    def _send(self, send, *args) -> None:  # type: ignore[no-untyped-def]
        with self._send_lock:
            try:
                send(*args)
            except (irc.client.IRCError, OSError, ValueError) as exc:
                raise ConnectionFailure(f"Send to {self.server} failed: {exc}") from exc

    def _on_raw_line(self, connection, event) -> None:  # type: ignore[no-untyped-def]
        line = event.arguments[0]
        logger.debug(f"<< {line}")
        try:
            self._inbox.append(Message.parse(line))
        except MessageParseError as exc:
            logger.warning(f"Ignoring malformed line from server: {exc.reason}: {line!r}")

    def _on_registered(self, connection, event) -> None:  # type: ignore[no-untyped-def]
        for channel in self.channels:
            logger.info(f"Joining {channel}")
            self._send(self._connection.join, channel)

    def _on_ping(self, connection, event) -> None:  # type: ignore[no-untyped-def]
        self._send(self._connection.pong, event.target)
