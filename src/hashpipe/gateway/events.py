"""Gateway events: everything a worker can report to the supervisor.

The union is closed: the connection reader and the input relay only ever
hand the supervisor one of the dataclasses below.  Failures raised by
lower layers are converted exactly once, where they are first caught,
by :func:`failure_from_exception`.
"""

from __future__ import annotations

from dataclasses import dataclass

from hashpipe.core.exceptions import ConnectionFailure, MessageParseError


@dataclass(frozen=True)
class GatewayEvent:
    """Base class for events flowing from a worker to the supervisor."""


@dataclass(frozen=True)
class Connected(GatewayEvent):
    """Registration with the server finished (end of MOTD, or no MOTD)."""


@dataclass(frozen=True)
class ChannelJoined(GatewayEvent):
    channel: str = ""


@dataclass(frozen=True)
class ChannelJoinFailed(GatewayEvent):
    """The server refused a JOIN (full, invite-only, banned, bad key, missing)."""

    channel: str = ""
    reason: str = ""


@dataclass(frozen=True)
class PeerQuit(GatewayEvent):
    """The connection is gone, or about to be.

    Also sent by the connection reader as its last event whenever it stops,
    so the supervisor never waits on a reader that has exited.
    """

    reason: str = ""


@dataclass(frozen=True)
class Failure(GatewayEvent):
    """Common base for the failure events."""

    @property
    def description(self) -> str:
        return ""


@dataclass(frozen=True)
class IoFailure(Failure):
    """Reading stdin, or writing/flushing stdout, failed."""

    cause: BaseException | None = None

    @property
    def description(self) -> str:
        return f"I/O error: {self.cause}"


@dataclass(frozen=True)
class ProtocolFailure(Failure):
    """The IRC connection layer reported an error."""

    cause: BaseException | None = None

    @property
    def description(self) -> str:
        return f"IRC error: {self.cause}"


@dataclass(frozen=True)
class ParseFailure(Failure):
    """A raw input line was not a valid IRC message."""

    reason: str = ""
    line: str = ""

    @property
    def description(self) -> str:
        return f"Could not parse {self.line!r}: {self.reason}"


def failure_from_exception(exc: BaseException) -> Failure:
    """Map a fault caught by a worker to its failure event.

    Unknown exception types are re-raised.
    """
    if isinstance(exc, MessageParseError):
        return ParseFailure(reason=exc.reason, line=exc.line)
    if isinstance(exc, ConnectionFailure):
        return ProtocolFailure(cause=exc)
    if isinstance(exc, (OSError, UnicodeError)):
        return IoFailure(cause=exc)
    raise exc
