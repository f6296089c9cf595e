"""Gateway: the workers, channels and supervisor that move lines between stdio and IRC."""

from .channels import CLOSED, Rendezvous, Selector
from .connection import Connection, IrcConnection
from .events import (
    ChannelJoined,
    ChannelJoinFailed,
    Connected,
    Failure,
    GatewayEvent,
    IoFailure,
    ParseFailure,
    PeerQuit,
    ProtocolFailure,
    failure_from_exception,
)
from .message import Message
from .reader import ConnectionReader
from .relay import InputRelay
from .supervisor import ExitStatus, JoinProgress, Phase, Supervisor

__all__ = [
    "CLOSED",
    "ChannelJoinFailed",
    "ChannelJoined",
    "Connected",
    "Connection",
    "ConnectionReader",
    "ExitStatus",
    "Failure",
    "GatewayEvent",
    "InputRelay",
    "IoFailure",
    "IrcConnection",
    "JoinProgress",
    "Message",
    "ParseFailure",
    "PeerQuit",
    "Phase",
    "ProtocolFailure",
    "Rendezvous",
    "Selector",
    "Supervisor",
    "failure_from_exception",
]
