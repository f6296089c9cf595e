"""Pydantic models for config validation.

``Config.validated()`` turns the merged ``Config.config_data`` dict into
a typed ``HashpipeConfig``.  Environment overrides arrive as strings, so
the models lean on pydantic's coercion for ports, flags and counts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hashpipe.core.config import DEFAULT_CHANNEL, DEFAULT_NICK, DEFAULT_QUIT_MESSAGE

PLAIN_PORT = 6667
TLS_PORT = 6697


def split_channels(value: Any) -> list[str]:
    """Normalize a channel list: split on commas, strip, drop empty entries."""
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if str(item).strip()]


class IrcConfig(BaseModel):
    """Connection settings for the IRC server."""

    server: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    tls: bool = False
    nick: str = DEFAULT_NICK
    channels: list[str] | None = None
    quit_message: str = DEFAULT_QUIT_MESSAGE

    @field_validator("channels", mode="before")
    @classmethod
    def _split_channels(cls, v: Any) -> Any:
        if v is None:
            return v
        return split_channels(v)

    @field_validator("nick")
    @classmethod
    def _valid_nick(cls, v: str) -> str:
        v = v.strip()
        if not v or " " in v:
            raise ValueError("nickname must be a single non-empty word")
        return v

    @model_validator(mode="after")
    def _server_required(self) -> IrcConfig:
        if not self.server or not self.server.strip():
            raise ValueError("an IRC server is required (--server or irc.server)")
        self.server = self.server.strip()
        return self

    @property
    def effective_port(self) -> int:
        """Configured port, or the conventional one for plain/TLS connections."""
        if self.port is not None:
            return self.port
        return TLS_PORT if self.tls else PLAIN_PORT


class PipeConfig(BaseModel):
    """How lines are translated between the streams and the connection."""

    raw_out: bool = False
    raw_in: bool = False
    quiet: bool = False


class LoggingConfig(BaseModel):
    """Console verbosity and optional log file."""

    verbosity: int = Field(default=0, ge=0)
    file: str | None = None


class HashpipeConfig(BaseModel):
    """Root configuration model.

    ``irc.channels`` defaults to ``[DEFAULT_CHANNEL]``, or to an empty list
    in raw-input mode where the operator joins channels by hand.
    """

    model_config = ConfigDict(extra="ignore")

    irc: IrcConfig
    pipe: PipeConfig = PipeConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def _default_channels(self) -> HashpipeConfig:
        if self.irc.channels is None:
            self.irc.channels = [] if self.pipe.raw_in else [DEFAULT_CHANNEL]
        return self
