"""Shared setup logic for the CLI."""

from __future__ import annotations

import sys
from typing import Any, TextIO

from hashpipe.core.config import Config
from hashpipe.core.config_schema import HashpipeConfig


def load_settings(config_file: str | None = None, overrides: dict[str, Any] | None = None) -> HashpipeConfig:
    """Merge defaults, config file, environment and CLI overrides, then validate.

    Overrides are dot-paths (``"irc.server"``); ``None`` and ``False``
    values mean "not given on the command line" and leave lower layers alone.

    Raises:
        ConfigurationError: If the merged configuration is invalid.
    """
    config = Config(config_file=config_file)
    for key_path, value in (overrides or {}).items():
        if value is None or value is False:
            continue
        config.set(key_path, value)
    return config.validated()


def run_pipe(
    settings: HashpipeConfig,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    handle_signals: bool = True,
) -> int:
    """Connect, join, relay and shut down.  Returns the exit status."""
    from hashpipe.gateway.channels import Selector
    from hashpipe.gateway.connection import IrcConnection
    from hashpipe.gateway.signals import watch_signals
    from hashpipe.gateway.supervisor import Supervisor

    irc_settings = settings.irc
    channels = irc_settings.channels or []

    selector = Selector()
    signals = selector.channel("signals")
    if handle_signals:
        # Before any worker thread exists, so they inherit the signal mask
        watch_signals(signals)

    connection = IrcConnection(
        irc_settings.server,
        irc_settings.effective_port,
        irc_settings.nick,
        channels,
        tls=irc_settings.tls,
    )
    supervisor = Supervisor(
        connection,
        channels,
        raw_in=settings.pipe.raw_in,
        raw_out=settings.pipe.raw_out,
        quiet=settings.pipe.quiet,
        quit_message=irc_settings.quit_message,
        stdin=stdin if stdin is not None else sys.stdin,
        stdout=stdout if stdout is not None else sys.stdout,
        selector=selector,
        signals=signals,
    )
    return supervisor.run()
