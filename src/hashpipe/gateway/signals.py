"""Termination signals delivered as messages on a rendezvous channel.

The handled signals are blocked in the calling thread (and therefore in
every thread started after it) and collected with ``signal.sigwait`` on a
dedicated watcher thread, which forwards each one to the supervisor.
POSIX only.
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterable

from loguru import logger

from hashpipe.core.exceptions import ChannelClosed
from hashpipe.gateway.channels import Rendezvous

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGPIPE)


def watch_signals(channel: Rendezvous, signals: Iterable[signal.Signals] = HANDLED_SIGNALS) -> threading.Thread:
    """Start forwarding *signals* to *channel*.

    Must be called from the main thread before any other thread is
    started, so that the signal mask is inherited everywhere.

    Returns:
        The (daemon) watcher thread.
    """
    wanted = set(signals)
    signal.pthread_sigmask(signal.SIG_BLOCK, wanted)

    def _watch() -> None:
        while True:
            signum = signal.Signals(signal.sigwait(wanted))
            logger.info(f"Received {signum.name}")
            try:
                channel.send(signum)
            except ChannelClosed:
                return

    thread = threading.Thread(target=_watch, name="hashpipe-signals", daemon=True)
    thread.start()
    return thread
