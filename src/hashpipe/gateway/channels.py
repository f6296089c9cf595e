"""Rendezvous channels and a multi-channel select for worker threads.

A :class:`Rendezvous` has no buffer: :meth:`Rendezvous.send` blocks until
the receiving side has taken the value, so a worker can never run ahead
of the supervisor with unobserved events.  All channels made by one
:class:`Selector` share a single condition variable, which lets the
supervisor wait on several channels at once::

    selector = Selector()
    reader_events = selector.channel("reader")
    relay_events = selector.channel("relay")

    source, item = selector.select(reader_events, relay_events)
    if item is CLOSED:
        ...  # the worker behind ``source`` has finished

Closing a channel is itself observable: once closed and drained, the
channel is always ready and yields :data:`CLOSED`.
"""

from __future__ import annotations

import threading
import time
from typing import Any

from hashpipe.core.exceptions import ChannelClosed


class _Marker:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


CLOSED: Any = _Marker("CLOSED")
"""Returned by :meth:`Selector.select` for a channel that has been closed."""

_EMPTY = _Marker("EMPTY")


class Rendezvous:
    """Zero-capacity handoff channel.

    Usable as a context manager by the sending worker: leaving the block
    closes the channel, which is how a worker reports that it finished.
    """

    def __init__(self, name: str, condition: threading.Condition):
        self.name = name
        self._cond = condition
        self._slot: Any = _EMPTY
        self._closed = False
        self._offered = 0
        self._taken = 0

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Rendezvous {self.name} {state}>"

    def __enter__(self) -> Rendezvous:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def send(self, item: Any) -> None:
        """Hand *item* to the receiver, blocking until it has been taken.

        Raises:
            ChannelClosed: If the channel is closed before the receiver
                takes the item.
        """
        with self._cond:
            # Another sender may be mid-handoff on this channel
            while self._slot is not _EMPTY and not self._closed:
                self._cond.wait()
            if self._closed:
                raise ChannelClosed(f"channel {self.name!r} is closed")

            self._slot = item
            self._offered += 1
            ticket = self._offered
            self._cond.notify_all()

            while self._taken < ticket and not self._closed:
                self._cond.wait()
            if self._taken < ticket:
                raise ChannelClosed(f"channel {self.name!r} closed before {item!r} was received")

    def close(self) -> None:
        """Close the channel.  An item still waiting in the slot is discarded."""
        with self._cond:
            self._closed = True
            self._slot = _EMPTY
            self._cond.notify_all()

    # Called by Selector with the condition held.

    def _ready(self) -> bool:
        return self._slot is not _EMPTY or self._closed

    def _take(self) -> Any:
        if self._slot is _EMPTY:
            return CLOSED
        item = self._slot
        self._slot = _EMPTY
        self._taken += 1
        self._cond.notify_all()
        return item


class Selector:
    """Creates rendezvous channels and waits on any number of them.

    Ready channels are served round-robin so a busy channel cannot starve
    the others.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._turn = 0

    def channel(self, name: str) -> Rendezvous:
        """Create a channel bound to this selector."""
        return Rendezvous(name, self._cond)

    def select(self, *channels: Rendezvous, timeout: float | None = None) -> tuple[Rendezvous, Any]:
        """Wait until one of *channels* is ready and receive from it.

        Returns:
            ``(channel, item)``, where *item* is :data:`CLOSED` if the
            channel has been closed.

        Raises:
            TimeoutError: If *timeout* seconds pass with nothing ready.
        """
        if not channels:
            raise ValueError("select() needs at least one channel")
        for ch in channels:
            if ch._cond is not self._cond:
                raise ValueError(f"{ch!r} was not created by this selector")

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                count = len(channels)
                for offset in range(count):
                    ch = channels[(self._turn + offset) % count]
                    if ch._ready():
                        self._turn += 1
                        return ch, ch._take()

                if deadline is None:
                    self._cond.wait()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError(f"nothing received within {timeout}s")
                    self._cond.wait(remaining)

    def recv(self, channel: Rendezvous, timeout: float | None = None) -> Any:
        """Receive from a single channel."""
        return self.select(channel, timeout=timeout)[1]
