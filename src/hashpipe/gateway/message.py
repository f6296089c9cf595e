"""IRC message model.

Both directions use :class:`Message`: inbound lines from the server, and
raw lines typed on stdin in raw-input mode.  Parsing follows RFC 1459
framing with optional IRCv3 message tags::

    [@tags] [:prefix] COMMAND [params...] [:trailing]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from hashpipe.core.exceptions import MessageParseError

_COMMAND_RE = re.compile(r"^(?:[A-Za-z]+|\d{3})$")
_FORBIDDEN = ("\r", "\n", "\0")


@dataclass(frozen=True)
class Message:
    """A single IRC protocol message.

    Attributes:
        command: Upper-cased verb (``PRIVMSG``) or three-digit numeric (``376``).
        params: Positional parameters; the trailing parameter is last.
        prefix: Origin (``nick!user@host`` or a server name), if present.
        tags: IRCv3 message tags.
        raw: The line as received, without its terminator.
    """

    command: str
    params: tuple[str, ...] = ()
    prefix: str | None = None
    tags: dict[str, str] = field(default_factory=dict, compare=False)
    raw: str | None = field(default=None, compare=False)

    @classmethod
    def parse(cls, line: str) -> Message:
        """Parse one wire line.  A trailing ``\\r\\n`` is allowed and dropped.

        Raises:
            MessageParseError: If the line is empty, has no valid command,
                or contains a line break or NUL inside it.
        """
        original = line
        if line.endswith("\r\n"):
            line = line[:-2]
        elif line.endswith("\n"):
            line = line[:-1]

        if any(ch in line for ch in _FORBIDDEN):
            raise MessageParseError("line contains a CR, LF or NUL character", original)
        if not line.strip():
            raise MessageParseError("empty message", original)

        rest = line.lstrip(" ")
        tags: dict[str, str] = {}
        if rest.startswith("@"):
            tag_text, _, rest = rest[1:].partition(" ")
            tags = _parse_tags(tag_text)
            rest = rest.lstrip(" ")

        prefix = None
        if rest.startswith(":"):
            prefix, _, rest = rest[1:].partition(" ")
            if not prefix:
                raise MessageParseError("empty prefix", original)
            rest = rest.lstrip(" ")

        head, sep, trailing = rest.partition(" :")
        if rest.startswith(":"):
            raise MessageParseError("missing command", original)
        words = head.split()
        if not words:
            raise MessageParseError("missing command", original)

        command = words[0]
        if not _COMMAND_RE.match(command):
            raise MessageParseError(f"invalid command {command!r}", original)

        params = words[1:]
        if sep:
            params.append(trailing)

        return cls(
            command=command.upper(),
            params=tuple(params),
            prefix=prefix,
            tags=tags,
            raw=line,
        )

    @property
    def source_nick(self) -> str | None:
        """Nickname part of the prefix (``nick`` in ``nick!user@host``)."""
        if not self.prefix:
            return None
        return self.prefix.split("!", 1)[0].split("@", 1)[0]

    @property
    def target(self) -> str | None:
        return self.params[0] if self.params else None

    @property
    def text(self) -> str:
        """The trailing (last) parameter, or an empty string."""
        return self.params[-1] if self.params else ""

    @property
    def wire(self) -> str:
        """The line as received, or a rendering of it for built messages."""
        return self.raw if self.raw is not None else str(self)

    def __str__(self) -> str:
        parts: list[str] = []
        if self.tags:
            parts.append("@" + ";".join(f"{k}={v}" if v else k for k, v in self.tags.items()))
        if self.prefix:
            parts.append(f":{self.prefix}")
        parts.append(self.command)
        if self.params:
            *middle, last = self.params
            parts.extend(middle)
            if not last or " " in last or last.startswith(":"):
                last = f":{last}"
            parts.append(last)
        return " ".join(parts)


def _parse_tags(text: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for item in text.split(";"):
        if not item:
            continue
        key, _, value = item.partition("=")
        tags[key] = value
    return tags
