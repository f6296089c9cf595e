"""Tests for the IRC message model."""

import pytest

from hashpipe.core.exceptions import MessageParseError
from hashpipe.gateway.message import Message


class TestParse:
    def test_privmsg(self):
        msg = Message.parse(":alice!a@host PRIVMSG #test :hello there\r\n")
        assert msg.command == "PRIVMSG"
        assert msg.prefix == "alice!a@host"
        assert msg.source_nick == "alice"
        assert msg.target == "#test"
        assert msg.text == "hello there"
        assert msg.raw == ":alice!a@host PRIVMSG #test :hello there"

    def test_numeric(self):
        msg = Message.parse(":irc.example.net 471 hashpipe #full :Cannot join channel (+l)")
        assert msg.command == "471"
        assert msg.params == ("hashpipe", "#full", "Cannot join channel (+l)")
        assert msg.source_nick == "irc.example.net"

    def test_without_prefix_or_trailing(self):
        msg = Message.parse("JOIN #a")
        assert msg.command == "JOIN"
        assert msg.params == ("#a",)
        assert msg.prefix is None
        assert msg.source_nick is None

    def test_command_is_uppercased(self):
        assert Message.parse("privmsg #a :hi").command == "PRIVMSG"

    def test_empty_trailing(self):
        assert Message.parse("PRIVMSG #a :").params == ("#a", "")

    def test_tags(self):
        msg = Message.parse("@time=2024-01-01T00:00:00Z;flag :nick!u@h PRIVMSG #a :hi")
        assert msg.tags == {"time": "2024-01-01T00:00:00Z", "flag": ""}
        assert msg.text == "hi"

    @pytest.mark.parametrize(
        "line",
        ["", "\r\n", "   \r\n", ":prefix-only", ":nick!u@h :no command", "PRIV-MSG #a", "12 x", "PRIVMSG #a :x\ry\r\n"],
    )
    def test_invalid(self, line):
        with pytest.raises(MessageParseError) as info:
            Message.parse(line)
        assert info.value.line == line


class TestRender:
    def test_str_round_trip(self):
        line = ":alice!a@host PRIVMSG #test :hello there"
        assert str(Message.parse(line)) == line

    def test_trailing_colon_added_when_needed(self):
        assert str(Message("PRIVMSG", ("#a", "hi"))) == "PRIVMSG #a hi"
        assert str(Message("PRIVMSG", ("#a", "two words"))) == "PRIVMSG #a :two words"
        assert str(Message("PRIVMSG", ("#a", ""))) == "PRIVMSG #a :"

    def test_wire_prefers_raw(self):
        msg = Message.parse("privmsg #a hi")
        assert msg.wire == "privmsg #a hi"
        assert Message("PING", ("x",)).wire == "PING x"

    def test_equality_ignores_raw(self):
        assert Message.parse("PRIVMSG #a :hi") == Message("PRIVMSG", ("#a", "hi"))
