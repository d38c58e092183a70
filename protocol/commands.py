"""Parsing of user input lines into commands."""
import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Subscribe:
    topic: str


@dataclass(frozen=True)
class Unsubscribe:
    topic: str


@dataclass(frozen=True)
class SendMessage:
    topic: str
    body: str


@dataclass(frozen=True)
class ListKnownPeers:
    pass


@dataclass(frozen=True)
class ShowLocalInfo:
    pass


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Invalid:
    pass


HELP_TEXT = """Quick Commands:
   /subscribe <topic>    - Subscribe to a topic
   /unsubscribe <topic>  - Unsubscribe from a topic
   /send global <msg>    - Send message to all peers
   /send <topic> <msg>   - Send message to all peers subscribed to a topic
   /known                - List known peers and their info
   /info                 - Show local peer info
   /help                 - Show all commands"""

USAGE_HINT = "Invalid Command format, type /help to see manual"

_WHITESPACE = re.compile(r"\s")

_NO_ARGUMENT = {
    "/help": Help,
    "/known": ListKnownPeers,
    "/info": ShowLocalInfo,
}


def parse_command(line):
    """Turn one line of user input into a command.

    The first whitespace character separates the directive from its argument,
    and the argument is kept as typed. Commands that need an argument and do
    not get one come back as ``Invalid``.
    """
    directive, arg = _split_once(line.strip())
    if directive in _NO_ARGUMENT:
        return _NO_ARGUMENT[directive]()
    if not arg.strip():
        return Invalid()
    if directive == "/subscribe":
        return Subscribe(arg)
    if directive == "/unsubscribe":
        return Unsubscribe(arg)
    if directive == "/send":
        topic, body = _split_once(arg)
        if not topic or not body:
            return Invalid()
        return SendMessage(topic, body)
    return Invalid()


def _split_once(text):
    parts = _WHITESPACE.split(text, maxsplit=1)
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]
