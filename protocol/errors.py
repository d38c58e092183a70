"""Error types raised by the chat substrates.

Everything below ``ChatError`` is the closed set the event loop knows how to
report. ``SwarmBuildError`` and ``ListenError`` abort startup; the rest are
printed and the loop keeps going.
"""


class ChatError(Exception):
    """Base class for every error that reaches the event loop."""


class SwarmBuildError(ChatError):
    """The networking substrate could not be constructed."""


class ListenError(ChatError):
    """The local listen address could not be bound."""


class SubscribeError(ChatError):
    """The substrate refused a topic subscription."""


class PublishError(ChatError):
    """A message could not be published on a topic."""


class ConfigError(ChatError):
    """Invalid configuration file or override."""


FATAL_ERRORS = (SwarmBuildError, ListenError)
