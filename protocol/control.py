"""Wire format for subscription announcements on the control topic.

An announcement is two space separated tokens, a tag and a topic name::

    __SUB__ weather
    __UNSUB__ weather

Anything else is an ordinary chat payload.
"""
from dataclasses import dataclass

CONTROL_TOPIC = "global"
SUBSCRIBE_TAG = "__SUB__"
UNSUBSCRIBE_TAG = "__UNSUB__"


@dataclass(frozen=True)
class SubscribeAnnounce:
    topic: str


@dataclass(frozen=True)
class UnsubscribeAnnounce:
    topic: str


@dataclass(frozen=True)
class PlainTopicMessage:
    raw: bytes

    @property
    def text(self):
        return self.raw.decode("utf-8", errors="replace")


def encode(message) -> bytes:
    if isinstance(message, SubscribeAnnounce):
        return f"{SUBSCRIBE_TAG} {message.topic}".encode("utf-8")
    if isinstance(message, UnsubscribeAnnounce):
        return f"{UNSUBSCRIBE_TAG} {message.topic}".encode("utf-8")
    if isinstance(message, PlainTopicMessage):
        return message.raw
    raise TypeError(f"Cannot encode {type(message).__name__}")


def decode(data: bytes):
    """Classify an inbound payload. Never raises.

    A tag without a topic is not an announcement and falls through to a
    plain message, raw bytes untouched.
    """
    text = data.decode("utf-8", errors="replace")
    tag, _, topic = text.partition(" ")
    if topic:
        if tag == SUBSCRIBE_TAG:
            return SubscribeAnnounce(topic)
        if tag == UNSUBSCRIBE_TAG:
            return UnsubscribeAnnounce(topic)
    return PlainTopicMessage(bytes(data))
