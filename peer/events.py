"""Events consumed by the peer's event loop.

Every source (console, discovery, pubsub listener) turns what it sees into
one of these and puts it on the shared queue.
"""
from dataclasses import dataclass, field
from typing import List, Tuple

Address = Tuple[str, int]


@dataclass(frozen=True)
class InputLine:
    line: str


@dataclass(frozen=True)
class PeersDiscovered:
    peers: List[Tuple[str, Address]] = field(default_factory=list)


@dataclass(frozen=True)
class PeersExpired:
    peer_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TopicMessage:
    topic: str
    sender: str
    data: bytes


@dataclass(frozen=True)
class ListeningOn:
    address: Address


def format_address(address):
    host, port = address
    return f"{host}:{port}"
