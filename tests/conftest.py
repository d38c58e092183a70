"""Shared test fixtures."""

import queue

import pytest

from config import DEFAULTS
from crypto.identity import Identity
from peer.peer import Peer
from protocol.errors import PublishError, SubscribeError


class FakePubSub:
    """Records substrate calls instead of touching the network."""

    def __init__(self):
        self.topics = set()
        self.explicit_peers = {}
        self.published = []
        self.background = []
        self.listened = []
        self.fail_publish = False
        self.fail_subscribe = False
        self.closed = False

    def subscribe(self, topic):
        if self.fail_subscribe:
            raise SubscribeError("refused")
        if topic in self.topics:
            return False
        self.topics.add(topic)
        return True

    def unsubscribe(self, topic):
        if topic not in self.topics:
            return False
        self.topics.discard(topic)
        return True

    def publish(self, topic, data, wait=True):
        self.published.append((topic, data))
        if not wait:
            self.background.append((topic, data))
        if self.fail_publish:
            raise PublishError("InsufficientPeers")
        return 1

    def add_explicit_peer(self, peer_id, address):
        self.explicit_peers[peer_id] = address

    def remove_explicit_peer(self, peer_id):
        self.explicit_peers.pop(peer_id, None)

    def listen(self, host, port):
        self.listened.append((host, port))

    def close(self):
        self.closed = True


@pytest.fixture
def identity():
    return Identity()


@pytest.fixture
def fake_pubsub():
    return FakePubSub()


@pytest.fixture
def output():
    return []


@pytest.fixture
def peer(identity, fake_pubsub, output):
    return Peer(identity, fake_pubsub, queue.Queue(), dict(DEFAULTS), output=output.append)
