import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set

from peer.events import Address

logger = logging.getLogger(__name__)


@dataclass
class PeerRecord:
    peer_id: str
    address: Address
    subscribed_topics: Set[str] = field(default_factory=set)


class PeerRegistry:
    """Known remote peers and the topics we believe they subscribe to.

    Records only come and go with discovery. Announcements can change the
    topics of a known peer but never create one. Not thread safe; the event
    loop is the only caller.
    """

    def __init__(self):
        self._peers: Dict[str, PeerRecord] = {}

    def __len__(self):
        return len(self._peers)

    def __contains__(self, peer_id):
        return peer_id in self._peers

    def get(self, peer_id):
        return self._peers.get(peer_id)

    def on_peer_discovered(self, peer_id, address) -> bool:
        """Insert a record; returns False if the peer was already known.

        A known peer keeps its topics but takes the newly reported address.
        """
        record = self._peers.get(peer_id)
        if record is not None:
            if record.address != address:
                logger.debug(f"Peer {peer_id} moved from {record.address} to {address}")
                record.address = address
            return False
        self._peers[peer_id] = PeerRecord(peer_id, address)
        logger.debug(f"Registered peer {peer_id} at {address}")
        return True

    def on_peer_expired(self, peer_id) -> bool:
        if self._peers.pop(peer_id, None) is None:
            return False
        logger.debug(f"Removed expired peer {peer_id}")
        return True

    def on_subscribe_announce(self, peer_id, topic) -> bool:
        record = self._peers.get(peer_id)
        if record is None:
            logger.warning(f"Broadcast message received from an unknown peer {peer_id}, dropping subscribe to {topic!r}")
            return False
        record.subscribed_topics.add(topic)
        return True

    def on_unsubscribe_announce(self, peer_id, topic) -> bool:
        record = self._peers.get(peer_id)
        if record is None:
            logger.warning(f"Broadcast message received from an unknown peer {peer_id}, dropping unsubscribe from {topic!r}")
            return False
        record.subscribed_topics.discard(topic)
        return True

    def list(self) -> List[PeerRecord]:
        return list(self._peers.values())
