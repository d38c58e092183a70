"""Topic publish/subscribe over direct TCP connections.

Every known peer is an explicit peer: a publication is signed and sent to
all of them, and each receiver keeps only the topics it is subscribed to.
Accepted connections are served on their own threads; anything worth the
event loop's attention is put on its queue.
"""
import concurrent.futures
import logging
import random
import socket
import threading
from collections import OrderedDict

from peer.events import ListeningOn, TopicMessage
from protocol.errors import ListenError, PublishError, SubscribeError
from protocol.handler import handle_incoming_request
from protocol.json_handler import send_json
from protocol.message import build_publish

logger = logging.getLogger(__name__)


class PubSub:
    def __init__(self, identity, events, connect_timeout=5.0, max_message_bytes=64 * 1024,
                 seen_cache_size=1024, max_senders=8):
        self.identity = identity
        self.events = events
        self.connect_timeout = connect_timeout
        self.max_message_bytes = max_message_bytes
        # base64 grows payloads by 4/3; leave room for the envelope fields
        self.max_frame_bytes = max_message_bytes * 2 + 4096
        self.seen_cache_size = seen_cache_size
        self._lock = threading.Lock()
        self._topics = set()
        self._explicit_peers = {}  # {peer_id: (ip, port)}
        self._seen = OrderedDict()
        self._seqno = random.getrandbits(63)
        self._sock = None
        self._closed = threading.Event()
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_senders,
                                                               thread_name_prefix="pubsub-send")

    # Topics

    def subscribe(self, topic):
        if not topic:
            raise SubscribeError("topic name must not be empty")
        with self._lock:
            if topic in self._topics:
                return False
            self._topics.add(topic)
        logger.debug(f"Subscribed to {topic}")
        return True

    def unsubscribe(self, topic):
        with self._lock:
            if topic not in self._topics:
                return False
            self._topics.discard(topic)
        logger.debug(f"Unsubscribed from {topic}")
        return True

    def topics(self):
        with self._lock:
            return set(self._topics)

    # Peers

    def add_explicit_peer(self, peer_id, address):
        with self._lock:
            self._explicit_peers[peer_id] = address
        logger.debug(f"Added explicit peer {peer_id} at {address}")

    def remove_explicit_peer(self, peer_id):
        with self._lock:
            self._explicit_peers.pop(peer_id, None)
        logger.debug(f"Removed explicit peer {peer_id}")

    def explicit_peers(self):
        with self._lock:
            return dict(self._explicit_peers)

    # Outbound

    def publish(self, topic, data: bytes, wait=True):
        """Send a signed publication to every explicit peer.

        Deliveries run concurrently. With ``wait`` the call returns the number
        of peers reached within ``connect_timeout`` and raises ``PublishError``
        if none were; without it, deliveries are only queued.
        """
        if len(data) > self.max_message_bytes:
            raise PublishError(f"message of {len(data)} bytes exceeds limit of {self.max_message_bytes}")
        peers = self.explicit_peers()
        if not peers:
            raise PublishError("InsufficientPeers")

        with self._lock:
            self._seqno += 1
            seqno = self._seqno
        envelope = build_publish(self.identity, topic, seqno, data)
        self._mark_seen(f"{self.identity.peer_id}:{seqno}")

        futures = [self._executor.submit(self._send, peer_id, address, envelope)
                   for peer_id, address in peers.items()]
        if not wait:
            return len(futures)

        # One slow or dead peer costs at most one timeout, not one per peer
        done, pending = concurrent.futures.wait(futures, timeout=self.connect_timeout)
        delivered = sum(1 for f in done if f.result())
        if pending:
            logger.warning(f"{len(pending)} deliveries on {topic} still pending after {self.connect_timeout}s")
        if not delivered:
            raise PublishError(f"no peer reachable for topic {topic}")
        logger.debug(f"Published seqno {seqno} on {topic} to {delivered}/{len(peers)} peers")
        return delivered

    def _send(self, peer_id, address, envelope):
        ip, port = address
        try:
            with socket.create_connection((ip, port), timeout=self.connect_timeout) as sock:
                send_json(sock, envelope)
            return True
        except OSError as e:
            logger.warning(f"Could not deliver to {peer_id} at {ip}:{port}: {e}")
            return False

    # Inbound

    def listen(self, host, port):
        """Bind the listening socket and start accepting connections."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen()
        except OSError as e:
            sock.close()
            raise ListenError(f"Unable to listen on {host}:{port}: {e}") from e
        self._sock = sock
        address = sock.getsockname()[:2]
        logger.debug(f"Listening for incoming messages on {address[0]}:{address[1]}")
        threading.Thread(target=self._accept_loop, args=(sock,), name="pubsub-accept", daemon=True).start()
        self.events.put(ListeningOn(address))
        return address

    def _accept_loop(self, sock):
        while not self._closed.is_set():
            try:
                conn, addr = sock.accept()
            except OSError:
                if self._closed.is_set():
                    break
                logger.exception("Accept failed")
                continue
            threading.Thread(target=self.handle_req, args=(conn, addr), daemon=True).start()

    def handle_req(self, conn, addr):
        try:
            result = handle_incoming_request(conn, addr, self)
        finally:
            conn.close()
        status = result["status"]
        if status == "rejected":
            logger.warning(f"Rejected message from {addr}: {result.get('reason')}")
        elif status == "ignored":
            logger.warning(f"Ignored message from {addr}: {result.get('reason')}")
        elif status == "error":
            logger.error(f"Error during request from {addr}: {result.get('reason')}")
        else:
            logger.debug(f"Message {result.get('message_id')} from {addr}: {status}")
        return result

    def deliver(self, publication):
        """Queue a verified publication for the event loop, once."""
        if publication.source == self.identity.peer_id:
            return "own"
        if not self._mark_seen(publication.message_id):
            return "duplicate"
        with self._lock:
            subscribed = publication.topic in self._topics
        if not subscribed:
            return "unsubscribed"
        self.events.put(TopicMessage(publication.topic, publication.source, publication.data))
        return "delivered"

    def _mark_seen(self, message_id):
        with self._lock:
            if message_id in self._seen:
                return False
            self._seen[message_id] = None
            while len(self._seen) > self.seen_cache_size:
                self._seen.popitem(last=False)
            return True

    def close(self):
        self._closed.set()
        self._executor.shutdown(wait=False)
        if self._sock:
            self._sock.close()
            self._sock = None
