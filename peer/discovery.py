from zeroconf import ServiceBrowser, ServiceListener
import logging
import socket

from peer.events import PeersDiscovered, PeersExpired

logger = logging.getLogger(__name__)

SERVICE_TYPE = "_topicchat._tcp.local."


class DiscoveryListener(ServiceListener):
    """Turns mDNS service changes into discovery events for the event loop.

    The service instance name is the peer id; our own instance is skipped.
    """

    def __init__(self, own_peer_id, events):
        self.own_peer_id = own_peer_id
        self.events = events
        self.peers = {}  # {service name: peer_id}

    def _resolve(self, zeroconf, type, name):
        peer_id = name.split('.')[0]
        if peer_id == self.own_peer_id:
            return None
        info = zeroconf.get_service_info(type, name)
        if not info or not info.addresses:
            logger.debug(f"Could not resolve {name}")
            return None
        ip = socket.inet_ntoa(info.addresses[0])
        return peer_id, (ip, info.port)

    def add_service(self, zeroconf, type, name):
        resolved = self._resolve(zeroconf, type, name)
        if resolved:
            peer_id, address = resolved
            self.peers[name] = peer_id
            logger.info(f"mDNS discovered a new peer: {peer_id} at {address[0]}:{address[1]}")
            self.events.put(PeersDiscovered([resolved]))

    def update_service(self, zeroconf, type, name):
        resolved = self._resolve(zeroconf, type, name)
        if resolved:
            self.peers[name] = resolved[0]
            self.events.put(PeersDiscovered([resolved]))

    def remove_service(self, zeroconf, type, name):
        peer_id = self.peers.pop(name, None)
        if peer_id:
            logger.info(f"mDNS discovered peer has expired: {peer_id}")
            self.events.put(PeersExpired([peer_id]))


class Discovery:
    def __init__(self, zeroconf, own_peer_id, events, service_type=SERVICE_TYPE):
        self.zeroconf = zeroconf
        self.service_type = service_type
        self.peer_listener = DiscoveryListener(own_peer_id, events)
        self.browser = None

    def start_service(self):
        # watches local network for peers
        logger.debug(f"Browsing for {self.service_type}")
        self.browser = ServiceBrowser(self.zeroconf, self.service_type, self.peer_listener)

    def stop(self):
        if self.browser:
            self.browser.cancel()
            self.browser = None
