from zeroconf import ServiceInfo
import logging
import socket

from peer.discovery import SERVICE_TYPE

logger = logging.getLogger(__name__)


class Broadcast():
    def __init__(self, zeroconf, peer_id, service_type=SERVICE_TYPE, advertise_host=None):
        self.zeroconf = zeroconf
        self.peer_id = peer_id
        self.service_type = service_type
        self.advertise_host = advertise_host
        self.service_info = None

    # Registers the peer over mDNS so others on the network can find it
    def start_service(self, port):
        hostname = socket.gethostname()
        ip_addr = self.advertise_host or socket.gethostbyname(hostname)

        self.service_info = ServiceInfo(
            type_=self.service_type,
            name=f"{self.peer_id}.{self.service_type}",
            addresses=[socket.inet_aton(ip_addr)],
            port=port,
            properties={},
            server=f"{hostname}.local.",
        )

        logger.info(f"Announcing {self.peer_id} at {ip_addr}:{port}")
        self.zeroconf.register_service(self.service_info)

    def stop_service(self):
        if self.service_info:
            self.zeroconf.unregister_service(self.service_info)
            self.service_info = None
