import logging

from protocol.json_handler import recv_json
from protocol.message import PUBLISH, InvalidEnvelope, verify_publish

logger = logging.getLogger(__name__)


def handle_incoming_request(sock, addr, pubsub):
    """Read one envelope from an accepted connection and hand it to ``pubsub``.

    Returns a status dict; ``status`` is one of ``delivered``, ``duplicate``,
    ``unsubscribed``, ``own``, ``rejected``, ``ignored`` or ``error``.
    """
    try:
        msg = recv_json(sock, timeout=pubsub.connect_timeout, max_bytes=pubsub.max_frame_bytes)
        logger.debug(f"Received message from {addr}: type={msg.get('type')}")
        msg_type = msg.get("type")
        if msg_type == PUBLISH:
            try:
                publication = verify_publish(msg)
            except InvalidEnvelope as e:
                return {"status": "rejected", "reason": str(e)}
            return {"status": pubsub.deliver(publication), "message_id": publication.message_id}
        else:
            return {"status": "ignored", "reason": f"Unsupported message type: {msg_type}"}
    except (OSError, ValueError) as e:
        return {"status": "error", "reason": str(e)}
