"""Signed PUBLISH envelopes exchanged between peers.

Each envelope travels as one JSON line::

    {"type": "PUBLISH", "topic": ..., "from": <peer id>, "seqno": <int>,
     "data": <base64>, "public_key": <base64>, "signature": <base64>}

The signature covers the canonical JSON of ``data``, ``from``, ``seqno`` and
``topic``.
"""
import base64
import binascii
import json
from dataclasses import dataclass

from crypto.identity import Identity, fingerprint

PUBLISH = "PUBLISH"


class InvalidEnvelope(ValueError):
    pass


@dataclass(frozen=True)
class Publication:
    topic: str
    source: str
    seqno: int
    data: bytes

    @property
    def message_id(self):
        return f"{self.source}:{self.seqno}"


def _signed_bytes(topic, source, seqno, data_b64):
    body = {"data": data_b64, "from": source, "seqno": seqno, "topic": topic}
    return json.dumps(body, sort_keys=True, separators=(",", ":")).encode("utf-8")


def build_publish(identity, topic, seqno, data):
    data_b64 = base64.b64encode(data).decode()
    signature = identity.sign(_signed_bytes(topic, identity.peer_id, seqno, data_b64))
    return {
        "type": PUBLISH,
        "topic": topic,
        "from": identity.peer_id,
        "seqno": seqno,
        "data": data_b64,
        "public_key": base64.b64encode(identity.get_public_key_bytes()).decode(),
        "signature": base64.b64encode(signature).decode(),
    }


def verify_publish(msg):
    """Check an inbound envelope and return its ``Publication``.

    Raises ``InvalidEnvelope`` when a field is missing or malformed, the
    sender id does not match the key, or the signature does not verify.
    """
    try:
        topic = msg["topic"]
        source = msg["from"]
        seqno = msg["seqno"]
        data_b64 = msg["data"]
        public_key = base64.b64decode(msg["public_key"], validate=True)
        signature = base64.b64decode(msg["signature"], validate=True)
        data = base64.b64decode(data_b64, validate=True)
    except (KeyError, TypeError, binascii.Error) as e:
        raise InvalidEnvelope(f"Malformed envelope: {e}") from e

    if not isinstance(topic, str) or not isinstance(source, str) or not isinstance(seqno, int):
        raise InvalidEnvelope("Envelope fields have the wrong type")
    if fingerprint(public_key) != source:
        raise InvalidEnvelope(f"Sender {source} does not match its public key")
    if not Identity.verify(signature, _signed_bytes(topic, source, seqno, data_b64), public_key):
        raise InvalidEnvelope(f"Bad signature from {source}")
    return Publication(topic=topic, source=source, seqno=seqno, data=data)
