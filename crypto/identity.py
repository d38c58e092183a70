import os
import hashlib
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

PEER_ID_LENGTH = 32


def fingerprint(public_key_bytes: bytes) -> str:
    """Peer id for a raw Ed25519 public key."""
    return hashlib.sha256(public_key_bytes).hexdigest()[:PEER_ID_LENGTH]


class Identity:
    def __init__(self, key_path=None):
        self.key_path = key_path
        if key_path and os.path.exists(key_path):
            with open(key_path, "rb") as f:
                self.private_key = serialization.load_pem_private_key(f.read(), password=None)
            if not isinstance(self.private_key, Ed25519PrivateKey):
                raise ValueError(f"{key_path} does not hold an Ed25519 key")
        else:
            self.private_key = Ed25519PrivateKey.generate()
            if key_path:
                self._save()
        self.public_key = self.private_key.public_key()
        self.peer_id = fingerprint(self.get_public_key_bytes())

    def _save(self):
        with open(self.key_path, "wb") as f:
            f.write(self.private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption()
            ))

    def sign(self, message: bytes) -> bytes:
        return self.private_key.sign(message)

    @staticmethod
    def verify(signature: bytes, message: bytes, peer_pub_bytes: bytes) -> bool:
        try:
            peer_pub_key = Ed25519PublicKey.from_public_bytes(peer_pub_bytes)
            peer_pub_key.verify(signature, message)
            return True
        except (InvalidSignature, ValueError):
            return False

    def get_public_key_bytes(self):
        # Raw encoding, the form carried on the wire
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )
