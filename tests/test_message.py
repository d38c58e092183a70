"""tests for signed envelopes and the inbound connection handler."""

import queue
import socket

import pytest

from crypto.identity import Identity
from peer.events import TopicMessage
from peer.pubsub import PubSub
from protocol.handler import handle_incoming_request
from protocol.json_handler import send_json
from protocol.message import build_publish, verify_publish, InvalidEnvelope, Publication


class TestEnvelope:

    def test_verify_accepts_own_build(self):
        ident = Identity()
        env = build_publish(ident, "news", 7, b"hello")
        assert verify_publish(env) == Publication("news", ident.peer_id, 7, b"hello")

    def test_tampered_data_rejected(self):
        ident = Identity()
        env = build_publish(ident, "news", 7, b"hello")
        env["topic"] = "other"
        with pytest.raises(InvalidEnvelope):
            verify_publish(env)

    def test_spoofed_sender_rejected(self):
        ident = Identity()
        env = build_publish(ident, "news", 7, b"hello")
        env["from"] = Identity().peer_id
        with pytest.raises(InvalidEnvelope):
            verify_publish(env)

    def test_missing_field_rejected(self):
        env = build_publish(Identity(), "news", 7, b"hello")
        del env["signature"]
        with pytest.raises(InvalidEnvelope):
            verify_publish(env)

    def test_message_id(self):
        assert Publication("t", "abc", 3, b"").message_id == "abc:3"


class TestHandleIncomingRequest:

    def _exchange(self, obj, pubsub):
        left, right = socket.socketpair()
        try:
            send_json(left, obj)
            return handle_incoming_request(right, ("127.0.0.1", 1), pubsub)
        finally:
            left.close()
            right.close()

    def test_delivers_subscribed_topic(self):
        events = queue.Queue()
        receiver = PubSub(Identity(), events)
        receiver.subscribe("news")
        sender = Identity()
        result = self._exchange(build_publish(sender, "news", 1, b"hi"), receiver)
        assert result["status"] == "delivered"
        assert events.get_nowait() == TopicMessage("news", sender.peer_id, b"hi")

    def test_rejects_bad_signature(self):
        receiver = PubSub(Identity(), queue.Queue())
        env = build_publish(Identity(), "news", 1, b"hi")
        env["data"] = "aGVsbG8="
        assert self._exchange(env, receiver)["status"] == "rejected"

    def test_ignores_unknown_type(self):
        receiver = PubSub(Identity(), queue.Queue())
        assert self._exchange({"type": "LIST_FILES"}, receiver)["status"] == "ignored"

    def test_garbage_is_error(self):
        receiver = PubSub(Identity(), queue.Queue())
        left, right = socket.socketpair()
        try:
            left.sendall(b"not json\n")
            result = handle_incoming_request(right, ("127.0.0.1", 1), receiver)
        finally:
            left.close()
            right.close()
        assert result["status"] == "error"
