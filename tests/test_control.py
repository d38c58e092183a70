"""tests for subscription announcement encoding."""

import pytest

from protocol.control import (
    encode, decode, SubscribeAnnounce, UnsubscribeAnnounce, PlainTopicMessage,
    SUBSCRIBE_TAG, UNSUBSCRIBE_TAG,
)


class TestEncode:

    def test_subscribe_wire_text(self):
        assert encode(SubscribeAnnounce("weather")) == b"__SUB__ weather"

    def test_unsubscribe_wire_text(self):
        assert encode(UnsubscribeAnnounce("weather")) == b"__UNSUB__ weather"

    def test_plain_is_raw(self):
        assert encode(PlainTopicMessage(b"hi")) == b"hi"

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            encode("weather")


class TestDecode:

    def test_subscribe_round_trip(self):
        assert decode(encode(SubscribeAnnounce("x"))) == SubscribeAnnounce("x")

    def test_unsubscribe_round_trip(self):
        assert decode(encode(UnsubscribeAnnounce("x"))) == UnsubscribeAnnounce("x")

    def test_topic_with_spaces(self):
        assert decode(f"{SUBSCRIBE_TAG} rainy days".encode()) == SubscribeAnnounce("rainy days")

    def test_plain_text(self):
        assert decode(b"hello world") == PlainTopicMessage(b"hello world")

    def test_tag_without_topic_is_plain(self):
        assert decode(SUBSCRIBE_TAG.encode()) == PlainTopicMessage(SUBSCRIBE_TAG.encode())
        assert decode(f"{UNSUBSCRIBE_TAG} ".encode()) == PlainTopicMessage(f"{UNSUBSCRIBE_TAG} ".encode())

    def test_tag_must_be_first_token(self):
        data = f"say {SUBSCRIBE_TAG} weather".encode()
        assert decode(data) == PlainTopicMessage(data)

    def test_invalid_utf8_kept_exactly(self):
        data = b"\xff\xfe broken \x80"
        result = decode(data)
        assert isinstance(result, PlainTopicMessage)
        assert result.raw == data
        assert "�" in result.text

    def test_empty_payload(self):
        assert decode(b"") == PlainTopicMessage(b"")
