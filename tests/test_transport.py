"""
Tests for the OSC sender.
"""

import json

import pytest

from onecomme_osc.transport import OscSender, encode, serialize


class TestEncode:

    def test_binary_is_utf8_json(self):
        data = encode({"comment": "こんにちは"}, "binary")
        assert isinstance(data, bytes)
        assert json.loads(data.decode("utf-8")) == {"comment": "こんにちは"}
        assert "こんにちは".encode("utf-8") in data

    def test_string_keeps_non_ascii(self):
        data = encode({"comment": "ñ"}, "string")
        assert isinstance(data, str)
        assert "ñ" in data

    def test_strings_pass_through(self):
        assert serialize("raw") == "raw"

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            encode({}, "xml")


class TestOscSender:

    def test_send_binary(self, sender, fake_client_factory):
        assert sender.send("/onecomme/youtube/comment", {"a": 1}) is True
        client = fake_client_factory.instances[0]
        address, value = client.sent[0]
        assert address == "/onecomme/youtube/comment"
        assert value == b'{"a":1}'
        assert (client.host, client.port) == ("127.0.0.1", 19100)

    def test_send_string(self, fake_client_factory):
        sender = OscSender("127.0.0.1", 19100, "string", client_factory=fake_client_factory)
        sender.send("/x", {"a": 1})
        assert fake_client_factory.instances[0].sent == [("/x", '{"a":1}')]

    def test_client_reused(self, sender, fake_client_factory):
        sender.send("/a", {})
        sender.send("/b", {})
        assert len(fake_client_factory.instances) == 1

    def test_transient_failure_retries_with_new_client(self, sender, fake_client_factory):
        sender.send("/warmup", {})
        fake_client_factory.instances[0].fail_next = 1

        assert sender.send("/x", {"a": 1}) is True
        assert len(fake_client_factory.instances) == 2
        assert fake_client_factory.instances[1].sent == [("/x", b'{"a":1}')]

    def test_persistent_failure_returns_false(self, broken_client_factory, caplog):
        sender = OscSender("10.255.255.1", 19100, client_factory=broken_client_factory)
        payload = {"comment": "x" * 500}

        with caplog.at_level("ERROR", logger="onecomme_osc.transport"):
            assert sender.send("/onecomme/youtube/comment", payload) is False

        assert "/onecomme/youtube/comment" in caplog.text
        assert '{"comment":"xxx' in caplog.text
        assert "x" * 200 not in caplog.text
        assert sender.get_stats()["errors"] == 1

    def test_unserializable_payload_returns_false(self, sender, fake_client_factory):
        payload = {}
        payload["self"] = payload
        assert sender.send("/x", payload) is False
        assert fake_client_factory.instances == []

    def test_non_json_values_are_stringified(self, sender, fake_client_factory):
        sender.send("/x", {"when": object})
        assert b"<class 'object'>" in fake_client_factory.instances[0].sent[0][1]

    def test_retarget(self, sender, fake_client_factory):
        sender.send("/a", {})
        sender.retarget("192.168.0.10", 9000, "string")
        sender.send("/b", {})

        client = fake_client_factory.instances[-1]
        assert (client.host, client.port) == ("192.168.0.10", 9000)
        assert client.sent == [("/b", "{}")]
        assert sender.target == "192.168.0.10:9000"

    def test_for_target_leaves_original(self, sender):
        other = sender.for_target("10.0.0.2", 7000)
        assert other is not sender
        assert other.target == "10.0.0.2:7000"
        assert sender.target == "127.0.0.1:19100"

    def test_stop_drops_client(self, sender, fake_client_factory):
        sender.send("/a", {})
        sender.stop()
        sender.send("/b", {})
        assert len(fake_client_factory.instances) == 2
