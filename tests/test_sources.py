"""
Tests for source detection.
"""

import pytest

from onecomme_osc.sources import detect_source, matches_message_type


class TestDetectSource:
    """Priority: type prefix, service, structural hints, unknown."""

    @pytest.mark.parametrize("message_type,expected", [
        ("youtube", "youtube"),
        ("youtube-super", "youtube"),
        ("bilibili-gift", "bilibili"),
        ("niconico-gift", "niconico"),
        ("niconama", "niconico"),
        ("twitch-raid", "twitch"),
    ])
    def test_type_prefix(self, message_type, expected):
        assert detect_source({"type": message_type}) == expected

    def test_type_beats_service(self):
        assert detect_source({"type": "youtube", "service": "bilibili"}) == "youtube"

    def test_service_beats_twitch_type(self):
        assert detect_source({"type": "twitch", "service": "youtube"}) == "youtube"

    def test_twitch_type_beats_structural_hints(self):
        assert detect_source({"type": "twitch-bits", "userLevel": 3}) == "twitch"

    def test_service_lowercased(self):
        assert detect_source({"type": "chat", "service": "OpenRec"}) == "openrec"

    def test_structural_bilibili(self):
        assert detect_source({"userLevel": 3}) == "bilibili"
        assert detect_source({"guardLevel": 0}) == "bilibili"

    def test_structural_youtube(self):
        assert detect_source({"isMember": False}) == "youtube"

    def test_unknown(self):
        assert detect_source({"comment": "hi"}) == "unknown"
        assert detect_source({"type": ""}) == "unknown"


class TestMatchesMessageType:

    @pytest.mark.parametrize("kind,has_gift,expected", [
        ("gift", True, True),
        ("gift", False, False),
        ("superchat", True, True),
        ("superchat", None, False),
        ("comment", False, True),
        ("comment", True, False),
        ("membership", True, True),
    ])
    def test_kinds(self, kind, has_gift, expected):
        assert matches_message_type(kind, {"hasGift": has_gift}) is expected
