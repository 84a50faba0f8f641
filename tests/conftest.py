"""
Pytest configuration and fixtures for onecomme_osc tests.
"""

import pytest

from onecomme_osc.config import ConfigManager, RuleStore
from onecomme_osc.engine import RuleEngine
from onecomme_osc.monitor import MessageLog
from onecomme_osc.router import CommentRouter
from onecomme_osc.transport import OscSender


class FakeUDPClient:
    """Stands in for SimpleUDPClient; records every datagram."""

    instances = []

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.sent = []
        self.fail_next = 0
        FakeUDPClient.instances.append(self)

    def send_message(self, address, value):
        if self.fail_next:
            self.fail_next -= 1
            raise OSError("network unreachable")
        self.sent.append((address, value))


class BrokenUDPClient(FakeUDPClient):
    """Every send fails."""

    def send_message(self, address, value):
        raise OSError("network unreachable")


@pytest.fixture
def fake_client_factory():
    FakeUDPClient.instances = []
    return FakeUDPClient


@pytest.fixture
def sender(fake_client_factory):
    return OscSender("127.0.0.1", 19100, "binary", client_factory=fake_client_factory)


@pytest.fixture
def sent_messages(fake_client_factory):
    """Callable returning every (address, value) sent through a fake client, in order."""
    def collect():
        return [msg for client in fake_client_factory.instances for msg in client.sent]
    return collect


@pytest.fixture
def config_manager(tmp_path):
    manager = ConfigManager(tmp_path / "config.yaml")
    manager.load()
    return manager


@pytest.fixture
def rule_store(tmp_path):
    return RuleStore(tmp_path / "rules.yaml")


@pytest.fixture
def engine(rule_store):
    return RuleEngine(store=rule_store)


@pytest.fixture
def router(engine, sender, config_manager):
    return CommentRouter(engine, sender, config_manager, MessageLog(100))


@pytest.fixture
def youtube_comment():
    return {
        "service": "youtube",
        "data": {
            "id": "yt-1",
            "liveId": "live-1",
            "userId": "user-1",
            "name": "Alice",
            "displayName": "Alice",
            "comment": 'hello <img src="x.png" alt="👏"> &amp; welcome',
            "isOwner": False,
            "isModerator": False,
            "isMember": True,
            "hasGift": False,
            "timestamp": "2024-06-15T12:58:28.990Z",
            "profileImage": "https://yt3.ggpht.com/abc=s64-c-k-c0x00ffffff-no-rj",
        },
    }


@pytest.fixture
def youtube_superchat():
    return {
        "service": "youtube",
        "data": {
            "id": "yt-2",
            "name": "Bob",
            "comment": "take my money",
            "isMember": False,
            "hasGift": True,
            "giftType": "superchat",
            "paidText": "$25.00",
            "price": 25,
            "unit": "$",
            "tier": 4,
            "colors": {
                "headerBackgroundColor": "rgba(0,184,212,1)",
                "headerTextColor": "rgba(0,0,0,1)",
                "bodyBackgroundColor": "rgba(0,229,255,1)",
                "bodyTextColor": "rgba(0,0,0,0.87)",
                "authorNameTextColor": "not a color",
            },
            "timestamp": "2024-06-15T12:58:28.990Z",
        },
    }


@pytest.fixture
def bilibili_gift():
    return {
        "service": "bilibili",
        "data": {
            "id": "bl-1",
            "uname": "小明",
            "uid": 42,
            "roomId": 1000,
            "hasGift": True,
            "giftName": "辣条",
            "price": 10,
            "num": 3,
            "userLevel": 12,
            "guardLevel": 3,
            "msg": '<img src="g.png" alt="🎁">',
            "timestamp": "2024-06-15T12:58:28.000Z",
        },
    }


@pytest.fixture
def broken_client_factory():
    BrokenUDPClient.instances = []
    return BrokenUDPClient
