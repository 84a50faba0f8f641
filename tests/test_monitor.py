"""
Tests for the message log ring buffer.
"""

import threading

from onecomme_osc.monitor import INCOMING, OUTGOING, MessageLog


class TestMessageLog:

    def test_records_both_directions(self):
        log = MessageLog()
        log.record_incoming("youtube", {"comment": "hi"}, processed=True)
        log.record_outgoing("/onecomme/youtube/comment", {"comment": "hi"}, success=True)

        messages = log.get_messages()
        assert [m.direction for m in messages] == [INCOMING, OUTGOING]
        assert messages[0].service == "youtube"
        assert messages[1].endpoint == "/onecomme/youtube/comment"
        assert messages[0].id < messages[1].id

    def test_keeps_last_n(self):
        log = MessageLog(max_messages=100)
        for i in range(150):
            log.record_incoming("youtube", {"n": i})

        messages = log.get_messages()
        assert len(messages) == 100
        assert messages[0].data == {"n": 50}
        assert messages[-1].data == {"n": 149}
        assert log.get_stats()["incoming"] == 150

    def test_filter_and_limit(self):
        log = MessageLog()
        for i in range(5):
            log.record_incoming("bilibili", i)
            log.record_outgoing("/x", i)

        assert [m.data for m in log.get_messages(direction=OUTGOING, limit=2)] == [3, 4]
        assert log.get_messages(limit=0) == []

    def test_stats(self):
        log = MessageLog()
        log.record_incoming("twitch", {})
        log.record_outgoing("/a", {}, success=True)
        log.record_outgoing("/a", {}, success=False)

        stats = log.get_stats()
        assert stats["incoming"] == 1
        assert stats["outgoing"] == 2
        assert stats["errors"] == 1
        assert stats["endpoints"] == {"/a": 2}
        assert stats["services"] == {"twitch": 1}
        assert stats["stored"] == 3

    def test_to_dict(self):
        log = MessageLog()
        entry = log.record_outgoing("/a", {"x": 1}, success=False, test=True)
        data = entry.to_dict()
        assert data["endpoint"] == "/a"
        assert data["success"] is False
        assert data["test"] is True
        assert "service" not in data

    def test_clear(self):
        log = MessageLog()
        log.record_incoming("youtube", {})
        log.clear()
        assert len(log) == 0
        assert log.get_stats()["incoming"] == 0

    def test_resize_keeps_newest(self):
        log = MessageLog(max_messages=10)
        for i in range(10):
            log.record_incoming("youtube", i)
        log.resize(3)
        assert [m.data for m in log.get_messages()] == [7, 8, 9]
        assert log.max_messages == 3

    def test_thread_safety(self):
        log = MessageLog(max_messages=1000)

        def writer():
            for i in range(200):
                log.record_outgoing("/t", i)

        threads = [threading.Thread(target=writer) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(log) == 1000
        assert log.get_stats()["outgoing"] == 1000
        assert len({m.id for m in log.get_messages()}) == 1000
