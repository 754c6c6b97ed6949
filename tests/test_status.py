"""
Status Board Tests.
"""

import logging

from cue_director.status import StatusBoard, StatusLevel, StatusRecord


class TestStatusBoard:
    """Tests for StatusBoard."""

    def test_latest_wins(self):
        """Only the latest status is current."""
        board = StatusBoard()
        board.info("one")
        board.error("two")

        assert board.message == "two"
        assert board.latest.level == StatusLevel.ERROR
        assert board.update_count == 2

    def test_listener(self):
        """The listener sees every record."""
        seen = []
        board = StatusBoard(listener=seen.append)
        board.success("Prepared sounds (20) in 1.2s", count=20)

        assert [r.message for r in seen] == ["Prepared sounds (20) in 1.2s"]
        assert seen[0].data == {"count": 20}

    def test_failing_listener_is_logged(self, caplog):
        """A broken listener does not break the board."""
        def broken(record):
            raise RuntimeError("boom")

        board = StatusBoard(listener=broken)
        with caplog.at_level(logging.WARNING, logger="cue_director.status"):
            board.info("hello")

        assert board.message == "hello"
        assert "Status listener failed" in caplog.text

    def test_mirrored_to_logging(self, caplog):
        """Updates are logged at the matching level."""
        board = StatusBoard()
        with caplog.at_level(logging.INFO, logger="cue_director.status"):
            board.warning("Analysis paused")

        assert caplog.records[-1].levelno == logging.WARNING

    def test_empty(self):
        """A fresh board has no status."""
        board = StatusBoard()
        assert board.latest is None
        assert board.message == ""


class TestStatusRecord:
    """Tests for StatusRecord."""

    def test_to_dict(self):
        """Data is flattened into the dict."""
        record = StatusRecord("x", StatusLevel.WARNING, timestamp=1.0, data={"k": 1})

        assert record.to_dict() == {"message": "x", "level": "warning", "timestamp": 1.0, "k": 1}
