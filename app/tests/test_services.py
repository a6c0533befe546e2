"""
Tests for service layer components.
"""

import pytest

from blobcalc.config import Config
from blobcalc.services import CalculatorSession, SessionStore


class TestCalculatorSession:
    """Test calculator session."""

    @pytest.fixture
    def config(self):
        return Config(palette=["red", "green", "blue"])

    @pytest.fixture
    def session(self, config):
        """Create a calculator session instance."""
        return CalculatorSession(config)

    def test_initial_snapshot(self, session):
        """Fresh session starts at "0"."""
        snapshot = session.snapshot()
        assert snapshot["equation"] == "0"
        assert snapshot["terms"] == [0]
        assert snapshot["sum"] == 0
        assert snapshot["session_id"] == session.session_id

    def test_press_sequence(self, session):
        """Should apply keys in order and derive terms and sum."""
        session.press_many("12+3")
        snapshot = session.snapshot()
        assert snapshot["equation"] == "12+3"
        assert snapshot["terms"] == [12, 3]
        assert snapshot["sum"] == 15
        assert snapshot["display"] == "12+3 = 15"

    def test_rejections_counted(self, session):
        """Should count rejected presses separately."""
        results = session.press_many(["0", "+", "+", "7"])
        assert [r.applied for r in results] == [False, True, False, True]
        status = session.get_status()
        assert status["presses"] == 4
        assert status["rejections"] == 2

    def test_clear(self, session):
        session.press_many("45+")
        session.clear()
        assert session.engine.equation == "0"

    def test_layout_uses_term_colors(self, session):
        """Layout should follow terms and palette size."""
        session.press_many("2+3+1+1")
        result = session.layout(400, 400)
        assert [p.color_index for p in result.positions] == [0, 0, 1, 1, 1, 2, 0]

    def test_layout_respects_caps(self):
        session = CalculatorSession(Config(render_cap=10, max_per_term=4))
        session.press_many("9+9")
        result = session.layout(1000, 1000)
        assert [p.color_index for p in result.positions] == [0] * 4 + [1] * 4

    def test_color_for_wraps(self, session):
        assert session.color_for(0) == "red"
        assert session.color_for(4) == "green"

    def test_press_updates_activity(self, session):
        before = session.last_activity
        session.last_activity = before - 100
        session.press("1")
        assert session.last_activity >= before


class TestSessionStore:
    """Test session store."""

    @pytest.fixture
    def store(self):
        return SessionStore(Config(session_timeout=60))

    def test_create_and_get(self, store):
        session = store.create()
        assert store.get(session.session_id) is session
        assert len(store) == 1

    def test_get_missing(self, store):
        assert store.get("nope") is None

    def test_get_or_create(self, store):
        session, is_new = store.get_or_create("abc")
        assert is_new is True
        assert session.session_id == "abc"
        again, is_new = store.get_or_create("abc")
        assert is_new is False
        assert again is session

    def test_get_or_create_without_id(self, store):
        session, is_new = store.get_or_create()
        assert is_new is True
        assert session.session_id in store

    def test_remove(self, store):
        session = store.create()
        assert store.remove(session.session_id) is True
        assert store.remove(session.session_id) is False
        assert len(store) == 0

    def test_cleanup_stale(self, store):
        """Should drop only sessions idle past the timeout."""
        old = store.create()
        fresh = store.create()
        old.last_activity -= 120
        removed = store.cleanup_stale()
        assert removed == 1
        assert old.session_id not in store
        assert fresh.session_id in store

    def test_stats(self, store):
        session = store.create()
        session.press("5")
        stats = store.stats()
        assert stats["count"] == 1
        assert stats["timeout_seconds"] == 60
        assert stats["details"][0]["equation"] == "5"
