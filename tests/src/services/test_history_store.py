"""
Tests for history persistence (src/services/history_store.py).

Tests cover:
- LocalHistoryStore: round-trip, file naming, corrupt files, clear
- DatabaseHistoryStore: round-trip, ordering, per-user isolation,
  replace-on-save, clear, storage failures
- export_history document shape
- HistoryLocks per-user serialization
"""

from __future__ import annotations

import asyncio
import json

import pytest

from src.lib.exceptions import DatabaseError, ValidationError
from src.models.base import Base
from src.models.wellness import AppSettings, History, Mood, PostMood
from src.services.history_store import (
    DatabaseHistoryStore,
    HistoryLocks,
    LocalHistoryStore,
    export_history,
)
from tests.factories import build_check_in, build_reset


@pytest.fixture
def history():
    return History(
        check_ins=(
            build_check_in(id="c1", post_mood=PostMood.BETTER),
            build_check_in(id="c2", mood=Mood.CALM, practice_id="visual-reset", shift=True),
        ),
        resets=(
            build_reset(id="r1", check_in_id="c1"),
            build_reset(id="r2", practice_id="visual-reset", check_in_id=None, post_mood=None),
        ),
        settings=AppSettings(reduced_motion=True, display_name="Dr. Chen"),
    )


# =============================================================================
# export_history
# =============================================================================


def test_export_is_camel_case_document(history):
    doc = json.loads(export_history(history))
    assert set(doc) == {"checkIns", "resets", "settings"}
    assert doc["checkIns"][0]["practiceId"] == "478-breathing"
    assert doc["checkIns"][0]["postMood"] == "better"
    assert doc["resets"][1]["checkInId"] is None
    assert "postMood" not in doc["resets"][1]
    assert doc["settings"] == {"reducedMotion": True, "displayName": "Dr. Chen"}


def test_export_round_trips(history):
    assert History.from_document(json.loads(export_history(history))) == history


# =============================================================================
# LocalHistoryStore
# =============================================================================


class TestLocalHistoryStore:
    @pytest.fixture
    def store(self, tmp_path):
        return LocalHistoryStore(tmp_path / "demo")

    def test_missing_user_loads_empty(self, store):
        assert store.load("demo-abc") == History()

    def test_round_trip(self, store, history):
        store.save("demo-abc", history)
        assert store.load("demo-abc") == history

    def test_users_are_separate(self, store, history):
        store.save("demo-abc", history)
        assert store.load("demo-xyz") == History()

    def test_user_id_is_sanitized(self, store, history, tmp_path):
        store.save("../escape", history)
        assert (tmp_path / "demo" / "___escape.json").exists()
        assert not (tmp_path / "escape.json").exists()

    def test_empty_user_id_rejected(self, store):
        with pytest.raises(ValidationError):
            store.load("")

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
    def test_corrupt_file_loads_empty(self, store, tmp_path, content):
        (tmp_path / "demo").mkdir()
        (tmp_path / "demo" / "demo-abc.json").write_text(content, encoding="utf-8")
        assert store.load("demo-abc") == History()

    def test_malformed_records_are_dropped(self, store, tmp_path):
        (tmp_path / "demo").mkdir()
        doc = {
            "checkIns": [
                build_check_in().to_document(),
                {"id": "broken", "mood": "furious", "timestamp": "x"},
            ],
            "resets": [{"practiceId": "box-breathing"}],
        }
        (tmp_path / "demo" / "demo-abc.json").write_text(json.dumps(doc), encoding="utf-8")

        loaded = store.load("demo-abc")
        assert loaded.check_ins == (build_check_in(),)
        assert loaded.resets == ()

    def test_clear(self, store, history):
        store.save("demo-abc", history)
        store.clear("demo-abc")
        assert store.load("demo-abc") == History()
        store.clear("demo-abc")  # already gone

    def test_save_leaves_no_temp_file(self, store, history, tmp_path):
        store.save("demo-abc", history)
        assert [p.name for p in (tmp_path / "demo").iterdir()] == ["demo-abc.json"]


# =============================================================================
# DatabaseHistoryStore
# =============================================================================


class TestDatabaseHistoryStore:
    @pytest.fixture
    def store(self, session_factory):
        return DatabaseHistoryStore(session_factory)

    def test_unknown_user_loads_empty(self, store):
        assert store.load("acct-1") == History()

    def test_round_trip_keeps_order(self, store, history):
        store.save("acct-1", history)
        loaded = store.load("acct-1")
        assert loaded == history
        assert [c.id for c in loaded.check_ins] == ["c1", "c2"]

    def test_save_replaces_previous_snapshot(self, store, history):
        store.save("acct-1", history)
        trimmed = History(check_ins=history.check_ins[:1], settings=AppSettings())
        store.save("acct-1", trimmed)
        assert store.load("acct-1") == trimmed

    def test_users_are_isolated(self, store, history):
        store.save("acct-1", history)
        other = History(check_ins=(build_check_in(id="other-c"),))
        store.save("acct-2", other)
        assert store.load("acct-1") == history
        assert store.load("acct-2") == other

    def test_clear_removes_rows_and_settings(self, store, history):
        store.save("acct-1", history)
        store.clear("acct-1")
        assert store.load("acct-1") == History()

    def test_storage_failure_raises_database_error(self, store, session_factory):
        Base.metadata.drop_all(session_factory.kw["bind"])
        with pytest.raises(DatabaseError):
            store.load("acct-1")
        with pytest.raises(DatabaseError):
            store.save("acct-1", History())


class TestHistoryLocks:
    @pytest.mark.asyncio
    async def test_same_user_runs_in_turn(self):
        locks = HistoryLocks()
        events: list[str] = []

        async def update(name: str) -> None:
            async with locks.hold("u"):
                events.append(f"{name}-load")
                await asyncio.sleep(0)
                events.append(f"{name}-save")

        await asyncio.gather(update("a"), update("b"))
        assert events == ["a-load", "a-save", "b-load", "b-save"]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_users_do_not_share_a_lock(self):
        locks = HistoryLocks()
        async with locks.hold("a"):
            async with locks.hold("b"):
                assert len(locks) == 2
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_when_update_fails(self):
        locks = HistoryLocks()
        with pytest.raises(ValidationError):
            async with locks.hold("u"):
                raise ValidationError("bad input")
        assert len(locks) == 0
        async with locks.hold("u"):
            pass
