"""Unit tests for the in-memory session store."""

from pathlib import Path

import pytest

from hallcoordinator.exceptions import InputValidationError, SessionWriteError
from hallcoordinator.store.memory_store import InMemorySessionStore

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

pytestmark = pytest.mark.unit


class TestInMemorySessionStore:
    """Tests for InMemorySessionStore reads and writes."""

    async def test_get_coordinator_when_known_token_then_info_with_event(self, memory_store):
        coordinator = await memory_store.get_coordinator("tok-hall-a")

        assert coordinator.hall_name == "Hall A"
        assert coordinator.coordinator_name == "Ravi Kumar"
        assert coordinator.event.display_name == "NCS 2026"

    async def test_get_coordinator_when_unknown_token_then_none(self, memory_store):
        assert await memory_store.get_coordinator("nope") is None

    async def test_list_sessions_when_hall_filtered_then_ordered(self, memory_store):
        sessions = await memory_store.list_sessions("evt-1", "Hall A")

        assert [s.id for s in sessions] == ["s1", "s2", "s3", "s4", "s5"]

    async def test_list_sessions_when_row_malformed_then_skipped(self, caplog):
        store = InMemorySessionStore(
            sessions=[
                {"id": "ok", "event_id": "evt-1", "hall": "Hall A", "start_time": "09:00"},
                {"id": "bad", "event_id": "evt-1", "hall": "Hall A", "audience_count": -1},
            ]
        )

        sessions = await store.list_sessions("evt-1", "Hall A")

        assert [s.id for s in sessions] == ["ok"]
        assert "Skipping malformed session row 'bad'" in caplog.text

    async def test_list_sessions_when_other_event_then_empty(self, memory_store):
        assert await memory_store.list_sessions("evt-2", "Hall A") == []

    async def test_list_roster_when_event_then_only_its_registrations(self, memory_store):
        roster = await memory_store.list_roster("evt-1")

        assert len(roster) == 3
        assert all(r.attendee_phone != "1111111111" for r in roster)

    async def test_update_session_when_partial_then_other_fields_kept(self, memory_store):
        await memory_store.update_session("s3", {"coordinator_notes": "Mic 2 spare"})

        row = memory_store.raw_session("s3")
        assert row["coordinator_notes"] == "Mic 2 spare"
        assert row["session_name"] == "Keynote Address by Meera Iyer"

    async def test_update_session_when_field_not_owned_then_rejected(self, memory_store):
        with pytest.raises(InputValidationError):
            await memory_store.update_session("s3", {"session_name": "Renamed"})

    async def test_update_session_when_unknown_id_then_write_error(self, memory_store):
        with pytest.raises(SessionWriteError):
            await memory_store.update_session("missing", {"audience_count": 5})

    async def test_set_checklist_item_when_unknown_id_then_write_error(self, memory_store):
        with pytest.raises(SessionWriteError):
            await memory_store.set_checklist_item("missing", "av_ready", True, "now")

    async def test_list_sessions_when_mutated_then_store_unchanged(self, memory_store):
        sessions = await memory_store.list_sessions("evt-1", "Hall A")
        sessions[1].coordinator_checklist["mic_checked"] = True

        assert "mic_checked" not in memory_store.raw_session("s2")["coordinator_checklist"]

    async def test_from_json_file_when_fixture_then_loaded(self):
        store = InMemorySessionStore.from_json_file(FIXTURES_DIR / "hall_agenda.json")

        sessions = await store.list_sessions("evt-1", "Hall B")
        assert [s.id for s in sessions] == ["s6"]

    def test_from_json_file_when_root_not_object_then_value_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(ValueError):
            InMemorySessionStore.from_json_file(path)
