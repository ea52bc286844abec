"""Tests for domain models."""

import pytest

from shared_timer.domain.models import (
    MINUTE_MS,
    SCHEMA_VERSION,
    Phase,
    RoomContext,
    SessionRecord,
    TimerSettings,
)


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "schema_version": SCHEMA_VERSION,
        "phase": "work",
        "end_instant": None,
        "remaining": 1_500_000,
        "paused": True,
        "cycle_count": 1,
        "revision": 3,
        "updated_by": "client-a",
    }
    payload.update(overrides)
    return payload


class TestRoomContext:
    """Tests for room identity."""

    def test_when_key_requested_then_prefixed_with_room(self) -> None:
        """Given a room, when building a key, then it lives under the room prefix."""
        context = RoomContext(room_id="abc", client_id="me")

        assert context.key_for("session") == "abc/session"

    def test_when_generated_then_room_ids_differ(self) -> None:
        """Given two generated rooms, then their ids differ and are 22 base-36 chars."""
        first = RoomContext.generate()
        second = RoomContext.generate()

        assert first.room_id != second.room_id
        assert len(first.room_id) == 22
        assert first.room_id.isalnum()
        assert first.client_id

    @pytest.mark.parametrize("room_id", ["", "  ", "a/b", "a.b", "a#b", "a$b", "a[b]"])
    def test_when_room_id_invalid_then_raises(self, room_id: str) -> None:
        """Given an empty id or backend path characters, when creating, then raises."""
        with pytest.raises(ValueError):
            RoomContext(room_id=room_id)


class TestTimerSettings:
    """Tests for timer settings."""

    def test_duration_for_each_phase(self) -> None:
        settings = TimerSettings(work_duration_ms=50 * MINUTE_MS, break_duration_ms=10 * MINUTE_MS)

        assert settings.duration_for(Phase.WORK) == 50 * MINUTE_MS
        assert settings.duration_for(Phase.BREAK) == 10 * MINUTE_MS

    def test_when_duration_not_positive_then_raises(self) -> None:
        with pytest.raises(ValueError, match="durations must be positive"):
            TimerSettings(work_duration_ms=0)

    def test_when_increment_below_one_then_raises(self) -> None:
        with pytest.raises(ValueError, match="work_cycle_increment"):
            TimerSettings(work_cycle_increment=0)

    def test_phase_next_alternates(self) -> None:
        assert Phase.WORK.next is Phase.BREAK
        assert Phase.BREAK.next is Phase.WORK


class TestSessionRecord:
    """Tests for the replicated session record."""

    def test_initial_record_is_paused_full_work_phase(self) -> None:
        record = SessionRecord.initial(TimerSettings())

        assert record.phase is Phase.WORK
        assert record.paused is True
        assert record.remaining_ms == 25 * MINUTE_MS
        assert record.cycle_count == 1
        assert record.revision == 0

    def test_when_successor_built_then_revision_increments(self) -> None:
        """Given a record, when deriving a successor, then revision and writer change."""
        record = SessionRecord.initial(TimerSettings())

        successor = record.successor("client-b", cycle_count=4)

        assert successor.revision == 1
        assert successor.updated_by == "client-b"
        assert successor.cycle_count == 4
        assert successor.phase is record.phase

    def test_payload_keeps_paused_consistent_with_end_instant(self) -> None:
        running = SessionRecord(Phase.BREAK, end_instant_ms=123, remaining_ms=300_000)

        payload = running.to_payload()

        assert payload["paused"] is False
        assert payload["end_instant"] == 123
        assert payload["phase"] == "break"
        assert payload["schema_version"] == SCHEMA_VERSION

    def test_when_payload_valid_then_parsed(self) -> None:
        record = SessionRecord.from_payload(_payload(end_instant=1_700_000_000_000, paused=False))

        assert record.phase is Phase.WORK
        assert record.end_instant_ms == 1_700_000_000_000
        assert record.paused is False
        assert record.revision == 3
        assert record.updated_by == "client-a"

    def test_when_paused_flag_disagrees_then_end_instant_wins(self) -> None:
        """Given a stale paused flag, when parsing, then pause state follows end_instant."""
        record = SessionRecord.from_payload(_payload(end_instant=5, paused=True))

        assert record.paused is False

    def test_when_numbers_are_floats_then_truncated_to_ints(self) -> None:
        record = SessionRecord.from_payload(_payload(remaining=1500.9, cycle_count=2.0))

        assert record.remaining_ms == 1500
        assert record.cycle_count == 2

    def test_when_values_out_of_range_then_clamped(self) -> None:
        """Given a negative remaining and zero count, when parsing, then clamped."""
        record = SessionRecord.from_payload(_payload(remaining=-10, cycle_count=0))

        assert record.remaining_ms == 0
        assert record.cycle_count == 1

    def test_when_revision_missing_then_zero(self) -> None:
        payload = _payload()
        del payload["revision"]

        assert SessionRecord.from_payload(payload).revision == 0

    @pytest.mark.parametrize(
        "payload",
        [
            "not an object",
            [1, 2],
            _payload(schema_version=2),
            _payload(phase="lunch"),
            _payload(remaining="soon"),
            _payload(remaining=True),
            _payload(end_instant="later"),
            _payload(cycle_count=None),
        ],
    )
    def test_when_payload_malformed_then_raises_value_error(self, payload: object) -> None:
        with pytest.raises(ValueError):
            SessionRecord.from_payload(payload)
