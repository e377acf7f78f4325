"""Tests for habitcore.sync.mutations."""

import pytest

from habitcore.core.exceptions import ValidationError
from habitcore.habits.models import ActivityLogEntry, DailyLog
from habitcore.sync.mutations import MutationKind, QueuedMutation

DAY = "2026-10-19"


class TestConstructors:
    def test_upsert_check(self):
        m = QueuedMutation.upsert_check("water", DAY, True)
        assert m.kind is MutationKind.UPSERT_CHECK
        assert m.entity_key == f"check:water:{DAY}"
        assert m.coalescable

    def test_upsert_daily_log(self):
        m = QueuedMutation.upsert_daily_log(DailyLog(DAY, did_rowing=True))
        assert m.entity_key == f"daily_log:{DAY}"
        assert m.payload["did_rowing"] is True

    def test_activity_uses_entry_id(self):
        entry = ActivityLogEntry(DAY, "rowing", 2000, "meters")
        m = QueuedMutation.insert_activity(entry)
        assert m.entity_key == f"activity:{entry.id}"
        assert not m.coalescable
        assert QueuedMutation.delete_activity(entry.id, DAY).entity_key == m.entity_key

    def test_string_kind_is_coerced(self):
        m = QueuedMutation("upsert_check", {"item_id": "a", "date_key": DAY, "done": True})
        assert m.kind is MutationKind.UPSERT_CHECK

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            QueuedMutation("drop_table", {})


class TestValidate:
    def test_valid(self):
        QueuedMutation.upsert_check("water", DAY, False).validate()

    @pytest.mark.parametrize(
        "mutation",
        [
            QueuedMutation(MutationKind.UPSERT_CHECK, {"item_id": "a", "date_key": "today", "done": True}),
            QueuedMutation(MutationKind.UPSERT_CHECK, {"item_id": "", "date_key": DAY, "done": True}),
            QueuedMutation(MutationKind.UPSERT_DAILY_LOG, {"date_key": DAY, "day_mode": "holiday"}),
            QueuedMutation(
                MutationKind.INSERT_ACTIVITY,
                {"id": "x", "date_key": DAY, "activity_key": "juggling", "value": 1, "unit": "count"},
            ),
            QueuedMutation(MutationKind.INSERT_ACTIVITY, {"date_key": DAY}),
            QueuedMutation(MutationKind.DELETE_ACTIVITY, {"date_key": DAY}),
            QueuedMutation(MutationKind.DELETE_ACTIVITY, {}),
        ],
    )
    def test_invalid(self, mutation):
        with pytest.raises(ValidationError):
            mutation.validate()


class TestSerialization:
    def test_dict_roundtrip(self):
        m = QueuedMutation.insert_activity(ActivityLogEntry(DAY, "sauna", 20, "minutes"))
        m.attempts = 2
        m.last_error = "offline"
        restored = QueuedMutation.from_dict(m.to_dict())
        assert restored == m


class TestInvalidates:
    def test_check_drops_day_and_streaks(self):
        prefixes = QueuedMutation.upsert_check("water", DAY, True).invalidates("u1")
        assert prefixes == [f"day_color:u1:{DAY}", "streaks:u1:"]

    def test_activity_drops_activity_reads(self):
        entry = ActivityLogEntry(DAY, "walking", 5000, "steps")
        assert QueuedMutation.insert_activity(entry).invalidates("u1") == [f"activity:u1:{DAY}"]


async def test_apply_dispatches_to_gateway(gateway):
    entry = ActivityLogEntry(DAY, "rowing", 2000, "meters")
    await QueuedMutation.upsert_check("water", DAY, True).apply(gateway, "u1")
    await QueuedMutation.upsert_daily_log(DailyLog(DAY, did_weights=True)).apply(gateway, "u1")
    await QueuedMutation.insert_activity(entry).apply(gateway, "u1")
    await QueuedMutation.delete_activity(entry.id, DAY).apply(gateway, "u1")

    assert gateway.checks[("water", DAY)] is True
    assert gateway.logs[DAY].did_weights
    assert entry.id not in gateway.activities
    assert [w[0] for w in gateway.writes] == ["upsert_check", "upsert_daily_log", "insert_activity", "delete_activity"]
