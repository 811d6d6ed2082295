from __future__ import annotations

from datetime import datetime

from pill_pal.records import state as st
from pill_pal.reminders.evaluator import NOTIFICATION_TITLE, ReminderEvaluator
from tests.factories import make_contact, make_medicine, make_prescription


def _state(*prescriptions, contacts=()) -> st.AppState:
    return st.AppState(
        medicines=(make_medicine("m1", "アムロジピン"), make_medicine("m2", "メトホルミン")),
        prescriptions=tuple(prescriptions),
        contacts=tuple(contacts),
    )


def test_fires_once_per_minute():
    evaluator = ReminderEvaluator()
    s = _state(make_prescription("p1", "朝"))

    first = evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 3), s)
    second = evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 7), s)

    assert [e.prescription_id for e in first] == ["p1"]
    assert second == []
    assert evaluator.last_fired_minute == "2024-05-01 08:00"


def test_same_time_fires_again_next_day():
    evaluator = ReminderEvaluator()
    s = _state(make_prescription("p1", "朝"))

    assert len(evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 3), s)) == 1
    assert len(evaluator.evaluate(datetime(2024, 5, 2, 8, 0, 3), s)) == 1


def test_inactive_and_out_of_range_do_not_fire():
    evaluator = ReminderEvaluator()
    s = _state(
        make_prescription("p1", "無効", is_active=False),
        make_prescription("p2", "期間外", start_date="2024-06-01", end_date="2024-06-30"),
    )
    assert evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 3), s) == []
    assert evaluator.last_fired_minute is None


def test_date_range_is_inclusive():
    s = _state(make_prescription("p1", "朝", start_date="2024-05-01", end_date="2024-05-01"))
    assert len(ReminderEvaluator().evaluate(datetime(2024, 5, 1, 8, 0, 59), s)) == 1


def test_non_matching_minute_does_not_fire():
    s = _state(make_prescription("p1", "朝", reminder_times=("08:00",)))
    assert ReminderEvaluator().evaluate(datetime(2024, 5, 1, 8, 1, 0), s) == []


def test_multiple_prescriptions_due_in_same_minute_all_fire():
    evaluator = ReminderEvaluator()
    s = _state(
        make_prescription("p1", "朝", reminder_times=("08:00", "20:00")),
        make_prescription("p2", "血糖", medicine_ids=("m2",), reminder_times=("08:00",)),
    )
    events = evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 3), s)
    assert sorted(e.prescription_id for e in events) == ["p1", "p2"]


def test_event_text_and_unresolved_medicines_are_dropped():
    s = _state(make_prescription("p1", "朝", medicine_ids=("m1", "gone", "m2")))
    [event] = ReminderEvaluator().evaluate(datetime(2024, 5, 1, 8, 0, 3), s)

    assert event.medicine_names == ("アムロジピン", "メトホルミン")
    assert event.title == NOTIFICATION_TITLE
    assert event.body == "処方: 朝\n服用する薬: アムロジピン, メトホルミン"
    assert event.due_time == "08:00"
    assert event.to_payload()["contact_name"] is None


def test_event_title_mentions_resolved_contact():
    s = _state(make_prescription("p1", "朝", contact_id="c1"), contacts=(make_contact("c1", "母"),))
    [event] = ReminderEvaluator().evaluate(datetime(2024, 5, 1, 8, 0, 3), s)
    assert event.contact_name == "母"
    assert event.title == f"母 さんへのリマインド: {NOTIFICATION_TITLE}"


def test_prescription_added_after_fire_waits_for_next_time():
    evaluator = ReminderEvaluator()
    evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 3), _state(make_prescription("p1", "朝")))

    later = _state(make_prescription("p1", "朝"), make_prescription("p2", "追加"))
    assert evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 40), later) == []


def test_reset_clears_guard():
    evaluator = ReminderEvaluator()
    s = _state(make_prescription("p1", "朝"))
    evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 3), s)
    evaluator.reset()
    assert len(evaluator.evaluate(datetime(2024, 5, 1, 8, 0, 9), s)) == 1
