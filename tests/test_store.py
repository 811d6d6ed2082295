from __future__ import annotations

import dataclasses
import random

import pytest

from pill_pal.errors import DuplicateNameError, ValidationError
from pill_pal.records.models import CONTACT_STATUS_CONNECTED, CONTACT_STATUS_LOCAL, Contact, User
from tests.factories import make_contact, make_medicine, make_prescription


@pytest.fixture
def seeded(store):
    store.upsert_medicine(make_medicine("m1", "A"))
    store.upsert_medicine(make_medicine("m2", "B"))
    return store


def test_every_mutation_flushes_new_state(store, persistence):
    store.upsert_medicine(make_medicine("m1", "A"))
    assert len(persistence.flushed) == 1
    assert persistence.flushed[-1] is store.state


def test_medicine_requires_name(store, persistence):
    with pytest.raises(ValidationError):
        store.upsert_medicine(make_medicine("m1", "   "))
    assert store.state.medicines == ()
    assert persistence.flushed == []


def test_duplicate_prescription_name_is_rejected(seeded, persistence):
    seeded.upsert_prescription(make_prescription("p1", "朝"))
    flushed = len(persistence.flushed)

    with pytest.raises(DuplicateNameError):
        seeded.upsert_prescription(make_prescription("p2", "朝"))

    assert [p.id for p in seeded.state.prescriptions] == ["p1"]
    assert len(persistence.flushed) == flushed


def test_same_name_allowed_when_updating_same_prescription(seeded):
    seeded.upsert_prescription(make_prescription("p1", "朝"))
    updated = seeded.upsert_prescription(make_prescription("p1", "朝", reminder_times=("09:00",)))
    assert updated.reminder_times == ("09:00",)


def test_name_uniqueness_is_case_sensitive(store):
    store.upsert_medicine(make_medicine("m1", "A"))
    store.upsert_prescription(make_prescription("p1", "Morning"))
    store.upsert_prescription(make_prescription("p2", "morning"))
    assert len(store.state.prescriptions) == 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"medicine_ids": ()},
        {"medicine_ids": ("missing",)},
        {"reminder_times": ()},
        {"reminder_times": ("8:00",)},
        {"reminder_times": ("24:00",)},
        {"reminder_times": ("06:00", "08:00", "10:00", "12:00", "14:00", "16:00")},
        {"start_date": "2024-06-01", "end_date": "2024-05-01"},
        {"start_date": "not-a-date"},
        {"contact_id": "missing"},
    ],
)
def test_invalid_prescription_is_rejected_without_change(seeded, persistence, overrides):
    kwargs = {"name": "朝", "medicine_ids": ("m1",), **overrides}
    flushed = len(persistence.flushed)
    with pytest.raises(ValidationError):
        seeded.upsert_prescription(make_prescription("p1", **kwargs))
    assert seeded.state.prescriptions == ()
    assert len(persistence.flushed) == flushed


def test_reminder_times_are_deduplicated_in_order(seeded):
    saved = seeded.upsert_prescription(make_prescription("p1", "朝", reminder_times=("20:00", "08:00", "20:00")))
    assert saved.reminder_times == ("20:00", "08:00")


def test_delete_medicine_cascades_to_prescriptions(seeded):
    seeded.upsert_prescription(make_prescription("p1", "朝", medicine_ids=("m1", "m2")))
    seeded.upsert_prescription(make_prescription("p2", "夜", medicine_ids=("m1",)))

    assert seeded.delete_medicine("m1") is True

    assert seeded.get_medicine("m1") is None
    for p in seeded.state.prescriptions:
        assert "m1" not in p.medicine_ids()
    assert seeded.get_prescription("p2").is_active is False
    assert seeded.get_prescription("p1").is_active is True


def test_delete_missing_is_noop(store, persistence):
    assert store.delete_medicine("nope") is False
    assert store.delete_prescription("nope") is False
    assert store.delete_contact("nope") is False
    assert store.toggle_active("nope") is None
    assert persistence.flushed == []


def test_delete_contact_clears_reference_only(seeded):
    seeded.upsert_contact(make_contact("c1"))
    seeded.upsert_prescription(make_prescription("p1", "朝", contact_id="c1"))
    before = seeded.get_prescription("p1")

    seeded.delete_contact("c1")

    after = seeded.get_prescription("p1")
    assert after == dataclasses.replace(before, contact_id=None)


@pytest.mark.parametrize(
    "phone,expected",
    [
        ("13800000002", CONTACT_STATUS_CONNECTED),
        ("13800000000", CONTACT_STATUS_CONNECTED),
        ("13800000001", CONTACT_STATUS_LOCAL),
        ("1380000000x", CONTACT_STATUS_LOCAL),
    ],
)
def test_contact_status_follows_last_digit_parity(store, phone, expected):
    saved = store.upsert_contact(Contact(id="c1", name="母", phone=phone))
    assert saved.status == expected


def test_contact_edit_keeps_original_status(store):
    store.upsert_contact(Contact(id="c1", name="母", phone="13800000002"))
    edited = store.upsert_contact(Contact(id="c1", name="母", phone="13800000001"))
    assert edited.status == CONTACT_STATUS_CONNECTED
    assert edited.phone == "13800000001"


def test_contact_requires_name_and_phone(store):
    with pytest.raises(ValidationError):
        store.upsert_contact(Contact(id="c1", name="", phone="13800000002"))
    with pytest.raises(ValidationError):
        store.upsert_contact(Contact(id="c1", name="母", phone=" "))


def test_new_records_come_first(store):
    store.upsert_contact(make_contact("c1"))
    store.upsert_contact(make_contact("c2"))
    assert [c.id for c in store.state.contacts] == ["c2", "c1"]


def test_toggle_active_round_trip(seeded):
    seeded.upsert_prescription(make_prescription("p1", "朝"))
    assert seeded.toggle_active("p1").is_active is False
    assert seeded.toggle_active("p1").is_active is True


def test_sign_in_and_sign_out(store, persistence):
    store.sign_in(User(id="13800000000", phone="13800000000", is_new=True))
    assert store.current_user.id == "13800000000"
    store.sign_out()
    assert store.current_user is None
    # --- 2回目のサインアウトは何もしない ---
    flushed = len(persistence.flushed)
    store.sign_out()
    assert len(persistence.flushed) == flushed


def test_failed_flush_keeps_previous_state(store):
    class BrokenPersistence:
        def flush(self, state) -> None:
            raise OSError("disk full")

    store._persistence = BrokenPersistence()
    with pytest.raises(OSError):
        store.upsert_medicine(make_medicine("m1", "A"))
    assert store.state.medicines == ()


def _assert_references_resolve(store) -> None:
    state = store.state
    medicine_ids = {m.id for m in state.medicines}
    contact_ids = {c.id for c in state.contacts}
    for p in state.prescriptions:
        assert set(p.medicine_ids()) <= medicine_ids, p
        assert p.contact_id is None or p.contact_id in contact_ids, p


@pytest.mark.parametrize("seed", range(5))
def test_references_resolve_after_any_operation_sequence(store, seed):
    rng = random.Random(seed)
    for _ in range(200):
        state = store.state
        op = rng.choice(["med", "del_med", "rx", "del_rx", "toggle", "contact", "del_contact"])
        if op == "med":
            mid = f"m{rng.randrange(5)}"
            store.upsert_medicine(make_medicine(mid, f"薬{mid}"))
        elif op == "del_med":
            store.delete_medicine(f"m{rng.randrange(5)}")
        elif op == "rx" and state.medicines:
            pid = f"p{rng.randrange(4)}"
            picked = rng.sample([m.id for m in state.medicines], k=rng.randint(1, len(state.medicines)))
            contact = rng.choice([None, *[c.id for c in state.contacts]])
            store.upsert_prescription(
                make_prescription(pid, f"処方{pid}", medicine_ids=tuple(picked), contact_id=contact)
            )
        elif op == "del_rx":
            store.delete_prescription(f"p{rng.randrange(4)}")
        elif op == "toggle":
            store.toggle_active(f"p{rng.randrange(4)}")
        elif op == "contact":
            cid = f"c{rng.randrange(3)}"
            store.upsert_contact(make_contact(cid, f"家族{cid}", f"1380000000{rng.randrange(10)}"))
        elif op == "del_contact":
            store.delete_contact(f"c{rng.randrange(3)}")
        _assert_references_resolve(store)
