"""
アプリ状態と reducer

状態（AppState）は不変で、変更はイベントを `apply(state, event)` に通して新しい状態を得る。
apply は副作用を持たない（永続化は store 側の責務）。

参照整合性:
    - 薬品削除: 全処方の medicines から該当IDを取り除く。
      取り除いた結果 medicines が空になった処方は isActive=False にする（空の通知を出さない）。
    - 連絡先削除: 参照している処方の contactId を未設定に戻す（他の項目は変えない）。
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Optional, TypeVar, Union

from pill_pal.records.models import Contact, Medicine, Prescription, User


@dataclass(frozen=True)
class AppState:
    """アプリ全体の状態。各コレクションは新しいものが先頭。"""

    current_user: Optional[User] = None
    medicines: tuple[Medicine, ...] = ()
    prescriptions: tuple[Prescription, ...] = ()
    contacts: tuple[Contact, ...] = ()

    def find_medicine(self, medicine_id: str) -> Optional[Medicine]:
        return next((m for m in self.medicines if m.id == medicine_id), None)

    def find_prescription(self, prescription_id: str) -> Optional[Prescription]:
        return next((p for p in self.prescriptions if p.id == prescription_id), None)

    def find_contact(self, contact_id: str) -> Optional[Contact]:
        return next((c for c in self.contacts if c.id == contact_id), None)


# --- イベント ---


@dataclass(frozen=True)
class MedicineUpserted:
    medicine: Medicine


@dataclass(frozen=True)
class MedicineDeleted:
    medicine_id: str


@dataclass(frozen=True)
class PrescriptionUpserted:
    prescription: Prescription


@dataclass(frozen=True)
class PrescriptionDeleted:
    prescription_id: str


@dataclass(frozen=True)
class PrescriptionActiveToggled:
    prescription_id: str


@dataclass(frozen=True)
class ContactUpserted:
    contact: Contact


@dataclass(frozen=True)
class ContactDeleted:
    contact_id: str


@dataclass(frozen=True)
class UserSignedIn:
    user: User


@dataclass(frozen=True)
class UserSignedOut:
    pass


StateEvent = Union[
    MedicineUpserted,
    MedicineDeleted,
    PrescriptionUpserted,
    PrescriptionDeleted,
    PrescriptionActiveToggled,
    ContactUpserted,
    ContactDeleted,
    UserSignedIn,
    UserSignedOut,
]


_T = TypeVar("_T", Medicine, Prescription, Contact)


def _upsert(items: tuple[_T, ...], item: _T) -> tuple[_T, ...]:
    """IDが無ければ先頭へ追加、あれば同じ位置で置き換える。"""
    for i, existing in enumerate(items):
        if existing.id == item.id:
            return items[:i] + (item,) + items[i + 1 :]
    return (item,) + items


def _remove(items: tuple[_T, ...], item_id: str) -> tuple[_T, ...]:
    return tuple(x for x in items if x.id != item_id)


def _cascade_medicine_deleted(prescriptions: tuple[Prescription, ...], medicine_id: str) -> tuple[Prescription, ...]:
    out: list[Prescription] = []
    for p in prescriptions:
        if medicine_id not in p.medicine_ids():
            out.append(p)
            continue
        remaining = tuple(m for m in p.medicines if m.medicine_id != medicine_id)
        # --- 薬が無くなった処方は残すが、発火しないよう無効化する ---
        out.append(
            dataclasses.replace(
                p,
                medicines=remaining,
                is_active=(p.is_active and bool(remaining)),
            )
        )
    return tuple(out)


def _cascade_contact_deleted(prescriptions: tuple[Prescription, ...], contact_id: str) -> tuple[Prescription, ...]:
    return tuple(
        dataclasses.replace(p, contact_id=None) if p.contact_id == contact_id else p
        for p in prescriptions
    )


def apply(state: AppState, event: StateEvent) -> AppState:
    """イベントを適用した新しい状態を返す（入力の state は変更しない）。"""

    if isinstance(event, MedicineUpserted):
        return dataclasses.replace(state, medicines=_upsert(state.medicines, event.medicine))

    if isinstance(event, MedicineDeleted):
        if state.find_medicine(event.medicine_id) is None:
            return state
        return dataclasses.replace(
            state,
            medicines=_remove(state.medicines, event.medicine_id),
            prescriptions=_cascade_medicine_deleted(state.prescriptions, event.medicine_id),
        )

    if isinstance(event, PrescriptionUpserted):
        return dataclasses.replace(state, prescriptions=_upsert(state.prescriptions, event.prescription))

    if isinstance(event, PrescriptionDeleted):
        if state.find_prescription(event.prescription_id) is None:
            return state
        return dataclasses.replace(state, prescriptions=_remove(state.prescriptions, event.prescription_id))

    if isinstance(event, PrescriptionActiveToggled):
        target = state.find_prescription(event.prescription_id)
        if target is None:
            return state
        toggled = dataclasses.replace(target, is_active=not target.is_active)
        return dataclasses.replace(state, prescriptions=_upsert(state.prescriptions, toggled))

    if isinstance(event, ContactUpserted):
        return dataclasses.replace(state, contacts=_upsert(state.contacts, event.contact))

    if isinstance(event, ContactDeleted):
        if state.find_contact(event.contact_id) is None:
            return state
        return dataclasses.replace(
            state,
            contacts=_remove(state.contacts, event.contact_id),
            prescriptions=_cascade_contact_deleted(state.prescriptions, event.contact_id),
        )

    if isinstance(event, UserSignedIn):
        return dataclasses.replace(state, current_user=event.user)

    if isinstance(event, UserSignedOut):
        return dataclasses.replace(state, current_user=None)

    raise TypeError(f"unknown state event: {type(event).__name__}")
