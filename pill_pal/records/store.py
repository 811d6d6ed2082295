"""
記録ストア（Record Store）

薬品・処方・連絡先の正本を保持し、書き込み時の検証と削除時の参照整理を行う。

方針:
    - 状態遷移は reducer（records.state.apply）に任せ、ここでは検証と永続化を担う。
    - 検証に失敗した操作は状態を変えず、保存もしない。
    - 変更が成功するたびに、全コレクションを永続化アダプタへ flush する。
    - HTTP スレッドとリマインダースレッドが交互に触るため、変更はロックで直列化する。
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Optional, Protocol

from pill_pal.errors import DuplicateNameError, ValidationError
from pill_pal.records import state as st
from pill_pal.records.models import MAX_REMINDER_TIMES, Contact, Medicine, Prescription, User
from pill_pal.records.presence import ParityPresenceChecker, PresenceChecker
from pill_pal.time_utils import is_time_of_day, parse_date


logger = logging.getLogger(__name__)


class Persistence(Protocol):
    """状態の保存先。flush は呼び出し側から見て原子的であること。"""

    def flush(self, state: st.AppState) -> None:
        ...


def _require_text(value: str, field_name: str) -> str:
    s = str(value or "").strip()
    if not s:
        raise ValidationError(f"{field_name} is required")
    return s


def _normalize_reminder_times(times: tuple[str, ...]) -> tuple[str, ...]:
    """リマインダー時刻を検証し、重複を除いた順序保持のタプルにする。"""
    out: list[str] = []
    for t in times:
        s = str(t or "").strip()
        if not is_time_of_day(s):
            raise ValidationError(f"invalid reminder time (expected HH:MM): {t!r}")
        if s not in out:
            out.append(s)
    if not out:
        raise ValidationError("at least one reminder time is required")
    if len(out) > MAX_REMINDER_TIMES:
        raise ValidationError(f"reminder times must contain at most {MAX_REMINDER_TIMES} items")
    return tuple(out)


class RecordStore:
    """記録の正本。検証 -> reducer 適用 -> flush の順で変更する。"""

    def __init__(
        self,
        *,
        persistence: Persistence,
        initial_state: Optional[st.AppState] = None,
        presence_checker: Optional[PresenceChecker] = None,
    ) -> None:
        self._persistence = persistence
        self._state = initial_state or st.AppState()
        self._presence = presence_checker or ParityPresenceChecker()
        self._lock = threading.RLock()

    @property
    def state(self) -> st.AppState:
        """現在の状態（不変スナップショット）を返す。"""
        with self._lock:
            return self._state

    @property
    def current_user(self) -> Optional[User]:
        return self.state.current_user

    def get_medicine(self, medicine_id: str) -> Optional[Medicine]:
        return self.state.find_medicine(medicine_id)

    def get_prescription(self, prescription_id: str) -> Optional[Prescription]:
        return self.state.find_prescription(prescription_id)

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        return self.state.find_contact(contact_id)

    def _dispatch(self, event: st.StateEvent) -> st.AppState:
        """イベントを適用し、変化があれば flush する。呼び出し側でロックを保持すること。"""
        new_state = st.apply(self._state, event)
        if new_state is self._state:
            return new_state
        # --- 先に保存し、成功したら状態を差し替える ---
        self._persistence.flush(new_state)
        self._state = new_state
        return new_state

    # --- 薬品 ---

    def upsert_medicine(self, medicine: Medicine) -> Medicine:
        """薬品を追加（先頭）または同じ位置で置き換える。"""

        medicine_id = _require_text(medicine.id, "medicine id")
        name = _require_text(medicine.name, "medicine name")
        normalized = dataclasses.replace(medicine, id=medicine_id, name=name)
        with self._lock:
            is_new = self._state.find_medicine(medicine_id) is None
            self._dispatch(st.MedicineUpserted(normalized))
        logger.info("medicine %s id=%s", "created" if is_new else "updated", medicine_id)
        return normalized

    def delete_medicine(self, medicine_id: str) -> bool:
        """薬品を削除し、全処方から参照を外す。存在しなければ何もしない。"""

        with self._lock:
            if self._state.find_medicine(medicine_id) is None:
                return False
            before = {p.id: p for p in self._state.prescriptions}
            after = self._dispatch(st.MedicineDeleted(medicine_id))
        deactivated = [
            p.id for p in after.prescriptions if before[p.id].is_active and not p.is_active
        ]
        if deactivated:
            logger.warning(
                "prescriptions deactivated (no medicines left) medicine_id=%s prescriptions=%s",
                medicine_id,
                deactivated,
            )
        logger.info("medicine deleted id=%s", medicine_id)
        return True

    # --- 処方 ---

    def _validate_prescription(self, p: Prescription) -> Prescription:
        """処方の不変条件を検証し、正規化した値を返す。呼び出し側でロックを保持すること。"""

        prescription_id = _require_text(p.id, "prescription id")
        name = _require_text(p.name, "prescription name")

        # --- 名前の一意性（大文字小文字を区別する完全一致、別IDのみ衝突） ---
        for other in self._state.prescriptions:
            if other.name == name and other.id != prescription_id:
                raise DuplicateNameError(name)

        # --- 薬品（1件以上、作成時点で存在すること） ---
        if not p.medicines:
            raise ValidationError("at least one medicine is required")
        for pm in p.medicines:
            if self._state.find_medicine(pm.medicine_id) is None:
                raise ValidationError(f"unknown medicine id: {pm.medicine_id}")

        reminder_times = _normalize_reminder_times(tuple(p.reminder_times))

        # --- 日付範囲 ---
        start = parse_date(p.start_date)
        end = parse_date(p.end_date)
        if start is None or end is None:
            raise ValidationError("startDate and endDate must be YYYY-MM-DD")
        if start > end:
            raise ValidationError("startDate must be on or before endDate")

        # --- 連絡先（任意、指定時は存在すること） ---
        contact_id = str(p.contact_id or "").strip() or None
        if contact_id is not None and self._state.find_contact(contact_id) is None:
            raise ValidationError(f"unknown contact id: {contact_id}")

        return dataclasses.replace(
            p,
            id=prescription_id,
            name=name,
            reminder_times=reminder_times,
            contact_id=contact_id,
        )

    def upsert_prescription(self, prescription: Prescription) -> Prescription:
        """処方を検証して追加（先頭）または置き換える。"""

        with self._lock:
            normalized = self._validate_prescription(prescription)
            is_new = self._state.find_prescription(normalized.id) is None
            self._dispatch(st.PrescriptionUpserted(normalized))
        logger.info("prescription %s id=%s", "created" if is_new else "updated", normalized.id)
        return normalized

    def delete_prescription(self, prescription_id: str) -> bool:
        """処方を削除する。存在しなければ何もしない。"""

        with self._lock:
            if self._state.find_prescription(prescription_id) is None:
                return False
            self._dispatch(st.PrescriptionDeleted(prescription_id))
        logger.info("prescription deleted id=%s", prescription_id)
        return True

    def toggle_active(self, prescription_id: str) -> Optional[Prescription]:
        """処方の有効/無効を反転する。存在しなければ None。"""

        with self._lock:
            if self._state.find_prescription(prescription_id) is None:
                return None
            after = self._dispatch(st.PrescriptionActiveToggled(prescription_id))
        toggled = after.find_prescription(prescription_id)
        logger.info("prescription toggled id=%s active=%s", prescription_id, toggled.is_active if toggled else None)
        return toggled

    # --- 連絡先 ---

    def upsert_contact(self, contact: Contact) -> Contact:
        """
        連絡先を追加（先頭）または置き換える。

        接続状態は新規作成時にだけ判定し、編集では元の状態を引き継ぐ。
        """

        contact_id = _require_text(contact.id, "contact id")
        name = _require_text(contact.name, "contact name")
        phone = _require_text(contact.phone, "contact phone")
        with self._lock:
            existing = self._state.find_contact(contact_id)
            status = existing.status if existing is not None else self._presence.check_status(phone)
            normalized = Contact(id=contact_id, name=name, phone=phone, status=status)
            self._dispatch(st.ContactUpserted(normalized))
        logger.info("contact %s id=%s status=%s", "created" if existing is None else "updated", contact_id, status)
        return normalized

    def delete_contact(self, contact_id: str) -> bool:
        """連絡先を削除し、参照している処方の contactId を未設定に戻す。"""

        with self._lock:
            if self._state.find_contact(contact_id) is None:
                return False
            self._dispatch(st.ContactDeleted(contact_id))
        logger.info("contact deleted id=%s", contact_id)
        return True

    # --- ユーザー ---

    def sign_in(self, user: User) -> User:
        with self._lock:
            self._dispatch(st.UserSignedIn(user))
        logger.info("user signed in id=%s", user.id)
        return user

    def sign_out(self) -> None:
        with self._lock:
            if self._state.current_user is None:
                return
            self._dispatch(st.UserSignedOut())
        logger.info("user signed out")
