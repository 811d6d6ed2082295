"""
記録（薬品・処方・連絡先・ユーザー）の値オブジェクト

いずれも不変（frozen）で、編集は `dataclasses.replace` で新しい値を作る。
保存形式は camelCase のキーで、未設定の任意項目はキーごと省略する。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

CONTACT_STATUS_CONNECTED = "connected"
CONTACT_STATUS_LOCAL = "local"
CONTACT_STATUSES = (CONTACT_STATUS_CONNECTED, CONTACT_STATUS_LOCAL)

# 処方1件あたりのリマインダー時刻の上限
MAX_REMINDER_TIMES = 5


def _str_or_empty(value: Any) -> str:
    return "" if value is None else str(value)


def _str_or_none(value: Any) -> Optional[str]:
    # 空文字は空文字のまま残す（保存形式を往復で変えない）
    return None if value is None else str(value)


@dataclass(frozen=True)
class Medicine:
    """薬品。`id` と `name` 以外は表示用の自由記述。"""

    id: str
    name: str
    brand: str = ""
    ingredients: str = ""
    specs: str = ""
    indications: str = ""
    usage: str = ""
    expiry_date: str = ""
    image: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "ingredients": self.ingredients,
            "specs": self.specs,
            "indications": self.indications,
            "usage": self.usage,
            "expiryDate": self.expiry_date,
        }
        if self.image is not None:
            out["image"] = self.image
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Medicine":
        return cls(
            id=_str_or_empty(data.get("id")),
            name=_str_or_empty(data.get("name")),
            brand=_str_or_empty(data.get("brand")),
            ingredients=_str_or_empty(data.get("ingredients")),
            specs=_str_or_empty(data.get("specs")),
            indications=_str_or_empty(data.get("indications")),
            usage=_str_or_empty(data.get("usage")),
            expiry_date=_str_or_empty(data.get("expiryDate")),
            image=_str_or_none(data.get("image")),
        )


@dataclass(frozen=True)
class PrescriptionMedicine:
    """処方に含まれる薬品への参照（処方ごとの用法を上書きできる）。"""

    medicine_id: str
    custom_usage: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"medicineId": self.medicine_id}
        if self.custom_usage is not None:
            out["customUsage"] = self.custom_usage
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PrescriptionMedicine":
        return cls(
            medicine_id=_str_or_empty(data.get("medicineId")),
            custom_usage=_str_or_none(data.get("customUsage")),
        )


@dataclass(frozen=True)
class Prescription:
    """処方（日付範囲つきの繰り返し服薬スケジュール）。"""

    id: str
    name: str
    medicines: tuple[PrescriptionMedicine, ...] = ()
    start_date: str = ""
    end_date: str = ""
    reminder_times: tuple[str, ...] = ()
    is_active: bool = True
    contact_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "medicines": [m.to_dict() for m in self.medicines],
        }
        if self.contact_id is not None:
            out["contactId"] = self.contact_id
        out["startDate"] = self.start_date
        out["endDate"] = self.end_date
        out["reminderTimes"] = list(self.reminder_times)
        out["isActive"] = bool(self.is_active)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Prescription":
        meds = data.get("medicines") or []
        times = data.get("reminderTimes") or []
        return cls(
            id=_str_or_empty(data.get("id")),
            name=_str_or_empty(data.get("name")),
            medicines=tuple(PrescriptionMedicine.from_dict(m) for m in meds if isinstance(m, dict)),
            start_date=_str_or_empty(data.get("startDate")),
            end_date=_str_or_empty(data.get("endDate")),
            reminder_times=tuple(str(t) for t in times),
            is_active=bool(data.get("isActive", True)),
            contact_id=_str_or_none(data.get("contactId")),
        )

    def medicine_ids(self) -> list[str]:
        return [m.medicine_id for m in self.medicines]


@dataclass(frozen=True)
class Contact:
    """リマインダーを共有する連絡先。`status` は作成時に一度だけ決まる。"""

    id: str
    name: str
    phone: str
    status: str = CONTACT_STATUS_LOCAL

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "phone": self.phone, "status": self.status}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Contact":
        status = _str_or_empty(data.get("status"))
        return cls(
            id=_str_or_empty(data.get("id")),
            name=_str_or_empty(data.get("name")),
            phone=_str_or_empty(data.get("phone")),
            status=(status if status in CONTACT_STATUSES else CONTACT_STATUS_LOCAL),
        )


@dataclass(frozen=True)
class User:
    """サインイン中のユーザー（ID は電話番号）。"""

    id: str
    phone: str
    is_new: Optional[bool] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "phone": self.phone}
        if self.is_new is not None:
            out["isNew"] = bool(self.is_new)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        is_new = data.get("isNew")
        return cls(
            id=_str_or_empty(data.get("id")),
            phone=_str_or_empty(data.get("phone")),
            is_new=(None if is_new is None else bool(is_new)),
        )
