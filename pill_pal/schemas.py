"""
API リクエスト/レスポンスの Pydantic モデル

FastAPI エンドポイントで使用するリクエスト/レスポンスのスキーマ定義。
JSON のキーは保存形式と同じ camelCase（Python 側は snake_case）。
記録の不変条件（名前の一意性や参照の存在）は RecordStore 側で検証する。
"""

from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pill_pal.records.models import Contact, Medicine, Prescription, PrescriptionMedicine, User


class _CamelModel(BaseModel):
    """camelCase のキーで入出力するモデルの基底。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


def new_record_id() -> str:
    """新規記録のID。"""
    return str(uuid4())


# --- 薬品 ---


class MedicineBody(_CamelModel):
    """薬品（作成/更新/応答で共通）。"""

    id: Optional[str] = None  # 作成時に省略するとサーバーで採番
    name: str = ""
    brand: str = ""
    ingredients: str = ""
    specs: str = ""
    indications: str = ""
    usage: str = ""
    expiry_date: str = ""
    image: Optional[str] = None  # data URI または URL

    def to_record(self, *, record_id: Optional[str] = None) -> Medicine:
        return Medicine(
            id=str(record_id or self.id or new_record_id()),
            name=self.name,
            brand=self.brand,
            ingredients=self.ingredients,
            specs=self.specs,
            indications=self.indications,
            usage=self.usage,
            expiry_date=self.expiry_date,
            image=self.image,
        )

    @classmethod
    def from_record(cls, m: Medicine) -> "MedicineBody":
        return cls(
            id=m.id,
            name=m.name,
            brand=m.brand,
            ingredients=m.ingredients,
            specs=m.specs,
            indications=m.indications,
            usage=m.usage,
            expiry_date=m.expiry_date,
            image=m.image,
        )


# --- 処方 ---


class PrescriptionMedicineBody(_CamelModel):
    medicine_id: str
    custom_usage: Optional[str] = None


class PrescriptionBody(_CamelModel):
    """処方（作成/更新/応答で共通）。"""

    id: Optional[str] = None
    name: str = ""
    medicines: List[PrescriptionMedicineBody] = Field(default_factory=list)
    contact_id: Optional[str] = None
    start_date: str = ""
    end_date: str = ""
    reminder_times: List[str] = Field(default_factory=list)
    is_active: bool = True

    def to_record(self, *, record_id: Optional[str] = None) -> Prescription:
        return Prescription(
            id=str(record_id or self.id or new_record_id()),
            name=self.name,
            medicines=tuple(
                PrescriptionMedicine(medicine_id=m.medicine_id, custom_usage=m.custom_usage) for m in self.medicines
            ),
            start_date=self.start_date,
            end_date=self.end_date,
            reminder_times=tuple(self.reminder_times),
            is_active=bool(self.is_active),
            contact_id=self.contact_id,
        )

    @classmethod
    def from_record(cls, p: Prescription) -> "PrescriptionBody":
        return cls(
            id=p.id,
            name=p.name,
            medicines=[
                PrescriptionMedicineBody(medicine_id=m.medicine_id, custom_usage=m.custom_usage) for m in p.medicines
            ],
            contact_id=p.contact_id,
            start_date=p.start_date,
            end_date=p.end_date,
            reminder_times=list(p.reminder_times),
            is_active=p.is_active,
        )


# --- 連絡先 ---


class ContactRequest(_CamelModel):
    """連絡先の作成/更新。status はサーバー側で決まる。"""

    id: Optional[str] = None
    name: str = ""
    phone: str = ""

    def to_record(self, *, record_id: Optional[str] = None) -> Contact:
        return Contact(id=str(record_id or self.id or new_record_id()), name=self.name, phone=self.phone)


class ContactResponse(_CamelModel):
    id: str
    name: str
    phone: str
    status: str  # connected / local

    @classmethod
    def from_record(cls, c: Contact) -> "ContactResponse":
        return cls(id=c.id, name=c.name, phone=c.phone, status=c.status)


# --- 認証 ---


class RequestCodeRequest(_CamelModel):
    phone: str = ""


class VerifyRequest(_CamelModel):
    phone: str = ""
    code: str = ""


class UserResponse(_CamelModel):
    id: str
    phone: str
    is_new: Optional[bool] = None

    @classmethod
    def from_record(cls, u: User) -> "UserResponse":
        return cls(id=u.id, phone=u.phone, is_new=u.is_new)


class VerifyResponse(BaseModel):
    """サインイン結果。クライアントはこの応答を受けて通知の表示許可を1回求める。"""

    user: UserResponse
    request_notification_permission: bool = True


# --- 自動入力 ---


class AutofillRequest(_CamelModel):
    text: str = ""  # 薬品名や説明（長すぎる分はサービス側で切り詰める）
    form: MedicineBody = Field(default_factory=MedicineBody)  # 入力中のフォーム


class AutofillResponse(BaseModel):
    form: MedicineBody
    remaining: int


class AutofillRemainingResponse(BaseModel):
    remaining: int
    limit: int
