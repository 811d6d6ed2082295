"""テスト用の記録ファクトリ。"""

from __future__ import annotations

from pill_pal.config import Config, parse_config
from pill_pal.records.models import Contact, Medicine, Prescription, PrescriptionMedicine


def make_config(**overrides) -> Config:
    data = {
        "pillpal_port": 55610,
        "log_level": "DEBUG",
        "log_file_enabled": False,
        "llm_model": "test/model",
    }
    data.update(overrides)
    return parse_config(data)


def make_medicine(medicine_id: str = "m1", name: str = "アムロジピン", **kwargs) -> Medicine:
    return Medicine(id=medicine_id, name=name, **kwargs)


def make_prescription(
    prescription_id: str = "p1",
    name: str = "高血圧",
    *,
    medicine_ids: tuple[str, ...] = ("m1",),
    start_date: str = "2024-05-01",
    end_date: str = "2024-05-31",
    reminder_times: tuple[str, ...] = ("08:00",),
    is_active: bool = True,
    contact_id: str | None = None,
) -> Prescription:
    return Prescription(
        id=prescription_id,
        name=name,
        medicines=tuple(PrescriptionMedicine(medicine_id=mid) for mid in medicine_ids),
        start_date=start_date,
        end_date=end_date,
        reminder_times=reminder_times,
        is_active=is_active,
        contact_id=contact_id,
    )


def make_contact(contact_id: str = "c1", name: str = "母", phone: str = "13800000002") -> Contact:
    return Contact(id=contact_id, name=name, phone=phone)
