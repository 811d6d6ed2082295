"""
/medicines/autofill エンドポイント

薬品名や説明から薬品情報を推定し、入力中のフォームへマージして返す。
1日の利用回数に上限があり、超過時は 429、上流の失敗は 502 を返す。
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pill_pal import schemas
from pill_pal.app_bootstrap.dependencies import get_autofill_service
from pill_pal.autofill.service import MedicineAutofillService


router = APIRouter(prefix="/medicines/autofill", tags=["autofill"])


@router.post("", response_model=schemas.AutofillResponse)
def autofill(
    request: schemas.AutofillRequest,
    service: MedicineAutofillService = Depends(get_autofill_service),
) -> schemas.AutofillResponse:
    merged = service.autofill(request.text, request.form.to_record())
    return schemas.AutofillResponse(form=schemas.MedicineBody.from_record(merged), remaining=service.remaining())


@router.get("/remaining", response_model=schemas.AutofillRemainingResponse)
def remaining(service: MedicineAutofillService = Depends(get_autofill_service)) -> schemas.AutofillRemainingResponse:
    """今日の残り利用回数。"""

    return schemas.AutofillRemainingResponse(remaining=service.remaining(), limit=service.counter.limit)
