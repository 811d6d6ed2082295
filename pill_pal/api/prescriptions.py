"""
/prescriptions エンドポイント

処方の一覧・作成・更新・削除と、有効/無効の切り替え。
名前の重複や存在しない薬品・連絡先の参照は RecordStore が拒否する（400/409）。
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from pill_pal import schemas
from pill_pal.app_bootstrap.dependencies import get_record_store
from pill_pal.records.store import RecordStore


router = APIRouter(prefix="/prescriptions", tags=["prescriptions"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="prescription not found")


@router.get("", response_model=List[schemas.PrescriptionBody])
def list_prescriptions(store: RecordStore = Depends(get_record_store)) -> List[schemas.PrescriptionBody]:
    return [schemas.PrescriptionBody.from_record(p) for p in store.state.prescriptions]


@router.post("", response_model=schemas.PrescriptionBody, status_code=status.HTTP_201_CREATED)
def create_prescription(
    request: schemas.PrescriptionBody,
    store: RecordStore = Depends(get_record_store),
) -> schemas.PrescriptionBody:
    saved = store.upsert_prescription(request.to_record())
    return schemas.PrescriptionBody.from_record(saved)


@router.put("/{prescription_id}", response_model=schemas.PrescriptionBody)
def update_prescription(
    prescription_id: str,
    request: schemas.PrescriptionBody,
    store: RecordStore = Depends(get_record_store),
) -> schemas.PrescriptionBody:
    if store.get_prescription(prescription_id) is None:
        raise _not_found()
    saved = store.upsert_prescription(request.to_record(record_id=prescription_id))
    return schemas.PrescriptionBody.from_record(saved)


@router.post("/{prescription_id}/toggle", response_model=schemas.PrescriptionBody)
def toggle_prescription(
    prescription_id: str,
    store: RecordStore = Depends(get_record_store),
) -> schemas.PrescriptionBody:
    """有効/無効を反転する。"""

    toggled = store.toggle_active(prescription_id)
    if toggled is None:
        raise _not_found()
    return schemas.PrescriptionBody.from_record(toggled)


@router.delete("/{prescription_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prescription(prescription_id: str, store: RecordStore = Depends(get_record_store)) -> Response:
    store.delete_prescription(prescription_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
