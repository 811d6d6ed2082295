"""
/medicines エンドポイント

薬品の一覧・作成・更新・削除。削除すると全処方から参照が外れる。
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from pill_pal import schemas
from pill_pal.app_bootstrap.dependencies import get_record_store
from pill_pal.records.store import RecordStore


router = APIRouter(prefix="/medicines", tags=["medicines"])


@router.get("", response_model=List[schemas.MedicineBody])
def list_medicines(store: RecordStore = Depends(get_record_store)) -> List[schemas.MedicineBody]:
    """薬品を新しい順に返す。"""

    return [schemas.MedicineBody.from_record(m) for m in store.state.medicines]


@router.post("", response_model=schemas.MedicineBody, status_code=status.HTTP_201_CREATED)
def create_medicine(
    request: schemas.MedicineBody,
    store: RecordStore = Depends(get_record_store),
) -> schemas.MedicineBody:
    saved = store.upsert_medicine(request.to_record())
    return schemas.MedicineBody.from_record(saved)


@router.put("/{medicine_id}", response_model=schemas.MedicineBody)
def update_medicine(
    medicine_id: str,
    request: schemas.MedicineBody,
    store: RecordStore = Depends(get_record_store),
) -> schemas.MedicineBody:
    """既存の薬品を置き換える（一覧上の位置は変わらない）。"""

    if store.get_medicine(medicine_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="medicine not found")
    saved = store.upsert_medicine(request.to_record(record_id=medicine_id))
    return schemas.MedicineBody.from_record(saved)


@router.delete("/{medicine_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_medicine(medicine_id: str, store: RecordStore = Depends(get_record_store)) -> Response:
    # --- 存在しなくても 204（冪等） ---
    store.delete_medicine(medicine_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
