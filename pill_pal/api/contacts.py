"""
/contacts エンドポイント

連絡先の一覧・作成・更新・削除。
接続状態（status）は作成時にだけ決まり、更新では変わらない。
削除すると、参照している処方の contactId が外れる。
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from pill_pal import schemas
from pill_pal.app_bootstrap.dependencies import get_record_store
from pill_pal.records.store import RecordStore


router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("", response_model=List[schemas.ContactResponse])
def list_contacts(store: RecordStore = Depends(get_record_store)) -> List[schemas.ContactResponse]:
    return [schemas.ContactResponse.from_record(c) for c in store.state.contacts]


@router.post("", response_model=schemas.ContactResponse, status_code=status.HTTP_201_CREATED)
def create_contact(
    request: schemas.ContactRequest,
    store: RecordStore = Depends(get_record_store),
) -> schemas.ContactResponse:
    saved = store.upsert_contact(request.to_record())
    return schemas.ContactResponse.from_record(saved)


@router.put("/{contact_id}", response_model=schemas.ContactResponse)
def update_contact(
    contact_id: str,
    request: schemas.ContactRequest,
    store: RecordStore = Depends(get_record_store),
) -> schemas.ContactResponse:
    if store.get_contact(contact_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="contact not found")
    saved = store.upsert_contact(request.to_record(record_id=contact_id))
    return schemas.ContactResponse.from_record(saved)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact(contact_id: str, store: RecordStore = Depends(get_record_store)) -> Response:
    store.delete_contact(contact_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
