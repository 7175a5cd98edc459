from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from push_contact.api import deps
from push_contact.db.session import get_db
from push_contact.schemas.contacts import ContactCreate, ContactFilters, ContactRead
from push_contact.services.contact_service import (
    add_contact,
    delete_contacts_by_device_tokens,
    list_contacts,
    update_contact_email,
)

router = APIRouter(prefix="/push-contacts", tags=["push-contacts"])


@router.post("", status_code=status.HTTP_200_OK)
def add_contact_endpoint(
    payload: ContactCreate,
    db: Session = Depends(get_db),
) -> None:
    """
    브라우저/앱에서 발급받은 디바이스 토큰을 도메인에 등록한다. (인증 불필요)
    """
    if not add_contact(db, payload):
        raise HTTPException(status_code=500, detail="푸시 연락처 등록에 실패했습니다.")


@router.get("", response_model=list[ContactRead])
def list_contacts_endpoint(
    filters: ContactFilters = Depends(),
    db: Session = Depends(get_db),
    _: deps.TokenPayload = Depends(deps.require_superuser),
):
    contacts = list_contacts(db, filters)
    if not contacts:
        raise HTTPException(status_code=404, detail="조건에 맞는 푸시 연락처가 없습니다.")
    return contacts


@router.delete("/_bulk", response_model=int)
def bulk_delete_contacts_endpoint(
    device_tokens: list[str] = Body(...),
    db: Session = Depends(get_db),
    _: deps.TokenPayload = Depends(deps.require_superuser),
):
    return delete_contacts_by_device_tokens(db, device_tokens)


@router.put("/{device_token}/email", status_code=status.HTTP_200_OK)
def update_contact_email_endpoint(
    device_token: str,
    email: str = Body(..., min_length=1, max_length=255),
    db: Session = Depends(get_db),
) -> None:
    try:
        update_contact_email(db, device_token, email)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
