from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from push_contact.core.crypto import decrypt_email, encrypt_email, hash_email
from push_contact.models.domain import PushContact
from push_contact.schemas.contacts import ContactCreate, ContactFilters, ContactRead
from push_contact.services.dispatch_service import DispatchOutcome

logger = logging.getLogger(__name__)


def add_contact(db: Session, payload: ContactCreate) -> bool:
    """
    디바이스 토큰을 등록한다. 이미 존재하는 토큰이면 도메인/이메일을 다시 연결한다.
    DB 오류 시 False 를 반환한다.
    """
    try:
        contact = db.scalar(
            select(PushContact).where(PushContact.device_token == payload.device_token)
        )
        if contact is None:
            contact = PushContact(device_token=payload.device_token)
            db.add(contact)

        contact.domain = payload.domain
        if payload.email is not None:
            contact.enc_email = encrypt_email(payload.email)
            contact.email_hash = hash_email(payload.email)
        contact.modified_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("푸시 연락처 등록 실패 (domain=%s)", payload.domain)
        return False
    return True


def list_contacts(db: Session, filters: ContactFilters) -> List[ContactRead]:
    stmt = select(PushContact).where(PushContact.domain == filters.domain)
    if filters.email:
        stmt = stmt.where(PushContact.email_hash == hash_email(filters.email))
    if filters.modified_from:
        stmt = stmt.where(PushContact.modified_at >= filters.modified_from)
    if filters.modified_to:
        stmt = stmt.where(PushContact.modified_at <= filters.modified_to)

    contacts = db.scalars(stmt.order_by(PushContact.modified_at.asc(), PushContact.id.asc())).all()
    return [
        ContactRead(
            device_token=contact.device_token,
            domain=contact.domain,
            email=decrypt_email(contact.enc_email),
            modified_at=contact.modified_at,
        )
        for contact in contacts
    ]


def update_contact_email(db: Session, device_token: str, email: str) -> None:
    contact = db.scalar(select(PushContact).where(PushContact.device_token == device_token))
    if not contact:
        raise ValueError("등록되지 않은 디바이스 토큰입니다.")

    contact.enc_email = encrypt_email(email)
    contact.email_hash = hash_email(email)
    contact.modified_at = datetime.now(timezone.utc)
    db.commit()


def delete_contacts_by_device_tokens(db: Session, device_tokens: Iterable[str]) -> int:
    tokens = list(dict.fromkeys(token for token in device_tokens if token))
    if not tokens:
        return 0

    result = db.execute(delete(PushContact).where(PushContact.device_token.in_(tokens)))
    db.commit()
    return result.rowcount or 0


def get_device_tokens_by_domain(db: Session, domain: str) -> List[str]:
    if not domain:
        raise ValueError("도메인은 필수입니다.")

    return list(
        db.scalars(
            select(PushContact.device_token)
            .where(PushContact.domain == domain)
            .order_by(PushContact.id.asc())
        ).all()
    )


def remove_invalid_targets(db: Session, outcomes: Sequence[DispatchOutcome]) -> int:
    invalid_tokens = [outcome.device_token for outcome in outcomes if not outcome.is_valid_target]
    if not invalid_tokens:
        return 0
    return delete_contacts_by_device_tokens(db, invalid_tokens)
