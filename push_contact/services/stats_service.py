from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from push_contact.models.domain import PushMessage, PushMessageStats
from push_contact.schemas.messages import BroadcastMessage, MessageStatsRead
from push_contact.services.dispatch_service import DispatchOutcome


def register_message(db: Session, message: BroadcastMessage) -> PushMessage:
    record = PushMessage(
        message_id=message.message_id,
        domain=message.domain,
        title=message.title,
        body=message.body,
        on_click_link=message.on_click_link,
        created_at=message.created_at,
    )
    db.add(record)
    db.commit()
    return record


def aggregate_stats(
    db: Session,
    message_id: str,
    domain: str,
    outcomes: Sequence[DispatchOutcome],
) -> MessageStatsRead:
    sent = len(outcomes)
    delivered = sum(1 for outcome in outcomes if outcome.is_success)
    not_delivered = sent - delivered

    stats = db.scalar(select(PushMessageStats).where(PushMessageStats.message_id == message_id))
    if stats is None:
        stats = PushMessageStats(message_id=message_id, domain=domain)
        db.add(stats)
    stats.sent = sent
    stats.delivered = delivered
    stats.not_delivered = not_delivered
    db.commit()

    return MessageStatsRead(
        domain=domain,
        message_id=message_id,
        sent=sent,
        delivered=delivered,
        not_delivered=not_delivered,
    )


def get_message_stats(db: Session, domain: str, message_id: str) -> Optional[MessageStatsRead]:
    stats = db.scalar(
        select(PushMessageStats).where(
            PushMessageStats.domain == domain,
            PushMessageStats.message_id == message_id,
        )
    )
    if not stats:
        return None
    return MessageStatsRead.model_validate(stats)
