from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy.orm import Session

from push_contact.models.domain import PushHistoryEvent
from push_contact.services.dispatch_service import DispatchOutcome


def record_history(
    db: Session,
    message_id: str,
    outcomes: Sequence[DispatchOutcome],
    event_date: datetime,
) -> None:
    """
    발송 결과마다 이력 1건을 한 번의 배치로 기록한다.
    중간 실패 시 롤백만 하고 재시도하지 않는다 (이미 나간 발송은 되돌릴 수 없음).
    """
    if not outcomes:
        return

    db.add_all(
        [
            PushHistoryEvent(
                message_id=message_id,
                device_token=outcome.device_token,
                sent_success=outcome.is_success,
                event_date=event_date,
                details=outcome.error_detail,
            )
            for outcome in outcomes
        ]
    )
    db.commit()
