from __future__ import annotations

import logging
from typing import Any, Callable, ContextManager

from push_contact.schemas.messages import BroadcastMessage

logger = logging.getLogger(__name__)
alert_logger = logging.getLogger("push_contact.alerts")


def run_broadcast_job(
    message: BroadcastMessage,
    scope_factory: Callable[[], ContextManager[Any]],
) -> None:
    # 호출자가 없으므로 실패는 alerts 로거로만 보고한다
    try:
        with scope_factory() as orchestrator:
            stats = orchestrator.run(message)
    except Exception:  # noqa: BLE001
        alert_logger.exception(
            "백그라운드 브로드캐스트 실패 (message_id=%s, domain=%s)",
            message.message_id,
            message.domain,
            extra={"message_id": message.message_id, "domain": message.domain},
        )
        return

    if stats is None:
        alert_logger.error(
            "백그라운드 브로드캐스트 통계 저장 실패 (message_id=%s, domain=%s)",
            message.message_id,
            message.domain,
            extra={"message_id": message.message_id, "domain": message.domain},
        )
        return

    logger.info(
        "백그라운드 브로드캐스트 완료 (message_id=%s, sent=%s, delivered=%s, not_delivered=%s)",
        message.message_id,
        stats.sent,
        stats.delivered,
        stats.not_delivered,
    )
