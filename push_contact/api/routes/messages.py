from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from push_contact.api import deps
from push_contact.db.session import get_db
from push_contact.schemas.messages import MessageAccepted, MessageCreate, MessageStatsRead
from push_contact.services.broadcast_service import (
    BroadcastError,
    DeferredDispatchSupervisor,
    build_orchestrator,
)
from push_contact.services.dispatch_service import Dispatcher
from push_contact.services.stats_service import get_message_stats

router = APIRouter(prefix="/push-contacts", tags=["messages"])


@router.post("/{domain}/message", response_model=MessageAccepted)
def broadcast_message_endpoint(
    domain: str,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(deps.get_dispatcher),
    _: deps.TokenPayload = Depends(deps.require_superuser),
):
    """
    도메인의 전체 수신자에게 메시지를 발송하고 결과 집계까지 마친 뒤 message_id 를 반환한다.
    """
    orchestrator = build_orchestrator(db, dispatcher=dispatcher)
    try:
        message_id = orchestrator.broadcast(
            domain,
            payload.title,
            payload.body,
            payload.on_click_link,
        )
    except BroadcastError as exc:
        raise HTTPException(status_code=500, detail="메시지 발송에 실패했습니다.") from exc
    return MessageAccepted(message_id=message_id)


@router.post(
    "/{domain}/message/deferred",
    response_model=MessageAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
def broadcast_message_deferred_endpoint(
    domain: str,
    payload: MessageCreate,
    supervisor: DeferredDispatchSupervisor = Depends(deps.get_supervisor),
    _: deps.TokenPayload = Depends(deps.require_superuser),
):
    """
    message_id 를 즉시 반환하고 발송은 백그라운드 스케줄러에서 진행한다.
    통계는 발송이 끝난 뒤에만 조회된다.
    """
    message_id = supervisor.submit(domain, payload.title, payload.body, payload.on_click_link)
    return MessageAccepted(message_id=message_id)


@router.get("/{domain}/messages/{message_id}/stats", response_model=MessageStatsRead)
def get_message_stats_endpoint(
    domain: str,
    message_id: str,
    db: Session = Depends(get_db),
    _: deps.TokenPayload = Depends(deps.require_superuser),
):
    stats = get_message_stats(db, domain, message_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="메시지 통계를 찾을 수 없습니다.")
    return stats
