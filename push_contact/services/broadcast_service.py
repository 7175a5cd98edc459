from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Iterator, List, Optional, Sequence
from uuid import uuid4

from apscheduler.schedulers.base import BaseScheduler
from sqlalchemy.orm import Session

from push_contact.db.session import SessionLocal
from push_contact.schemas.messages import BroadcastMessage, MessageStatsRead
from push_contact.services import contact_service, history_service, stats_service
from push_contact.services.dispatch_service import DispatchOutcome, Dispatcher
from push_contact.tasks.broadcast_dispatch import run_broadcast_job

logger = logging.getLogger(__name__)


class BroadcastError(RuntimeError):
    """수신자 조회 또는 발송 단계를 끝내지 못해 브로드캐스트가 실패함."""


def new_broadcast_message(
    domain: str,
    title: str,
    body: str,
    on_click_link: str | None = None,
) -> BroadcastMessage:
    return BroadcastMessage(
        message_id=uuid4().hex,
        domain=domain,
        title=title,
        body=body,
        on_click_link=on_click_link,
        created_at=datetime.now(timezone.utc),
    )


@contextmanager
def _rollback_on_error(db: Session) -> Iterator[None]:
    try:
        yield
    except Exception:
        db.rollback()
        raise


class RecipientResolver:
    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve(self, domain: str) -> List[str]:
        return contact_service.get_device_tokens_by_domain(self.db, domain)


class RegistrySanitizer:
    def __init__(self, db: Session) -> None:
        self.db = db

    def sanitize(self, outcomes: Sequence[DispatchOutcome]) -> int:
        with _rollback_on_error(self.db):
            return contact_service.remove_invalid_targets(self.db, outcomes)


class HistoryRecorder:
    def __init__(self, db: Session) -> None:
        self.db = db

    def record(self, message_id: str, outcomes: Sequence[DispatchOutcome], timestamp: datetime) -> None:
        with _rollback_on_error(self.db):
            history_service.record_history(self.db, message_id, outcomes, timestamp)


class StatsAggregator:
    def __init__(self, db: Session) -> None:
        self.db = db

    def register(self, message: BroadcastMessage) -> None:
        with _rollback_on_error(self.db):
            stats_service.register_message(self.db, message)

    def aggregate(
        self,
        message_id: str,
        domain: str,
        outcomes: Sequence[DispatchOutcome],
    ) -> MessageStatsRead:
        with _rollback_on_error(self.db):
            return stats_service.aggregate_stats(self.db, message_id, domain, outcomes)

    def lookup(self, domain: str, message_id: str) -> Optional[MessageStatsRead]:
        return stats_service.get_message_stats(self.db, domain, message_id)


class BroadcastOrchestrator:
    """
    조회 -> 발송 -> {토큰 정리, 이력 기록} -> 통계 집계 순서로 브로드캐스트를 실행한다.

    조회/발송 실패는 BroadcastError 로 호출자에게 전달한다.
    이후 단계(정리/이력/통계) 실패는 로그만 남기고 다음 단계를 계속 진행한다.
    """

    def __init__(
        self,
        *,
        resolver: RecipientResolver,
        dispatcher: Dispatcher,
        sanitizer: RegistrySanitizer,
        recorder: HistoryRecorder,
        aggregator: StatsAggregator,
    ) -> None:
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.sanitizer = sanitizer
        self.recorder = recorder
        self.aggregator = aggregator

    def broadcast(
        self,
        domain: str,
        title: str,
        body: str,
        on_click_link: str | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> str:
        message = new_broadcast_message(domain, title, body, on_click_link)
        self.run(message, cancel_event=cancel_event)
        return message.message_id

    def run(
        self,
        message: BroadcastMessage,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Optional[MessageStatsRead]:
        self._bookkeeping("register", message, self.aggregator.register, message)

        try:
            targets = self.resolver.resolve(message.domain)
            # 이후 단계가 같은 결과 집합을 보도록 한 번만 확정한다
            outcomes = tuple(
                self.dispatcher.dispatch(
                    message.title,
                    message.body,
                    message.on_click_link,
                    targets,
                    cancel_event=cancel_event,
                )
            )
        except Exception as exc:
            logger.exception(
                "브로드캐스트 발송 실패 (message_id=%s, domain=%s)",
                message.message_id,
                message.domain,
            )
            raise BroadcastError(f"메시지 발송에 실패했습니다: {exc}") from exc

        logger.info(
            "브로드캐스트 발송 완료 (message_id=%s, domain=%s, targets=%s)",
            message.message_id,
            message.domain,
            len(outcomes),
        )

        removed = self._bookkeeping("sanitize", message, self.sanitizer.sanitize, outcomes)
        if removed:
            logger.info(
                "유효하지 않은 디바이스 토큰 삭제 (message_id=%s, removed=%s)",
                message.message_id,
                removed,
            )
        self._bookkeeping(
            "record",
            message,
            self.recorder.record,
            message.message_id,
            outcomes,
            datetime.now(timezone.utc),
        )
        return self._bookkeeping(
            "aggregate",
            message,
            self.aggregator.aggregate,
            message.message_id,
            message.domain,
            outcomes,
        )

    def _bookkeeping(
        self,
        stage: str,
        message: BroadcastMessage,
        func: Callable[..., Any],
        *args: Any,
    ) -> Any:
        try:
            return func(*args)
        except Exception:  # noqa: BLE001
            logger.exception(
                "브로드캐스트 후처리 실패 (stage=%s, message_id=%s, domain=%s)",
                stage,
                message.message_id,
                message.domain,
            )
            return None


def build_orchestrator(db: Session, *, dispatcher: Dispatcher | None = None) -> BroadcastOrchestrator:
    return BroadcastOrchestrator(
        resolver=RecipientResolver(db),
        dispatcher=dispatcher or Dispatcher(),
        sanitizer=RegistrySanitizer(db),
        recorder=HistoryRecorder(db),
        aggregator=StatsAggregator(db),
    )


ScopeFactory = Callable[[], ContextManager[BroadcastOrchestrator]]


def make_scope_factory(
    session_factory: Callable[[], Session] = SessionLocal,
    dispatcher_factory: Callable[[], Dispatcher] = Dispatcher,
) -> ScopeFactory:
    """요청 세션과 무관하게 자체 세션/컴포넌트를 여는 스코프 팩토리를 만든다."""

    @contextmanager
    def _scope() -> Iterator[BroadcastOrchestrator]:
        session = session_factory()
        try:
            yield build_orchestrator(session, dispatcher=dispatcher_factory())
        finally:
            session.close()

    return _scope


class DeferredDispatchSupervisor:
    """
    message_id 를 즉시 반환하고 같은 파이프라인을 스케줄러 스레드에서 실행한다.
    백그라운드 작업은 scope_factory 로 자신의 세션을 열기 때문에 요청이 먼저 끝나도 영향이 없다.
    """

    def __init__(self, scheduler: BaseScheduler, scope_factory: ScopeFactory) -> None:
        self.scheduler = scheduler
        self.scope_factory = scope_factory

    def submit(
        self,
        domain: str,
        title: str,
        body: str,
        on_click_link: str | None = None,
    ) -> str:
        message = new_broadcast_message(domain, title, body, on_click_link)
        self.scheduler.add_job(
            run_broadcast_job,
            args=[message, self.scope_factory],
            id=f"broadcast:{message.message_id}",
            misfire_grace_time=None,
        )
        logger.info(
            "백그라운드 브로드캐스트 예약 (message_id=%s, domain=%s)",
            message.message_id,
            message.domain,
        )
        return message.message_id
