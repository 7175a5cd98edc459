from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Set

from push_contact.core.config import settings
from push_contact.services import push_service
from push_contact.services.push_service import (
    CONNECT_ERROR_CODE,
    PushProviderError,
    PushProviderUnavailableError,
)

logger = logging.getLogger(__name__)

MAX_RETRY_DELAY = 2.0

SendFunc = Callable[..., Any]


@dataclass(frozen=True)
class DispatchOutcome:
    device_token: str
    is_valid_target: bool
    is_success: bool
    error_detail: Optional[str] = None


class DispatchCancelledError(RuntimeError):
    """시작되지 않은 발송이 취소 신호로 중단됨."""


class Dispatcher:
    """
    디바이스 토큰 목록에 메시지를 병렬 발송하고 토큰마다 하나의 결과를 만든다.

    - 워커 수는 PUSH_MAX_WORKERS 로 제한한다.
    - 유효하지 않은 토큰은 재시도하지 않는다.
    - 일시적 오류만 지수 백오프로 재시도한 뒤 실패 결과로 남긴다.
    - 푸시 API 자체를 사용할 수 없으면(인증 거부, 설정 누락, 모든 토큰 연결 실패)
      PushProviderUnavailableError 로 전체 발송을 중단한다.
    """

    def __init__(
        self,
        send: SendFunc | None = None,
        *,
        max_workers: int | None = None,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._send = send or push_service.send_notification
        self.max_workers = max_workers or settings.push_max_workers
        self.max_attempts = max_attempts or settings.push_max_retry_attempts
        self.base_delay = settings.push_retry_base_delay if base_delay is None else base_delay
        self._sleep = sleep

    def dispatch(
        self,
        title: str,
        body: str,
        on_click_link: str | None,
        targets: Sequence[str],
        *,
        cancel_event: threading.Event | None = None,
    ) -> List[DispatchOutcome]:
        targets = list(targets)
        if not targets:
            return []

        outcomes: List[DispatchOutcome] = []
        unreachable: Set[str] = set()
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(targets)),
            thread_name_prefix="push-dispatch",
        )
        try:
            futures = [
                executor.submit(
                    self._send_one, token, title, body, on_click_link, cancel_event, unreachable
                )
                for token in targets
            ]
            for future in as_completed(futures):
                outcomes.append(future.result())
        except BaseException:
            # 이미 API 로 나간 요청은 회수할 수 없다. 대기 중인 발송만 취소한다.
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        # 한 건도 연결되지 않았으면 토큰 문제가 아니라 푸시 API 장애다
        if len(unreachable) == len(outcomes):
            raise PushProviderUnavailableError(
                f"푸시 API 에 연결할 수 없습니다 (targets={len(outcomes)})",
                code=CONNECT_ERROR_CODE,
            )
        if unreachable:
            logger.warning("푸시 API 연결 실패 토큰 %s건, 나머지 발송은 계속 진행", len(unreachable))
        return outcomes

    def _send_one(
        self,
        device_token: str,
        title: str,
        body: str,
        on_click_link: str | None,
        cancel_event: threading.Event | None,
        unreachable: Set[str],
    ) -> DispatchOutcome:
        attempt = 1
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise DispatchCancelledError("발송이 취소되었습니다.")
            try:
                self._send(
                    device_token=device_token,
                    title=title,
                    body=body,
                    on_click_link=on_click_link,
                )
                return DispatchOutcome(device_token=device_token, is_valid_target=True, is_success=True)
            except PushProviderUnavailableError:
                raise
            except PushProviderError as exc:
                if exc.invalid_target:
                    return DispatchOutcome(
                        device_token=device_token,
                        is_valid_target=False,
                        is_success=False,
                        error_detail=str(exc),
                    )
                if not exc.retryable or attempt >= self.max_attempts:
                    if exc.code == CONNECT_ERROR_CODE:
                        unreachable.add(device_token)
                    return DispatchOutcome(
                        device_token=device_token,
                        is_valid_target=True,
                        is_success=False,
                        error_detail=str(exc),
                    )
                delay = min(self.base_delay * (2 ** (attempt - 1)), MAX_RETRY_DELAY)
                logger.debug(
                    "푸시 발송 재시도 (attempt=%s, delay=%.2f, code=%s)",
                    attempt,
                    delay,
                    exc.code,
                )
                self._sleep(delay)
                attempt += 1
            except Exception as exc:  # noqa: BLE001
                logger.exception("푸시 발송 중 예기치 못한 오류")
                return DispatchOutcome(
                    device_token=device_token,
                    is_valid_target=True,
                    is_success=False,
                    error_detail=str(exc),
                )
