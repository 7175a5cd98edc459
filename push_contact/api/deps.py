from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from push_contact.core.scheduler import get_scheduler
from push_contact.core.security import TokenDecodeError, TokenPayload, decode_access_token
from push_contact.services.broadcast_service import DeferredDispatchSupervisor, make_scope_factory
from push_contact.services.dispatch_service import Dispatcher

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenPayload:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="인증이 필요합니다.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or not credentials.credentials:
        raise unauthorized
    try:
        payload = decode_access_token(credentials.credentials)
    except TokenDecodeError as exc:
        raise unauthorized from exc

    if payload.expires_at is None or payload.expires_at <= datetime.now(timezone.utc):
        raise unauthorized
    return payload


def require_superuser(payload: TokenPayload = Depends(get_token_payload)) -> TokenPayload:
    if not payload.is_superuser:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="권한이 없습니다.")
    return payload


def get_dispatcher() -> Dispatcher:
    return Dispatcher()


@lru_cache(maxsize=1)
def get_supervisor() -> DeferredDispatchSupervisor:
    # 요청 세션이 아닌 세션 팩토리와 프로세스 단위 스케줄러에 묶인다
    return DeferredDispatchSupervisor(get_scheduler(), make_scope_factory())
