from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from push_contact.core.config import settings


@dataclass
class TokenPayload:
    claims: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None

    @property
    def is_superuser(self) -> bool:
        return bool(self.claims.get(settings.superuser_claim))


class TokenDecodeError(RuntimeError):
    pass


def create_access_token(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """테스트와 운영 도구에서 사용하는 토큰 발급 헬퍼."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = dict(claims)
    payload.setdefault("iat", int(now.timestamp()))
    if expires_delta is not None:
        payload["exp"] = int((now + expires_delta).timestamp())
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:  # noqa: PERF203 - explicit conversion needed
        raise TokenDecodeError("토큰 검증에 실패했습니다.") from exc

    exp = payload.get("exp")
    if exp is None:
        raise TokenDecodeError("토큰 만료 시각(exp)이 없습니다.")

    expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc)
    return TokenPayload(claims=payload, expires_at=expires_at)
