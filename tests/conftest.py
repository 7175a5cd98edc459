from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PUSH_MOCK_MODE", "true")

import threading  # noqa: E402
import time  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from push_contact.core.security import create_access_token  # noqa: E402
from push_contact.models import Base  # noqa: E402
from push_contact.models.domain import PushContact  # noqa: E402
from push_contact.services.push_service import (  # noqa: E402
    CONNECT_ERROR_CODE,
    PushProviderError,
    PushProviderUnavailableError,
    PushSendResult,
)


class FakePushSender:
    """
    토큰별 동작을 지정할 수 있는 가짜 발송 함수.

    behaviors 값: "ok", "invalid", "transient", "flaky:<n>", "reject", "fatal", "connect", "boom"
    """

    def __init__(self, behaviors: dict[str, str] | None = None, delay: float = 0.0) -> None:
        self.behaviors = behaviors or {}
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0
        self._failures: dict[str, int] = {}
        self._lock = threading.Lock()

    def __call__(self, *, device_token: str, title: str, body: str, on_click_link: str | None = None):
        with self._lock:
            self.calls.append(device_token)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            return self._respond(device_token)
        finally:
            with self._lock:
                self.active -= 1

    def attempts(self, device_token: str) -> int:
        return self.calls.count(device_token)

    def _respond(self, device_token: str) -> PushSendResult:
        behavior = self.behaviors.get(device_token, "ok")
        if behavior == "invalid":
            raise PushProviderError("유효하지 않은 디바이스 토큰", code="INVALID_TOKEN", invalid_target=True)
        if behavior == "transient":
            raise PushProviderError("푸시 API HTTP 오류: 503", code="503", retryable=True)
        if behavior.startswith("flaky:"):
            with self._lock:
                failed = self._failures.get(device_token, 0)
                self._failures[device_token] = failed + 1
            if failed < int(behavior.split(":", 1)[1]):
                raise PushProviderError("푸시 API HTTP 오류: 502", code="502", retryable=True)
        if behavior == "reject":
            raise PushProviderError("푸시 API HTTP 오류: 400", code="400")
        if behavior == "fatal":
            raise PushProviderUnavailableError("푸시 API 인증 거부: 401", code="401")
        if behavior == "connect":
            raise PushProviderError("푸시 API 연결 실패", code=CONNECT_ERROR_CODE, retryable=True)
        if behavior == "boom":
            raise KeyError("unexpected")
        return PushSendResult(device_token=device_token, provider_message_id="fake", raw_payload={})


@pytest.fixture
def fake_sender():
    return FakePushSender


@pytest.fixture
def session_factory(tmp_path):
    # 백그라운드 스레드와 테스트 스레드가 각자 커넥션을 쓰도록 파일 DB 사용
    engine = create_engine(
        f"sqlite:///{tmp_path / 'push_contact.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed_contacts(db):
    def _seed(domain: str, tokens: list[str]) -> None:
        for token in tokens:
            db.add(PushContact(device_token=token, domain=domain, modified_at=datetime.now(timezone.utc)))
        db.commit()

    return _seed


@pytest.fixture
def client(session_factory):
    from push_contact.db.session import get_db
    from push_contact.main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def superuser_headers():
    token = create_access_token({"isSU": True}, expires_delta=timedelta(hours=1))
    return {"Authorization": f"Bearer {token}"}
