from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import uuid4

import httpx

from push_contact.core.config import settings

logger = logging.getLogger(__name__)

PUSH_MESSAGE_ENDPOINT = "message"
CONNECT_ERROR_CODE = "CONNECT"
TIMEOUT_ERROR_CODE = "TIMEOUT"
INVALID_TOKEN_CODE = "INVALID_TOKEN"
SEND_FAILED_CODE = "SEND_FAILED"
RETRYABLE_STATUS_CODES = {429}
UNAVAILABLE_STATUS_CODES = {401, 403}


class PushProviderError(RuntimeError):
    """푸시 API 호출 오류."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        retryable: bool = False,
        invalid_target: bool = False,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.invalid_target = invalid_target
        self.payload = payload or {}


class PushProviderUnavailableError(PushProviderError):
    """대상 토큰과 무관하게 푸시 API 를 사용할 수 없는 상태 (설정 누락, 인증 거부, 연결 불가)."""


@dataclass
class PushSendResult:
    device_token: str
    provider_message_id: Optional[str]
    raw_payload: Dict[str, Any]


def send_notification(
    *,
    device_token: str,
    title: str,
    body: str,
    on_click_link: str | None = None,
) -> PushSendResult:
    payload = {
        "notificationTitle": title,
        "notificationBody": body,
        "notificationOnClickLink": on_click_link,
        "tokens": [device_token],
    }
    response_json = _post(PUSH_MESSAGE_ENDPOINT, payload)
    entry = _extract_target_response(response_json, device_token)
    _ensure_success(entry)
    return PushSendResult(
        device_token=device_token,
        provider_message_id=entry.get("messageId"),
        raw_payload=entry,
    )


# --------------------------------------------------------------------------- #
# Internal helpers

def _build_client() -> httpx.Client:
    return httpx.Client(timeout=settings.push_timeout, verify=True)


def _post(endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    if settings.push_mock_mode:
        logger.debug("PUSH_MOCK_MODE 활성화 상태, 목 응답 반환 (endpoint=%s)", endpoint)
        return _mock_response(payload)

    if not settings.push_api_url:
        raise PushProviderUnavailableError("PUSH_API_URL 환경 변수가 설정되지 않았습니다.")

    url = f"{settings.push_api_url.rstrip('/')}/{endpoint}"
    headers = {"Accept": "application/json"}
    if settings.push_api_token:
        headers["Authorization"] = f"Bearer {settings.push_api_token}"

    try:
        with _build_client() as client:
            response = client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as exc:
        raise PushProviderError(
            f"푸시 API 응답 시간 초과: {exc}",
            code=TIMEOUT_ERROR_CODE,
            retryable=True,
        ) from exc
    except httpx.ConnectError as exc:
        raise PushProviderError(
            f"푸시 API 연결 실패: {exc}",
            code=CONNECT_ERROR_CODE,
            retryable=True,
        ) from exc
    except httpx.HTTPError as exc:  # 기타 네트워크 오류
        raise PushProviderError(f"푸시 API 호출 실패: {exc}", retryable=True) from exc

    if response.status_code in UNAVAILABLE_STATUS_CODES:
        raise PushProviderUnavailableError(
            f"푸시 API 인증 거부: {response.status_code}",
            code=str(response.status_code),
        )
    if response.status_code >= 400:
        retryable = response.status_code >= 500 or response.status_code in RETRYABLE_STATUS_CODES
        raise PushProviderError(
            f"푸시 API HTTP 오류: {response.status_code}",
            code=str(response.status_code),
            retryable=retryable,
        )

    try:
        return response.json()
    except ValueError as exc:
        raise PushProviderError(f"푸시 API 응답 JSON 파싱 실패: {exc}", retryable=True) from exc


def _extract_target_response(response_json: Dict[str, Any], device_token: str) -> Dict[str, Any]:
    responses = response_json.get("responses") or []
    for entry in responses:
        if entry.get("deviceToken") == device_token:
            return entry
    # 다른 토큰의 결과를 이 토큰에 적용하면 정상 연락처가 삭제될 수 있다
    if responses:
        raise PushProviderError(
            "푸시 API 응답에 요청한 토큰의 결과가 없습니다.",
            retryable=True,
            payload=response_json,
        )
    raise PushProviderError(
        "푸시 API 응답에 발송 결과가 없습니다.",
        retryable=True,
        payload=response_json,
    )


def _ensure_success(entry: Dict[str, Any]) -> None:
    if entry.get("isValidDeviceToken") is False:
        raise PushProviderError(
            f"유효하지 않은 디바이스 토큰: {_describe_exception(entry.get('exception'))}",
            code=INVALID_TOKEN_CODE,
            invalid_target=True,
            payload=entry,
        )
    if not entry.get("isSuccess"):
        raise PushProviderError(
            f"푸시 발송 실패: {_describe_exception(entry.get('exception'))}",
            code=SEND_FAILED_CODE,
            retryable=True,
            payload=entry,
        )


def _describe_exception(exception: Any) -> str:
    if not exception:
        return "Unknown error"
    if isinstance(exception, dict):
        code = exception.get("messagingErrorCode") or exception.get("code")
        message = exception.get("message")
        return " | ".join(str(part) for part in (code, message) if part) or "Unknown error"
    return str(exception)


def _mock_response(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "responses": [
            {
                "deviceToken": token,
                "isSuccess": True,
                "isValidDeviceToken": True,
                "messageId": f"mock-{uuid4().hex[:12]}",
                "exception": None,
            }
            for token in payload.get("tokens", [])
        ]
    }
