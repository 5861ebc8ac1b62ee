"""
신규 사진 업로드를 외부 자동화 엔드포인트(n8n 등)에 알리는 웹훅 전송기.

- 최대 webhook_max_retries 회 시도, 시도 사이 base * 2**(n-1) 초 대기
- 시도마다 사진의 전송 기록(webhook_sent, webhook_retries)을 갱신/커밋
- 모두 실패해도 로그만 남기고 예외를 올리지 않음 (업로드 성공과 무관)
"""
from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from fitting_portal.models import Photo
from fitting_portal.session_factory import SessionFactory
from fitting_portal.settings import settings

logger = logging.getLogger(__name__)


class WebhookDeliveryError(RuntimeError):
    pass


RETRYABLE_ERRORS = (httpx.HTTPError, WebhookDeliveryError)


class WebhookDispatcher:
    def __init__(
        self,
        url: str,
        secret: str = "",
        max_retries: int = 3,
        base_delay: float = 1.0,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.url = url
        self.secret = secret
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def build_payload(self, photo: Photo) -> dict[str, Any]:
        return {
            "id": str(photo.id),
            "email": photo.customer_email,
            "photoUrl": photo.photo_url,
            "status": photo.status.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "originalName": photo.original_name or None,
            "fileSize": photo.file_size or None,
            "mimeType": photo.mime_type or None,
        }

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers["X-Webhook-Secret"] = self.secret
        return headers

    def _post(self, payload: dict[str, Any]) -> None:
        timeout = httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0))
        with httpx.Client(timeout=timeout, transport=self._transport) as client:
            resp = client.post(self.url, json=payload, headers=self._headers())
        if not resp.is_success:
            raise WebhookDeliveryError(f"HTTP {resp.status_code}: {resp.reason_phrase}")

    @staticmethod
    def _record(session: Session, photo: Photo, sent: bool, retries: int) -> None:
        photo.webhook_sent = sent
        photo.webhook_retries = retries
        session.commit()

    def send(self, session: Session, photo: Photo) -> bool:
        if not self.enabled:
            logger.warning("WEBHOOK_URL not configured, skipping webhook")
            return False

        payload = self.build_payload(photo)
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.base_delay, min=0),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
            sleep=self._sleep,
            before_sleep=lambda retry_state: logger.warning(
                f"Webhook attempt {retry_state.attempt_number}/{self.max_retries} failed for photo {photo.id}: "
                f"{retry_state.outcome.exception()}"
            ),
        )

        try:
            for attempt in retrying:
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    logger.info(f"Sending webhook for photo {photo.id} (attempt {attempt_number}/{self.max_retries})")
                    try:
                        self._post(payload)
                    except RETRYABLE_ERRORS:
                        self._record(session, photo, sent=False, retries=attempt_number)
                        raise
                    self._record(session, photo, sent=True, retries=attempt_number - 1)
        except RETRYABLE_ERRORS as e:
            logger.error(f"All webhook attempts failed for photo {photo.id}: {e}")
            return False

        logger.info(f"Webhook sent successfully for photo {photo.id}")
        return True


def create_dispatcher(**overrides: Any) -> WebhookDispatcher:
    params: dict[str, Any] = {
        "url": settings.webhook_url,
        "secret": settings.webhook_secret,
        "max_retries": settings.webhook_max_retries,
        "base_delay": settings.webhook_retry_base_delay,
        "timeout": settings.webhook_timeout,
    }
    params.update(overrides)
    return WebhookDispatcher(**params)


def get_webhook_dispatcher() -> WebhookDispatcher:
    return create_dispatcher()


def dispatch_photo_webhook(session_factory: SessionFactory, photo_id: uuid.UUID, dispatcher: WebhookDispatcher) -> None:
    """
    BackgroundTasks 진입점. 요청 세션과 별개의 세션을 사용하며 어떤 실패도 호출자로 올리지 않습니다.
    """
    session = session_factory()
    try:
        photo = session.get(Photo, photo_id)
        if photo is None:
            logger.warning(f"Webhook skipped, photo not found: {photo_id}")
            return
        dispatcher.send(session, photo)
    except Exception:
        session.rollback()
        logger.exception(f"Webhook failed (non-blocking) for photo {photo_id}")
    finally:
        session.close()


def retry_failed_webhooks(session: Session, dispatcher: WebhookDispatcher, limit: int = 10) -> dict[str, int]:
    """전송되지 않았고 재시도 한도가 남은 사진을 오래된 순으로 재전송합니다."""
    stmt = (
        select(Photo)
        .where(Photo.webhook_sent.is_(False))
        .where(Photo.webhook_retries < dispatcher.max_retries)
        .order_by(Photo.created_at.asc())
        .limit(limit)
    )
    photos = session.scalars(stmt).all()

    succeeded = 0
    for photo in photos:
        logger.info(f"Retrying webhook for photo {photo.id}")
        if dispatcher.send(session, photo):
            succeeded += 1

    return {"processed": len(photos), "succeeded": succeeded, "failed": len(photos) - succeeded}
