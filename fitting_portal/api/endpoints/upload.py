import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from fitting_portal.db import get_session
from fitting_portal.security import file_sha256, get_client_ip, require_email, verify_api_secret
from fitting_portal.services import photo_service
from fitting_portal.services.file_service import (
    FileValidationError,
    UploadCandidate,
    content_type_for,
    generate_filename,
    validate_file,
)
from fitting_portal.services.rate_limiter import RateLimiter, get_upload_rate_limiter
from fitting_portal.services.storage_service import PhotoStorage, StorageError, get_storage
from fitting_portal.services.webhook_dispatcher import WebhookDispatcher, dispatch_photo_webhook, get_webhook_dispatcher
from fitting_portal.session_factory import SessionFactory, get_session_factory
from fitting_portal.settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


def enforce_upload_rate_limit(request: Request, limiter: RateLimiter = Depends(get_upload_rate_limiter)) -> None:
    client_ip = get_client_ip(request)
    if not limiter.check(client_ip):
        logger.warning(f"Upload rate limit exceeded: {client_ip}")
        raise HTTPException(status_code=429, detail="Too many requests. Please try again later.")


@router.post("", dependencies=[Depends(enforce_upload_rate_limit), Depends(verify_api_secret)])
def upload_photo(
    background_tasks: BackgroundTasks,
    photo: UploadFile | None = File(default=None),
    customer_email: str | None = Form(default=None, alias="customerEmail"),
    is_virtual_fitting_photo: str | None = Form(default=None, alias="isVirtualFittingPhoto"),
    session: Session = Depends(get_session),
    storage: PhotoStorage = Depends(get_storage),
    session_factory: SessionFactory = Depends(get_session_factory),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
) -> dict:
    email = require_email(customer_email)
    virtual_fitting = (is_virtual_fitting_photo or "").strip().lower() == "true"

    if photo is None or not photo.filename:
        raise HTTPException(status_code=400, detail="Photo file is required")

    # 한도+1 바이트까지만 읽어 초과 여부 판단
    data = photo.file.read(settings.max_file_size + 1)
    candidate = UploadCandidate(data=data, original_name=photo.filename, mime_type=photo.content_type)

    try:
        validate_file(candidate, settings.max_file_size)
    except FileValidationError as e:
        logger.info(f"Upload rejected for {email}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    filename = generate_filename(photo.filename, photo.content_type)
    try:
        photo_url = storage.save(data, filename, photo.content_type or content_type_for(filename))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))

    try:
        saved = photo_service.create_photo(
            session,
            customer_email=email,
            photo_url=photo_url,
            original_name=photo.filename,
            file_size=candidate.size,
            mime_type=photo.content_type,
            is_virtual_fitting_photo=virtual_fitting,
        )
        session.commit()
    except Exception:
        storage.delete(filename)
        raise

    logger.info(f"Photo uploaded: {saved.id} by {email} (sha256={file_sha256(data)[:12]})")

    # 웹훅은 응답 이후 별도 세션으로 전송 (실패해도 업로드 결과와 무관)
    background_tasks.add_task(dispatch_photo_webhook, session_factory, saved.id, dispatcher)

    return {
        "success": True,
        "message": "Photo uploaded successfully",
        "data": {
            "id": str(saved.id),
            "photoUrl": saved.photo_url,
            "status": saved.status.api_value,
            "customerEmail": saved.customer_email,
            "createdAt": saved.created_at.isoformat() if saved.created_at else None,
        },
    }
