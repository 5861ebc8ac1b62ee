import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from fitting_portal.db import get_session
from fitting_portal.schemas.photo import PhotoUpdateIn, photo_to_dict
from fitting_portal.security import verify_api_secret
from fitting_portal.services import photo_service
from fitting_portal.services.file_service import content_type_for, is_safe_filename
from fitting_portal.services.photo_status import PhotoStatusTransitionError, parse_status
from fitting_portal.services.storage_service import LocalStorage, get_local_storage

router = APIRouter()
logger = logging.getLogger(__name__)

STATUS_CHOICES_MESSAGE = "Invalid status. Allowed values: pending, processing, completed, failed"


@router.get("/list", dependencies=[Depends(verify_api_secret)])
def list_photos(
    session: Session = Depends(get_session),
    status: str | None = Query(default=None),
    email: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=1000),
    stats: bool = Query(default=False),
) -> dict:
    status_filter = None
    if status:
        try:
            status_filter = parse_status(status)
        except ValueError:
            raise HTTPException(status_code=400, detail=STATUS_CHOICES_MESSAGE)

    photos = photo_service.list_photos(session, status=status_filter, email=email, limit=limit)

    response: dict = {"success": True, "data": [photo_to_dict(p) for p in photos]}
    if stats:
        response["stats"] = photo_service.get_stats(session)
    return response


@router.api_route("/update", methods=["PUT", "PATCH"], dependencies=[Depends(verify_api_secret)])
def update_photo(payload: PhotoUpdateIn, session: Session = Depends(get_session)) -> dict:
    if not payload.id or not payload.id.strip():
        raise HTTPException(status_code=400, detail="Photo ID is required")
    if not payload.status or not payload.status.strip():
        raise HTTPException(status_code=400, detail="Status is required")

    try:
        target = parse_status(payload.status)
    except ValueError:
        raise HTTPException(status_code=400, detail=STATUS_CHOICES_MESSAGE)

    photo_id = photo_service.parse_photo_id(payload.id.strip())
    photo = photo_service.get_photo(session, photo_id, for_update=True) if photo_id else None
    if photo is None:
        raise HTTPException(status_code=404, detail="Photo not found")

    try:
        photo_service.update_status(session, photo, target)
    except PhotoStatusTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "success": True,
        "message": "Photo status updated successfully",
        "data": {
            "id": str(photo.id),
            "status": photo.status.api_value,
            "updatedAt": photo.updated_at.isoformat() if photo.updated_at else None,
        },
    }


@router.get("/serve/{filename:path}")
def serve_photo(filename: str, storage: LocalStorage = Depends(get_local_storage)) -> FileResponse:
    # 경로 조작(../ 등) 차단: 정제 결과와 원본이 다르면 거부
    if not is_safe_filename(filename):
        raise HTTPException(status_code=400, detail="Invalid filename")

    if not storage.exists(filename):
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(
        storage.path_for(filename),
        media_type=content_type_for(filename),
        headers={
            "Cache-Control": "public, max-age=86400",
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
        },
    )
