import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fitting_portal.models import Photo
from fitting_portal.services import customer_service
from fitting_portal.services.photo_status import PhotoStatus, ensure_transition

logger = logging.getLogger(__name__)


def create_photo(
    session: Session,
    customer_email: str,
    photo_url: str,
    original_name: str | None = None,
    file_size: int | None = None,
    mime_type: str | None = None,
    is_virtual_fitting_photo: bool = False,
) -> Photo:
    customer_service.ensure_customer(session, customer_email)

    photo = Photo(
        customer_email=customer_email,
        photo_url=photo_url,
        original_name=original_name,
        file_size=file_size,
        mime_type=mime_type,
        is_virtual_fitting_photo=is_virtual_fitting_photo,
        status=PhotoStatus.PENDING,
        webhook_sent=False,
        webhook_retries=0,
    )
    session.add(photo)
    session.flush()
    return photo


def parse_photo_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def get_photo(session: Session, photo_id: uuid.UUID, for_update: bool = False) -> Photo | None:
    return session.get(Photo, photo_id, with_for_update=for_update or None)


def list_photos(
    session: Session,
    status: PhotoStatus | None = None,
    email: str | None = None,
    limit: int | None = None,
) -> list[Photo]:
    stmt = select(Photo)
    if status is not None:
        stmt = stmt.where(Photo.status == status)
    if email:
        stmt = stmt.where(func.lower(Photo.customer_email).contains(email.strip().lower(), autoescape=True))
    stmt = stmt.order_by(Photo.created_at.desc())
    if limit:
        stmt = stmt.limit(limit)
    return list(session.scalars(stmt).all())


def get_stats(session: Session) -> dict[str, int]:
    counts = dict(session.execute(select(Photo.status, func.count()).group_by(Photo.status)).all())

    stats = {"total": sum(counts.values())}
    for status in PhotoStatus:
        stats[status.api_value] = int(counts.get(status, 0))
    stats["virtualFittingPhotos"] = int(
        session.scalar(select(func.count()).select_from(Photo).where(Photo.is_virtual_fitting_photo.is_(True))) or 0
    )
    return stats


def update_status(session: Session, photo: Photo, target: PhotoStatus) -> Photo:
    """
    상태를 앞으로만 진행시킵니다. 역방향이면 PhotoStatusTransitionError.
    호출자는 get_photo(..., for_update=True)로 행을 잠근 뒤 호출해야 합니다.
    """
    ensure_transition(photo.status, target)
    if photo.status != target:
        previous = photo.status
        photo.status = target
        session.flush()
        logger.info(f"Photo status updated: {photo.id} {previous.api_value} -> {target.api_value}")
    return photo
