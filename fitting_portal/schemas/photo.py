from pydantic import BaseModel

from fitting_portal.models import Photo


class PhotoUpdateIn(BaseModel):
    id: str | None = None
    status: str | None = None


def _iso(dt) -> str | None:
    return dt.isoformat() if dt else None


def photo_to_dict(photo: Photo) -> dict:
    return {
        "id": str(photo.id),
        "customerEmail": photo.customer_email,
        "photoUrl": photo.photo_url,
        "originalName": photo.original_name,
        "fileSize": photo.file_size,
        "mimeType": photo.mime_type,
        "status": photo.status.api_value,
        "isVirtualFittingPhoto": photo.is_virtual_fitting_photo,
        "webhookSent": photo.webhook_sent,
        "webhookRetries": photo.webhook_retries,
        "createdAt": _iso(photo.created_at),
        "updatedAt": _iso(photo.updated_at),
    }
