"""
업로드 이미지 검증 및 파일명 처리.

- 크기/MIME/확장자 검사
- Pillow 로 실제 이미지 포맷 판별: 선언된 MIME 과 확장자가 가리키는 MIME 모두와 일치해야 함
- 경로 조작 방지를 위한 파일명 정제
"""
from __future__ import annotations

import os
import re
import uuid
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

ALLOWED_MIME_TYPES: tuple[str, ...] = ("image/jpeg", "image/jpg", "image/png", "image/webp")
ALLOWED_EXTENSIONS: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".webp")

_EXTENSION_MIME = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

_MIME_EXTENSION = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


class FileValidationError(ValueError):
    pass


class SignatureMismatchError(FileValidationError):
    pass


@dataclass(frozen=True)
class UploadCandidate:
    data: bytes
    original_name: str | None
    mime_type: str | None

    @property
    def size(self) -> int:
        return len(self.data)


def _normalize_mime(mime_type: str) -> str:
    mime_type = mime_type.split(";")[0].strip().lower()
    return "image/jpeg" if mime_type == "image/jpg" else mime_type


def extension_of(filename: str | None) -> str:
    if not filename:
        return ""
    return os.path.splitext(filename)[1].lower()


def detect_image_mime(data: bytes) -> str | None:
    """Pillow 로 내용을 열어 실제 포맷의 MIME 을 돌려줍니다. 이미지가 아니면 None."""
    if not data:
        return None
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError):
        return None
    return _FORMAT_MIME.get(fmt or "")


def matches_signature(data: bytes, mime_type: str) -> bool:
    detected = detect_image_mime(data)
    return detected is not None and detected == _normalize_mime(mime_type)


def validate_signature(data: bytes, mime_type: str | None, original_name: str | None) -> None:
    expected: list[str] = []
    if mime_type:
        expected.append(_normalize_mime(mime_type))
    ext_mime = _EXTENSION_MIME.get(extension_of(original_name))
    if ext_mime:
        expected.append(ext_mime)

    detected = detect_image_mime(data)
    # 선언 정보가 전혀 없어도 이미지가 아니면 거부
    if detected is None or any(mime != detected for mime in expected):
        raise SignatureMismatchError("File type does not match content. Security check failed.")


def validate_file(candidate: UploadCandidate, max_file_size: int) -> None:
    if candidate.size == 0:
        raise FileValidationError("Photo file is empty")

    if candidate.size > max_file_size:
        raise FileValidationError(
            f"File size exceeds maximum allowed size of {max_file_size / 1024 / 1024:g}MB"
        )

    if candidate.mime_type and _normalize_mime(candidate.mime_type) not in ALLOWED_MIME_TYPES:
        raise FileValidationError(
            f"File type {candidate.mime_type} is not allowed. Allowed types: {', '.join(ALLOWED_MIME_TYPES)}"
        )

    if candidate.original_name:
        ext = extension_of(candidate.original_name)
        if ext not in ALLOWED_EXTENSIONS:
            raise FileValidationError(
                f"File extension {ext or '(none)'} is not allowed. Allowed extensions: {', '.join(ALLOWED_EXTENSIONS)}"
            )

    validate_signature(candidate.data, candidate.mime_type, candidate.original_name)


def generate_filename(original_name: str | None, mime_type: str | None) -> str:
    ext = extension_of(original_name)
    if not ext:
        ext = _MIME_EXTENSION.get(_normalize_mime(mime_type or ""), ".jpg")
    return f"{uuid.uuid4()}{ext}"


def sanitize_filename(filename: str) -> str:
    name = os.path.basename(filename.replace("\\", "/"))
    name = re.sub(r"[^a-zA-Z0-9.-]", "_", name)
    name = re.sub(r"\.+", ".", name)
    return name[:255]


def is_safe_filename(filename: str) -> bool:
    return bool(filename) and sanitize_filename(filename) == filename and filename not in (".", "..")


def content_type_for(filename: str) -> str:
    return _EXTENSION_MIME.get(extension_of(filename), "application/octet-stream")
