"""Profile photo handling: multipart ``foto`` extraction and Uploadcare upload."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Request
from starlette.datastructures import UploadFile

from .config import get_settings
from .errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

PHOTO_FIELD = "foto"
MAX_PHOTO_BYTES = 5 * 1024 * 1024
ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
)


def photo_error(message: str, code: str = "invalid_file") -> ValidationError:
    return ValidationError(
        message, [{"field": PHOTO_FIELD, "message": message, "code": code}]
    )


@dataclass(frozen=True)
class PhotoFile:
    content: bytes
    filename: str
    content_type: str


class UploadcareUploader:
    def __init__(
        self,
        public_key: Optional[str],
        upload_url: str = "https://upload.uploadcare.com/base/",
        cdn_url: str = "https://ucarecdn.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.public_key = public_key
        self.upload_url = upload_url
        self.cdn_url = cdn_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def upload(self, content: bytes, filename: str, content_type: str) -> str:
        """Store the file and return its CDN URL, ``<cdn>/<uuid>/``."""
        if not self.public_key:
            raise InternalError("UPLOADCARE_PUBLIC_KEY não configurada")
        if not content:
            raise photo_error("Arquivo vazio ou inválido")

        logger.info(
            "Uploading %s (%s, %.2f KB) to Uploadcare",
            filename,
            content_type,
            len(content) / 1024,
        )
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.upload_url,
                    data={"UPLOADCARE_PUB_KEY": self.public_key, "UPLOADCARE_STORE": "1"},
                    files={"file": (filename, content, content_type)},
                )
        except httpx.TimeoutException:
            logger.error("Uploadcare timed out for %s", filename)
            raise photo_error("Falha no upload da imagem: tempo esgotado", "upload_failed")
        except httpx.RequestError as exc:
            logger.error("Uploadcare unreachable: %s", exc)
            raise photo_error(f"Falha no upload da imagem: {exc}", "upload_failed")

        if not response.is_success:
            logger.error("Uploadcare answered %s: %s", response.status_code, response.text)
            raise photo_error(
                f"Falha no upload da imagem: HTTP {response.status_code}", "upload_failed"
            )

        try:
            file_id = response.json()["file"]
        except (ValueError, KeyError, TypeError):
            raise photo_error(
                "Falha no upload da imagem: resposta inesperada", "upload_failed"
            ) from None

        url = f"{self.cdn_url}/{file_id}/"
        logger.info("Uploaded %s -> %s", filename, url)
        return url


@lru_cache()
def get_photo_uploader() -> UploadcareUploader:
    settings = get_settings()
    return UploadcareUploader(
        public_key=settings.uploadcare_public_key,
        upload_url=settings.uploadcare_upload_url,
        cdn_url=settings.uploadcare_cdn_url,
        timeout=settings.upload_timeout_seconds,
    )


async def photo_file(request: Request) -> Optional[PhotoFile]:
    """The ``foto`` part of a multipart body, checked for type and size.

    Declare it after the body validator so text fields are validated first.
    """
    if not request.headers.get("content-type", "").startswith("multipart/form-data"):
        return None

    form = await request.form()
    upload = form.get(PHOTO_FIELD)
    if not isinstance(upload, UploadFile):
        return None

    content_type = upload.content_type or ""
    if content_type not in ALLOWED_MIME_TYPES:
        raise photo_error(
            f"Tipo de arquivo não permitido: {content_type}. Use: JPG, PNG, GIF ou WebP"
        )

    content = await upload.read(MAX_PHOTO_BYTES + 1)
    if len(content) > MAX_PHOTO_BYTES:
        raise photo_error("Arquivo muito grande. Tamanho máximo: 5MB", "file_too_large")
    if not content:
        raise photo_error("Arquivo vazio ou inválido")

    return PhotoFile(
        content=content,
        filename=upload.filename or "foto",
        content_type=content_type,
    )
