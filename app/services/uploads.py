# app/services/uploads.py
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.constants import ALLOWED_IMAGE_TYPES, ImageStatus
from app.core.exceptions import ValidationError
from app.core.input_validation import sanitize_text
from app.core.logging import logger
from app.db.models.image import Image
from app.db.models.tenant import Tenant
from app.db.repositories.image_repository import ImageRepository
from app.services.image_processing import process_image
from app.services.storage import StorageBackend, image_key, thumbnail_key


def validate_upload(content_type: Optional[str], size: int):
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Invalid file type. Only JPEG, PNG, and WebP are allowed")
    if size == 0:
        raise ValidationError("No image file uploaded")
    if size > settings.MAX_FILE_SIZE:
        raise ValidationError(f"File too large (max {settings.MAX_FILE_SIZE // (1024 * 1024)} MB)")


class UploadService:
    """Resize, store and record a guest upload as a pending image"""

    def __init__(self, session: AsyncSession, storage: StorageBackend):
        self.session = session
        self.storage = storage
        self.images = ImageRepository(session)

    async def store_upload(
        self,
        tenant: Tenant,
        data: bytes,
        content_type: Optional[str],
        original_filename: Optional[str],
        session_id: Optional[str] = None,
        payment_id: Optional[str] = None,
        caption: Optional[str] = None,
    ) -> Image:
        validate_upload(content_type, len(data))

        processed = await run_in_threadpool(process_image, data)

        filename = f"{uuid.uuid4()}.jpg"
        main_key = image_key(tenant.slug, filename)
        thumb_key = thumbnail_key(tenant.slug, filename)
        file_url = await self.storage.save(main_key, processed.data, processed.mime_type)
        thumbnail_url = await self.storage.save(thumb_key, processed.thumbnail, processed.mime_type)

        image = await self.images.create({
            "tenant_id": tenant.id,
            "payment_id": payment_id,
            "filename": filename,
            "original_filename": original_filename,
            "file_path": main_key,
            "thumbnail_path": thumb_key,
            "file_url": file_url,
            "thumbnail_url": thumbnail_url,
            "file_size": len(data),
            "mime_type": content_type,
            "width": processed.width,
            "height": processed.height,
            "status": ImageStatus.PENDING.value,
            "upload_session_id": session_id,
            "caption": sanitize_text(caption) or None,
        })

        logger.info(f"Image {image.id} uploaded", extra={"tenant_id": tenant.id})
        return image
