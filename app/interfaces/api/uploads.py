"""Upload API routes — media for requests and chat (images, PDF, video)."""

import structlog
from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from app.config import get_settings
from app.core.exceptions import UpstreamServiceException, ValidationException
from app.domain.models.user import User
from app.domain.schemas.notification import UploadRead
from app.infrastructure.storage import ObjectStorage, StorageError
from app.interfaces.api.deps import get_current_user, get_storage

settings = get_settings()
logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/upload", tags=["Uploads"])

ALLOWED_CONTENT_PREFIXES = ("image/", "video/")
ALLOWED_CONTENT_TYPES = ("application/pdf",)


def is_allowed_content_type(content_type: str) -> bool:
    content_type = (content_type or "").lower()
    return content_type.startswith(ALLOWED_CONTENT_PREFIXES) or content_type in ALLOWED_CONTENT_TYPES


@router.post("", response_model=UploadRead)
async def upload_file(
    file: UploadFile = File(None),
    user: User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
):
    if file is None or not file.filename:
        raise ValidationException("Ficheiro não enviado")

    content_type = file.content_type or "application/octet-stream"
    if not is_allowed_content_type(content_type):
        raise ValidationException("Apenas imagens, PDF ou vídeos são aceites")

    # Read one byte past the limit to detect oversized files without loading more
    content = await file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(content) > settings.UPLOAD_MAX_BYTES:
        raise ValidationException("Ficheiro excede o limite de 10MB")
    if not content:
        raise ValidationException("Ficheiro vazio")

    key = storage.build_key(user.id, file.filename)
    try:
        url = await run_in_threadpool(storage.upload, content, key, content_type)
    except StorageError as e:
        raise UpstreamServiceException("Falha ao carregar ficheiro", {"reason": str(e)})

    logger.info("File uploaded", user_id=user.id, key=key, size=len(content))
    return UploadRead(url=url, key=key, content_type=content_type, size=len(content))
