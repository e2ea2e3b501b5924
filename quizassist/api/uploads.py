"""Teacher file uploads (level 3 PDFs, question images) and downloads."""

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse

from quizassist.api.deps import get_auth_context
from quizassist.config import settings
from quizassist.core.errors import NotFoundError
from quizassist.core.security import AuthContext
from quizassist.services import authz, file_store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    auth: AuthContext = Depends(get_auth_context),
):
    """Store a PDF or image and return the URL to reference it by."""
    authz.require_teacher(auth)
    url = file_store.save(file.file, file.content_type, file.filename)
    return {"url": url, "filename": file.filename, "content_type": file.content_type}


@router.get("/{name}")
def download_file(name: str):
    path = file_store.path_for(f"{settings.UPLOAD_BASE_URL.rstrip('/')}/{name}")
    if path is None:
        raise NotFoundError("File not found", {"name": name})
    return FileResponse(path)
