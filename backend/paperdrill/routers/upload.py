import hashlib
import logging
import uuid
from datetime import datetime
from pathlib import Path

import aiosqlite
from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile

from paperdrill.config import settings
from paperdrill.db.sqlite import create_paper, get_db
from paperdrill.dependencies import get_now, get_owner_id
from paperdrill.errors import PersistenceError
from paperdrill.models.paper import Paper, PaperCreate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/upload", response_model=Paper, status_code=201)
async def upload_paper(
    file: UploadFile,
    tags: list[str] = Form(default=[]),
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
):
    # Validate file type
    ext = Path(file.filename or "").suffix.lower()
    if ext not in settings.upload_extensions:
        raise HTTPException(400, f"Unsupported file type: {ext or 'none'}")

    content = await file.read()
    if not content:
        raise HTTPException(400, "Empty file")
    file_hash = hashlib.sha256(content).hexdigest()

    # Scans are stored per owner; the paper row only keeps the path
    owner_dir = hashlib.sha256(owner_id.encode()).hexdigest()[:16]
    files_dir = settings.data_dir / settings.files_dirname / owner_dir
    files_dir.mkdir(parents=True, exist_ok=True)
    dest = files_dir / f"{uuid.uuid4()}{ext}"
    dest.write_bytes(content)
    logger.info("Stored upload %s (%d bytes, sha256=%s)", dest.name, len(content), file_hash[:12])

    try:
        return await create_paper(db, owner_id, PaperCreate(file_path=str(dest), tags=tags), now)
    except PersistenceError:
        dest.unlink(missing_ok=True)
        raise
