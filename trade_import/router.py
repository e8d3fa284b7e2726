"""
FastAPI Router for NT8 Trade Import.

Endpoints:
- POST /import/nt8/preview: classify every row, store nothing
- POST /import/nt8/execute: store valid, non-duplicate rows

Both take a multipart `file` and a form field `accountId`. The
user id comes from the X-User-Id header set by the upstream
auth layer.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Generator, Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storage.database import get_db_session
from storage.repositories.trade_repo import SqlTradeStore
from trade_import.config import ImportConfig
from trade_import.errors import FileTooLargeError, ImportFileError
from trade_import.pipeline import ImportPipeline
from trade_import.schemas import ExecuteResponse, PreviewResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import/nt8", tags=["NT8 Import"])

ALLOWED_EXTENSIONS = {".csv", ".txt"}


# =============================================================
# DEPENDENCIES
# =============================================================

def get_db() -> Generator[Session, None, None]:
    with get_db_session() as session:
        yield session


@lru_cache
def get_import_config() -> ImportConfig:
    return ImportConfig.from_env()


def get_pipeline(
    db: Session = Depends(get_db),
    config: ImportConfig = Depends(get_import_config),
) -> ImportPipeline:
    return ImportPipeline(SqlTradeStore(db), config)


# =============================================================
# HELPERS
# =============================================================

def _read_upload(file: Optional[UploadFile], max_bytes: int) -> bytes:
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV and TXT files are allowed",
        )

    # Read one byte past the limit to detect oversize uploads
    data = file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {max_bytes} byte limit",
        )
    return data


def _check_identity(user_id: Optional[str], account_id: Optional[str]) -> None:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    if not account_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Account ID is required")


def _file_error(e: ImportFileError) -> HTTPException:
    if isinstance(e, FileTooLargeError):
        return HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=e.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


# =============================================================
# ENDPOINTS
# =============================================================

@router.post("/preview", response_model=PreviewResponse)
def preview_import(
    file: Optional[UploadFile] = File(None),
    account_id: Optional[str] = Form(None, alias="accountId"),
    x_user_id: Optional[str] = Header(None),
    config: ImportConfig = Depends(get_import_config),
    pipeline: ImportPipeline = Depends(get_pipeline),
):
    """
    Preview an NT8 export.

    Every row is reported as valid, duplicate or invalid with its
    error messages. Nothing is stored.
    """
    _check_identity(x_user_id, account_id)
    data = _read_upload(file, config.max_file_bytes)

    try:
        result = pipeline.preview(data, x_user_id, account_id)
    except ImportFileError as e:
        raise _file_error(e) from e

    return PreviewResponse.from_result(result)


@router.post("/execute", response_model=ExecuteResponse)
def execute_import(
    file: Optional[UploadFile] = File(None),
    account_id: Optional[str] = Form(None, alias="accountId"),
    x_user_id: Optional[str] = Header(None),
    config: ImportConfig = Depends(get_import_config),
    pipeline: ImportPipeline = Depends(get_pipeline),
):
    """
    Import an NT8 export.

    Valid rows are stored one by one; duplicates and invalid rows
    are skipped and reported. Returns 503 when trade storage is
    unreachable, with the rows committed so far in the payload.
    """
    _check_identity(x_user_id, account_id)
    data = _read_upload(file, config.max_file_bytes)

    try:
        result = pipeline.execute(data, x_user_id, account_id)
    except ImportFileError as e:
        raise _file_error(e) from e

    response = ExecuteResponse.from_result(result)
    if result.failed:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json", by_alias=True),
        )
    return response
