"""Document block and version routes (requires auth).

All block writes go through services.documents, which owns the access
check and the transaction.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from manualic_api.auth import get_current_user
from manualic_api.db import get_db
from manualic_api.models import User
from manualic_api.schemas import (
    BlockResponse,
    DocumentEnvelopeResponse,
    DocumentWithBlocksResponse,
    RestoreResponse,
    SaveBlocksRequest,
    VersionDetailResponse,
    VersionListResponse,
    VersionResponse,
)
from manualic_api.services import documents as document_service
from manualic_api.services.errors import (
    AccessDeniedError,
    InvalidBlockError,
    ResourceNotFoundError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@contextmanager
def _service_errors() -> Iterator[None]:
    """Translate service failures into HTTP errors."""
    try:
        yield
    except ResourceNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(e)
        ) from e
    except AccessDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this document",
        ) from e
    except InvalidBlockError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    except VersionConflictError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Document was modified concurrently, please retry",
        ) from e


def _document_response(
    state: document_service.DocumentState,
) -> DocumentEnvelopeResponse:
    document = state.document
    body = DocumentWithBlocksResponse(
        id=document.id,
        category_id=document.category_id,
        title=document.title,
        status=document.status,
        visibility=document.visibility,
        created_by_id=document.created_by_id,
        created_at=document.created_at,
        updated_at=document.updated_at,
        blocks=[BlockResponse.model_validate(block) for block in state.blocks],
        author_name=state.author_name,
        role=state.role,
        version=state.latest_version,
    )
    return DocumentEnvelopeResponse(document=body)


def _version_response(version, created_by_name: str | None = None) -> dict:
    return {
        "id": version.id,
        "document_id": version.document_id,
        "version_number": version.version_number,
        "change_summary": version.change_summary,
        "created_by_id": version.created_by_id,
        "created_by_name": created_by_name,
        "created_at": version.created_at,
    }


@router.get("/{document_id}", response_model=DocumentEnvelopeResponse)
async def get_document(
    document_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a document with its ordered blocks."""
    with _service_errors():
        state = await document_service.get_document(db, current_user.id, document_id)
    return _document_response(state)


@router.put("/{document_id}/blocks", response_model=DocumentEnvelopeResponse)
async def save_blocks(
    document_id: str,
    data: SaveBlocksRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Replace all blocks of a document, optionally creating a version."""
    with _service_errors():
        result = await document_service.save_blocks(
            db,
            current_user.id,
            document_id,
            data.blocks,
            create_version=data.create_version,
            change_summary=data.change_summary,
        )
    return _document_response(result)


@router.get("/{document_id}/versions", response_model=VersionListResponse)
async def list_versions(
    document_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List versions of a document, newest first."""
    with _service_errors():
        rows = await document_service.list_versions(db, current_user.id, document_id)
    return VersionListResponse(
        versions=[
            VersionResponse(**_version_response(version, name))
            for version, name in rows
        ]
    )


@router.get(
    "/{document_id}/versions/{version_id}", response_model=VersionDetailResponse
)
async def get_version(
    document_id: str,
    version_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get one version with its archived blocks."""
    with _service_errors():
        version, blocks = await document_service.get_version_detail(
            db, current_user.id, document_id, version_id
        )
    return VersionDetailResponse(**_version_response(version), blocks=blocks)


@router.post("/{document_id}/restore/{version_id}", response_model=RestoreResponse)
async def restore_version(
    document_id: str,
    version_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Restore a document's blocks from one of its versions."""
    with _service_errors():
        result = await document_service.restore_version(
            db, current_user.id, document_id, version_id
        )
    restored = result.restored_version.version_number
    return RestoreResponse(
        message=f"Document restored to version {restored}",
        restored_version=restored,
        snapshot_version=(
            result.snapshot_version.version_number
            if result.snapshot_version
            else None
        ),
    )
