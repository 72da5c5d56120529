"""Pydantic schemas for API request/response models.

Field names are snake_case in Python and camelCase on the wire; both
spellings are accepted on input.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from manualic_api.models.enums import (
    BlockType,
    DocumentStatus,
    DocumentVisibility,
    WorkspaceRole,
)


class ApiModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Block Schemas ---


def _first_present(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


# Column widths of blocks.file_url and blocks.file_name
FILE_URL_MAX_LENGTH = 500
FILE_NAME_MAX_LENGTH = 255


def _check_text(value: Any, max_length: int, label: str) -> None:
    if not isinstance(value, str) or len(value) > max_length:
        raise ValueError(f"{label} must be text of at most {max_length} characters")


class BlockInput(ApiModel):
    """One entry of a full block list submitted for a document.

    Image and file blocks need a file URL, given directly or inside
    ``metadata``.
    """

    block_type: BlockType
    content: str = ""
    file_url: str | None = Field(default=None, max_length=FILE_URL_MAX_LENGTH)
    file_name: str | None = Field(default=None, max_length=FILE_NAME_MAX_LENGTH)
    file_size: int | None = Field(default=None, ge=0)
    metadata: dict[str, Any] | None = None

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, v: Any) -> Any:
        return "" if v is None else v

    @model_validator(mode="after")
    def require_file_fields(self) -> "BlockInput":
        if self.block_type == BlockType.TEXT:
            return self

        meta = self.metadata or {}
        if self.file_url is None:
            self.file_url = _first_present(meta, "fileUrl", "file_url", "url")
        if self.file_name is None:
            self.file_name = _first_present(meta, "fileName", "file_name", "name")
        if self.file_size is None:
            size = _first_present(meta, "fileSize", "file_size", "size")
            if isinstance(size, int) and size >= 0:
                self.file_size = size

        if not self.file_url:
            raise ValueError(f"{self.block_type.value} blocks require a file URL")
        # Values lifted from metadata skip field validation
        _check_text(self.file_url, FILE_URL_MAX_LENGTH, "file URL")
        if self.file_name is not None:
            _check_text(self.file_name, FILE_NAME_MAX_LENGTH, "file name")
        return self


class BlockResponse(ApiModel):
    """Stored block."""

    id: str
    document_id: str
    block_type: BlockType
    content: str
    file_url: str | None
    file_name: str | None
    file_size: int | None
    metadata: dict[str, Any] | None = Field(
        default=None,
        validation_alias="block_metadata",
        serialization_alias="metadata",
    )
    sort_order: int
    created_at: datetime
    updated_at: datetime


class SaveBlocksRequest(ApiModel):
    """Full replacement of a document's blocks.

    Entries are validated by the service after the access check.
    """

    blocks: list[dict[str, Any]]
    create_version: bool = False
    change_summary: str | None = None


# --- Document Schemas ---


class DocumentResponse(ApiModel):
    """Document metadata."""

    id: str
    category_id: str
    title: str
    status: DocumentStatus
    visibility: DocumentVisibility
    created_by_id: str
    created_at: datetime
    updated_at: datetime


class DocumentWithBlocksResponse(DocumentResponse):
    """Document with its ordered blocks and the caller's role."""

    blocks: list[BlockResponse]
    author_name: str | None = None
    role: WorkspaceRole | None = None
    version: int | None = None


class DocumentEnvelopeResponse(ApiModel):
    """Response body of document reads and block saves."""

    document: DocumentWithBlocksResponse


# --- Version Schemas ---


class VersionResponse(ApiModel):
    """Version metadata, without the snapshot payload."""

    id: str
    document_id: str
    version_number: int
    change_summary: str | None
    created_by_id: str | None
    created_by_name: str | None = None
    created_at: datetime


class VersionDetailResponse(VersionResponse):
    """Version metadata with its decoded block list."""

    blocks: list[BlockInput]


class VersionListResponse(ApiModel):
    """Versions of a document, newest first."""

    versions: list[VersionResponse]


class RestoreResponse(ApiModel):
    """Outcome of a restore."""

    message: str
    restored_version: int
    snapshot_version: int | None = None
