"""Typed failures raised by the document services.

Routes translate these into HTTP responses; nothing below the mutation
orchestrator swallows them.
"""


class DocumentServiceError(Exception):
    """Base exception for document service operations."""

    pass


class AccessDeniedError(DocumentServiceError):
    """Caller's effective role is insufficient (or absent)."""

    def __init__(self, message: str = "Not authorized to access this resource"):
        super().__init__(message)


class ResourceNotFoundError(DocumentServiceError):
    """A workspace, category, document or version does not exist."""

    pass


class InvalidBlockError(DocumentServiceError):
    """Block input is malformed. Raised before any write happens."""

    pass


class SnapshotFormatError(InvalidBlockError):
    """A stored version snapshot cannot be decoded into blocks."""

    pass


class VersionConflictError(DocumentServiceError):
    """Another writer took the version number this writer tried to use."""

    def __init__(self, document_id: str, version_number: int):
        self.document_id = document_id
        self.version_number = version_number
        super().__init__(
            f"Version {version_number} of document {document_id} already exists"
        )
