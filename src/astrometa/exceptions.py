"""
Custom exceptions for astrometa.

Provides a hierarchy of exceptions separating fatal structural failures
(the source cannot be trusted at all) from the recoverable problems that are
absorbed into the metadata model.
"""

from enum import Enum
from typing import Optional


class ParseStage(Enum):
    """Stage of a parse at which a structural failure was detected."""
    SOURCE_READ = "source-read"
    SIGNATURE = "signature-check"
    HEADER_LENGTH = "header-length-read"
    HEADER_DOCUMENT = "header-document-parse"
    HEADER_RECORDS = "header-record-scan"
    DIMENSIONS = "dimension-validation"

    @property
    def error_code(self) -> str:
        return self.value.replace('-', '_').upper()


class AstroMetaError(Exception):
    """Base exception for all astrometa errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, **kwargs):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = kwargs

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class StructuralError(AstroMetaError):
    """
    Raised when a source is structurally unusable.

    A structural error always aborts the whole parse; no partially populated
    metadata is returned alongside it.
    """

    def __init__(self, message: str, stage: ParseStage,
                 file_path: Optional[str] = None, **kwargs):
        kwargs.setdefault('error_code', stage.error_code)
        super().__init__(message, **kwargs)
        self.stage = stage
        self.file_path = file_path


class FormatError(StructuralError):
    """Raised when the bytes do not follow the declared file format."""
    pass


class SourceReadError(StructuralError):
    """Raised when the byte source itself cannot be read."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        super().__init__(message, ParseStage.SOURCE_READ, file_path=file_path, **kwargs)


class UnsupportedFormatError(AstroMetaError):
    """Raised when no handler recognizes the source or the format hint."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        kwargs.setdefault('error_code', "UNSUPPORTED_FORMAT")
        super().__init__(message, **kwargs)
        self.file_path = file_path


class AttachmentReadError(AstroMetaError):
    """Raised when the bytes of a data block cannot be produced."""

    def __init__(self, message: str, attachment_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.attachment_id = attachment_id


class ConfigurationError(AstroMetaError):
    """Raised when configuration is invalid or missing."""
    pass
