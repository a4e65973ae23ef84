"""
Data block descriptors for XISF containers.

An AttachmentInfo describes where a block lives, how it is encoded and what
integrity problems were found while describing it. Block bytes are never
decoded here; see astrometa.file_formats.xisfFile.codecs for that.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class LocationMethod(Enum):
    """How the bytes of a data block are stored."""
    ATTACHMENT = "attachment"   # attachment:<position>:<size>, absolute offset
    IMPLICIT = "implicit"       # monolithic block right after the header
    INLINE = "inline"           # inline:<encoding>, text of the element
    EMBEDDED = "embedded"       # <Data> child element
    URL = "url"                 # external resource, never read


class IntegrityIssueKind(Enum):
    """Recoverable problems found while describing a data block."""
    CHECKSUM_MISMATCH = "checksum-mismatch"
    UNKNOWN_CHECKSUM_ALGORITHM = "unknown-checksum-algorithm"
    UNKNOWN_CODEC = "unknown-codec"
    INVALID_COMPRESSION = "invalid-compression"
    INVALID_LOCATION = "invalid-location"
    UNRESOLVED_LOCATION = "unresolved-location"
    OUT_OF_BOUNDS = "out-of-bounds"
    INVALID_GEOMETRY = "invalid-geometry"
    INVALID_SAMPLE_FORMAT = "invalid-sample-format"


@dataclass(frozen=True)
class IntegrityIssue:
    kind: IntegrityIssueKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


@dataclass
class AttachmentInfo:
    """Description of one XISF data block (Image, ICCProfile, Thumbnail, ...)."""
    id: str
    kind: str = "Image"
    geometry: Optional[str] = None
    width: int = 0
    height: int = 0
    channels: int = 1
    sample_format: Optional[str] = None
    bits_per_sample: Optional[int] = None
    color_space: Optional[str] = None

    location_method: Optional[LocationMethod] = None
    offset: Optional[int] = None
    length: Optional[int] = None
    inline_encoding: Optional[str] = None
    url: Optional[str] = None

    compression_codec: Optional[str] = None
    uncompressed_size: Optional[int] = None
    item_size: Optional[int] = None
    compression_parameters: Dict[str, str] = field(default_factory=dict)

    checksum_algorithm: Optional[str] = None
    checksum_digest: Optional[str] = None
    checksum_valid: Optional[bool] = None

    resolution_x: Optional[float] = None
    resolution_y: Optional[float] = None
    resolution_unit: Optional[str] = None

    issues: List[IntegrityIssue] = field(default_factory=list)

    # Decoded inline/embedded bytes; not part of the serialized view
    inline_data: Optional[bytes] = field(default=None, repr=False, metadata={'serialize': False})

    def add_issue(self, kind: IntegrityIssueKind, message: str) -> IntegrityIssue:
        """Record a recoverable problem with this block."""
        issue = IntegrityIssue(kind, message)
        self.issues.append(issue)
        logger.warning(f"Attachment {self.id}: {issue}")
        return issue

    @property
    def is_compressed(self) -> bool:
        return self.compression_codec is not None

    @property
    def is_shuffled(self) -> bool:
        return bool(self.compression_codec) and self.compression_codec.endswith('+sh')

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    def issues_of(self, kind: IntegrityIssueKind) -> List[IntegrityIssue]:
        return [issue for issue in self.issues if issue.kind is kind]
