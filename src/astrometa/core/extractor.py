"""
Entry points for metadata extraction.

Sources may be raw bytes, a binary file object or a path. The format is
selected from a caller hint or by sniffing the leading bytes.
"""

import io
import logging
import os
from typing import Optional, Union

from ..config import ExtractionConfig, get_config
from ..exceptions import AttachmentReadError, SourceReadError
from ..file_formats import SNIFF_SIZE, get_file_format_processor
from ..file_formats.xisfFile.xisf_reader import read_block_data
from ..models.attachment import AttachmentInfo
from ..models.metadata import AstroMetadata
from ..types import ByteSource, FilePath, FormatHint
from .derived import calculate_session_date

logger = logging.getLogger(__name__)


def _as_reader(source: ByteSource):
    """Wrap in-memory buffers; make non-seekable streams seekable."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source))
    seekable = getattr(source, 'seekable', None)
    if seekable is not None and not seekable():
        return io.BytesIO(source.read())
    return source


def _read_head(reader) -> bytes:
    position = reader.tell()
    head = reader.read(SNIFF_SIZE)
    reader.seek(position)
    return head


def detect_format(head_bytes: bytes) -> Optional[str]:
    """
    Identify a format from the leading bytes of a source.

    Returns:
        "XISF", "FITS", "GZIP", or None when the signature is not recognized
    """
    return get_file_format_processor().detect_format(bytes(head_bytes))


def extract_metadata(source: ByteSource, format_hint: FormatHint = None,
                     config: Optional[ExtractionConfig] = None,
                     file_path: Optional[str] = None) -> AstroMetadata:
    """
    Extract metadata from bytes or a binary file object.

    Args:
        source: Raw bytes, or a binary file object positioned at the start
        format_hint: Format name or extension; skips signature sniffing
        config: Extraction settings; the process configuration when None
        file_path: Path used in error messages and extension fallback

    Returns:
        Populated AstroMetadata

    Raises:
        StructuralError: If the source is structurally unusable
        UnsupportedFormatError: If no handler recognizes the source
    """
    config = config or get_config().extraction
    try:
        reader = _as_reader(source)
        head = _read_head(reader)
    except OSError as e:
        raise SourceReadError(f"Cannot read source: {e}", file_path=file_path)

    handler = get_file_format_processor().select_handler(head, format_hint, file_path)
    logger.debug(f"Using {handler.get_format_name()} handler for {file_path or '<stream>'}")

    metadata = handler.extract_metadata(reader, file_path=file_path, config=config)

    if config.compute_session_date:
        calculate_session_date(metadata, timezone_name=config.timezone)

    issues = sum(len(a.issues) for a in metadata.attachments)
    logger.info(f"Extracted {metadata.source_format} metadata from {file_path or '<stream>'}: "
                f"{len(metadata.raw_headers)} header records, {len(metadata.attachments)} blocks, "
                f"{issues} integrity issues")
    return metadata


def extract_metadata_from_path(path: FilePath, format_hint: FormatHint = None,
                               config: Optional[ExtractionConfig] = None) -> AstroMetadata:
    """
    Extract metadata from a file on disk.

    Raises:
        SourceReadError: If the file cannot be opened
    """
    file_path = os.fspath(path)
    try:
        f = open(file_path, 'rb')
    except OSError as e:
        raise SourceReadError(f"Cannot open file: {e}", file_path=file_path)
    with f:
        return extract_metadata(f, format_hint=format_hint, config=config, file_path=file_path)


def read_attachment_data(source: Union[ByteSource, FilePath], attachment: AttachmentInfo) -> bytes:
    """
    Return the decompressed bytes of one XISF data block.

    Args:
        source: The XISF bytes, file object or path the attachment came from
        attachment: Block description from AstroMetadata.attachments

    Raises:
        AttachmentReadError: If the block cannot be located, read or decoded
    """
    if isinstance(source, (str, os.PathLike)):
        try:
            with open(source, 'rb') as f:
                return read_block_data(f, attachment)
        except OSError as e:
            raise AttachmentReadError(f"Cannot open file: {e}", attachment_id=attachment.id,
                                      error_code="FILE_READ_ERROR")
    return read_block_data(_as_reader(source), attachment)
