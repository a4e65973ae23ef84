"""
XISF container reader

This module provides the XISFReader class for reading the binary layout of
an XISF file: the 16-byte preamble, the XML header document and the
description of every data block the header references.

XISF (Extensible Image Serialization Format) files consist of:
- 8 bytes signature "XISF0100"
- 4 bytes little-endian header length, 4 bytes reserved
- XML header with metadata, image properties and data block locations
- Data blocks (attachments), optionally compressed and checksummed

Block bytes are only touched to verify checksums; decompression happens on
request through read_block_data().
"""

import base64
import binascii
import logging
import struct
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional

from ...config import ExtractionConfig
from ...core.services.checksum_calculator import BlockChecksumCalculator, get_checksum_calculator
from ...core.coercion import to_float, to_int, to_str
from ...exceptions import (
    AttachmentReadError, FormatError, ParseStage, SourceReadError,
)
from ...models.attachment import AttachmentInfo, IntegrityIssueKind, LocationMethod
from ...types import SeekableReader
from .codecs import CodecError, decompress_block, is_known_codec
from .property_tree import PropertyNode, parse_header_document
from .xisf_types import (
    XISFChecksum, XISFCompression, XISFGeometry, XISFLocation, XISFSampleFormat,
    parse_parameter_list,
)

logger = logging.getLogger(__name__)

XISF_SIGNATURE = b'XISF0100'
XISF_PREAMBLE_SIZE = 16
XISF_ROOT_TAG = 'xisf'


@dataclass
class XISFDocument:
    """Result of reading an XISF container header."""
    header_length: int
    root: PropertyNode
    attachments: List[AttachmentInfo] = field(default_factory=list)
    source_size: Optional[int] = None

    @property
    def data_offset(self) -> int:
        """First byte after the XML header."""
        return XISF_PREAMBLE_SIZE + self.header_length

    @property
    def version(self) -> Optional[str]:
        return self.root.get('version')

    @property
    def images(self) -> List[AttachmentInfo]:
        return [a for a in self.attachments if a.kind == 'Image']


class XISFReader:
    """
    Reads the header and data block layout of an XISF container.

    The preamble and the header document are validated strictly; any failure
    there raises FormatError and nothing is returned. Problems with
    individual data blocks are recorded on the block as integrity issues.
    """

    def __init__(self, reader: SeekableReader, file_path: Optional[str] = None,
                 config: Optional[ExtractionConfig] = None,
                 checksum_calculator: Optional[BlockChecksumCalculator] = None):
        """
        Initialize the reader.

        Args:
            reader: Seekable binary stream positioned anywhere
            file_path: Path used in error messages, if known
            config: Extraction settings (defaults apply when None)
            checksum_calculator: Digest service (global instance when None)
        """
        self.reader = reader
        self.file_path = file_path
        self.config = config or ExtractionConfig()
        self.checksum_calculator = checksum_calculator or get_checksum_calculator()

    def read(self) -> XISFDocument:
        """
        Read and validate the container header and describe its data blocks.

        Raises:
            FormatError: Invalid signature, header length or header document
            SourceReadError: If the stream cannot be read
        """
        try:
            self.reader.seek(0)
            header_length = self._read_preamble()
            document = self._read_exact(header_length, ParseStage.HEADER_LENGTH,
                                        "XML header")
            source_size = self._source_size()
        except OSError as e:
            raise SourceReadError(f"Cannot read XISF source: {e}", file_path=self.file_path)

        try:
            root = parse_header_document(document)
        except ET.ParseError as e:
            raise FormatError(f"Invalid XML in XISF header: {e}",
                              ParseStage.HEADER_DOCUMENT, file_path=self.file_path)
        if root.tag != XISF_ROOT_TAG:
            raise FormatError(f"Unexpected XISF root element: {root.tag}",
                              ParseStage.HEADER_DOCUMENT, file_path=self.file_path)

        xisf = XISFDocument(header_length=header_length, root=root, source_size=source_size)
        logger.debug(f"XML header size: {header_length} bytes, data offset: {xisf.data_offset}")

        xisf.attachments = self._describe_blocks(xisf)
        logger.debug(f"Described {len(xisf.attachments)} data blocks")
        return xisf

    def _read_exact(self, size: int, stage: ParseStage, what: str) -> bytes:
        data = self.reader.read(size)
        if len(data) != size:
            raise FormatError(f"Truncated XISF file: expected {size} bytes of {what}, got {len(data)}",
                              stage, file_path=self.file_path)
        return data

    def _read_preamble(self) -> int:
        signature = self._read_exact(len(XISF_SIGNATURE), ParseStage.SIGNATURE, "signature")
        if signature != XISF_SIGNATURE:
            raise FormatError(f"Invalid XISF signature: {signature!r}",
                              ParseStage.SIGNATURE, file_path=self.file_path)

        raw = self._read_exact(8, ParseStage.HEADER_LENGTH, "header length")
        header_length, reserved = struct.unpack('<II', raw)
        logger.debug(f"XISF header length: {header_length}, reserved: {reserved}")

        if header_length == 0:
            raise FormatError("XISF header length is zero",
                              ParseStage.HEADER_LENGTH, file_path=self.file_path)
        if header_length > self.config.max_header_bytes:
            raise FormatError(
                f"XISF header length {header_length} exceeds limit {self.config.max_header_bytes}",
                ParseStage.HEADER_LENGTH, file_path=self.file_path)
        return header_length

    def _source_size(self) -> Optional[int]:
        position = self.reader.tell()
        try:
            return self.reader.seek(0, 2)
        finally:
            self.reader.seek(position)

    # Data blocks

    def _describe_blocks(self, xisf: XISFDocument) -> List[AttachmentInfo]:
        attachments = []
        next_implicit: Optional[int] = xisf.data_offset

        for node in xisf.root.iter():
            if node is xisf.root:
                continue
            location = node.get('location')
            if location is None and node.tag != 'Image':
                continue

            attachment = self._describe_block(node, len(attachments))
            if location is None:
                next_implicit = self._place_implicit(attachment, next_implicit)
            else:
                self._place_located(attachment, node, location, xisf)

            self._check_bounds(attachment, xisf)
            self._verify_checksum(attachment)
            attachments.append(attachment)

        return attachments

    def _describe_block(self, node: PropertyNode, index: int) -> AttachmentInfo:
        attachment = AttachmentInfo(
            id=node.get('id') or f"{node.tag.lower()}{index}",
            kind=node.tag,
            color_space=to_str(node.get('colorSpace')),
        )

        geometry = node.get('geometry')
        if geometry is not None:
            attachment.geometry = geometry
            try:
                parsed = XISFGeometry(geometry)
                attachment.width = parsed.width
                attachment.height = parsed.height
                attachment.channels = parsed.channels
            except ValueError as e:
                attachment.add_issue(IntegrityIssueKind.INVALID_GEOMETRY, str(e))

        sample_format = node.get('sampleFormat')
        if sample_format is not None:
            attachment.sample_format = sample_format
            try:
                attachment.bits_per_sample = XISFSampleFormat.from_string(sample_format).bits_per_sample()
            except ValueError as e:
                attachment.add_issue(IntegrityIssueKind.INVALID_SAMPLE_FORMAT, str(e))
        bits = to_int(node.get('bitsPerSample'))
        if bits is not None:
            attachment.bits_per_sample = bits

        compression = node.get('compression')
        if compression is not None:
            try:
                parsed = XISFCompression.parse(compression)
                attachment.compression_codec = parsed.codec
                attachment.uncompressed_size = parsed.uncompressed_size
                attachment.item_size = parsed.item_size
                if not is_known_codec(parsed.codec):
                    attachment.add_issue(IntegrityIssueKind.UNKNOWN_CODEC,
                                         f"Unsupported compression codec: {parsed.codec}")
            except ValueError as e:
                attachment.add_issue(IntegrityIssueKind.INVALID_COMPRESSION, str(e))
            attachment.compression_parameters = parse_parameter_list(node.get('compressionParameters'))

        checksum = node.get('checksum')
        if checksum is not None:
            try:
                parsed = XISFChecksum.parse(checksum, node.get('checksumType'))
                attachment.checksum_algorithm = parsed.algorithm
                attachment.checksum_digest = parsed.digest
            except ValueError as e:
                attachment.add_issue(IntegrityIssueKind.UNKNOWN_CHECKSUM_ALGORITHM, str(e))

        self._describe_resolution(attachment, node)
        return attachment

    def _describe_resolution(self, attachment: AttachmentInfo, node: PropertyNode) -> None:
        resolution = node.children_by_tag('Resolution')
        if resolution:
            element = resolution[0]
            attachment.resolution_x = to_float(element.get('horizontal'))
            attachment.resolution_y = to_float(element.get('vertical'))
            attachment.resolution_unit = to_str(element.get('unit'))
        else:
            attachment.resolution_x = to_float(node.get('xResolution'))
            attachment.resolution_y = to_float(node.get('yResolution'))
            attachment.resolution_unit = to_str(node.get('resolutionUnit'))

    def _place_implicit(self, attachment: AttachmentInfo, offset: Optional[int]) -> Optional[int]:
        """Locate a block stored immediately after the header; return the next free offset."""
        attachment.location_method = LocationMethod.IMPLICIT
        attachment.offset = offset
        if offset is None:
            attachment.add_issue(IntegrityIssueKind.UNRESOLVED_LOCATION,
                                 "Position follows a block of unknown size")
            return None

        if attachment.is_compressed:
            attachment.add_issue(IntegrityIssueKind.UNRESOLVED_LOCATION,
                                 "Compressed block without explicit location has no known size")
            return None

        try:
            geometry = XISFGeometry(attachment.geometry or '')
            sample_format = XISFSampleFormat.from_string(attachment.sample_format or '')
        except ValueError:
            attachment.add_issue(IntegrityIssueKind.UNRESOLVED_LOCATION,
                                 "Block size cannot be derived from geometry and sample format")
            return None

        attachment.length = geometry.block_size(sample_format)
        return offset + attachment.length

    def _place_located(self, attachment: AttachmentInfo, node: PropertyNode,
                       location: str, xisf: XISFDocument) -> None:
        try:
            parsed = XISFLocation.parse(location)
        except ValueError as e:
            attachment.add_issue(IntegrityIssueKind.INVALID_LOCATION, str(e))
            return

        attachment.location_method = LocationMethod(parsed.method)
        if parsed.method == 'attachment':
            attachment.offset = parsed.position
            attachment.length = parsed.size
            if parsed.position < xisf.data_offset:
                attachment.add_issue(IntegrityIssueKind.INVALID_LOCATION,
                                     f"Block at {parsed.position} overlaps the header")
        elif parsed.method == 'url':
            attachment.url = parsed.url
        elif parsed.method == 'inline':
            attachment.inline_encoding = parsed.encoding
            self._decode_text_block(attachment, node.text, parsed.encoding)
        else:
            data = node.children_by_tag('Data')
            if not data:
                attachment.add_issue(IntegrityIssueKind.INVALID_LOCATION,
                                     "Embedded block has no Data element")
                return
            encoding = (data[0].get('encoding') or 'base64').lower()
            attachment.inline_encoding = encoding
            self._decode_text_block(attachment, data[0].text, encoding)

    def _decode_text_block(self, attachment: AttachmentInfo, text: Optional[str],
                           encoding: Optional[str]) -> None:
        if not self.config.read_inline_data:
            return
        compact = ''.join((text or '').split())
        try:
            if encoding == 'hex':
                data = bytes.fromhex(compact)
            elif encoding == 'base64':
                data = base64.b64decode(compact, validate=True)
            else:
                raise ValueError(f"Unknown encoding: {encoding}")
        except (ValueError, binascii.Error) as e:
            attachment.add_issue(IntegrityIssueKind.INVALID_LOCATION, f"Cannot decode block text: {e}")
            return
        attachment.inline_data = data
        attachment.length = len(data)

    def _check_bounds(self, attachment: AttachmentInfo, xisf: XISFDocument) -> None:
        if attachment.location_method not in (LocationMethod.ATTACHMENT, LocationMethod.IMPLICIT):
            return
        if attachment.offset is None or attachment.length is None or xisf.source_size is None:
            return
        end = attachment.offset + attachment.length
        if end > xisf.source_size:
            attachment.add_issue(IntegrityIssueKind.OUT_OF_BOUNDS,
                                 f"Block ends at {end}, beyond end of file ({xisf.source_size})")

    def _is_readable(self, attachment: AttachmentInfo) -> bool:
        if attachment.inline_data is not None:
            return True
        return (attachment.location_method in (LocationMethod.ATTACHMENT, LocationMethod.IMPLICIT)
                and attachment.offset is not None
                and attachment.length is not None
                and not attachment.issues_of(IntegrityIssueKind.OUT_OF_BOUNDS))

    def _verify_checksum(self, attachment: AttachmentInfo) -> None:
        if attachment.checksum_algorithm is None:
            return
        if not self.checksum_calculator.is_supported(attachment.checksum_algorithm):
            attachment.add_issue(IntegrityIssueKind.UNKNOWN_CHECKSUM_ALGORITHM,
                                 f"Unsupported checksum algorithm: {attachment.checksum_algorithm}")
            return
        if not self.config.verify_checksums or not self._is_readable(attachment):
            return

        try:
            if attachment.inline_data is not None:
                digest = self.checksum_calculator.calculate_bytes(
                    attachment.inline_data, attachment.checksum_algorithm)
            else:
                digest = self.checksum_calculator.calculate_range(
                    self.reader, attachment.offset, attachment.length, attachment.checksum_algorithm)
        except AttachmentReadError as e:
            attachment.add_issue(IntegrityIssueKind.OUT_OF_BOUNDS, e.message)
            return

        attachment.checksum_valid = digest == attachment.checksum_digest
        if not attachment.checksum_valid:
            attachment.add_issue(
                IntegrityIssueKind.CHECKSUM_MISMATCH,
                f"{attachment.checksum_algorithm} digest {digest} does not match {attachment.checksum_digest}")


def read_stored_block(reader: SeekableReader, attachment: AttachmentInfo) -> bytes:
    """
    Return the stored (possibly compressed) bytes of a data block.

    Raises:
        AttachmentReadError: If the block location cannot be read
    """
    if attachment.inline_data is not None:
        return attachment.inline_data

    method = attachment.location_method
    if method not in (LocationMethod.ATTACHMENT, LocationMethod.IMPLICIT):
        raise AttachmentReadError(
            f"Block {attachment.id} is not stored in the file ({method.value if method else 'no location'})",
            attachment_id=attachment.id, error_code="BLOCK_NOT_LOCAL")
    if attachment.offset is None or attachment.length is None:
        raise AttachmentReadError(f"Block {attachment.id} has no resolvable location",
                                  attachment_id=attachment.id, error_code="BLOCK_UNRESOLVED")

    try:
        reader.seek(attachment.offset)
        data = reader.read(attachment.length)
    except OSError as e:
        raise AttachmentReadError(f"Cannot read block {attachment.id}: {e}",
                                  attachment_id=attachment.id, error_code="BLOCK_READ_ERROR")
    if len(data) != attachment.length:
        raise AttachmentReadError(
            f"Block {attachment.id} truncated: got {len(data)} bytes, expected {attachment.length}",
            attachment_id=attachment.id, error_code="BLOCK_TRUNCATED")
    return data


def read_block_data(reader: SeekableReader, attachment: AttachmentInfo) -> bytes:
    """
    Return the decompressed, unshuffled bytes of a data block.

    Raises:
        AttachmentReadError: If the block cannot be located, read or decoded
    """
    data = read_stored_block(reader, attachment)
    if not attachment.is_compressed:
        return data

    item_size = attachment.item_size
    if item_size is None and attachment.sample_format:
        try:
            item_size = XISFSampleFormat.from_string(attachment.sample_format).size()
        except ValueError:
            item_size = None

    try:
        return decompress_block(data, attachment.compression_codec,
                                attachment.uncompressed_size, item_size)
    except CodecError as e:
        raise AttachmentReadError(f"Block {attachment.id}: {e}",
                                  attachment_id=attachment.id, error_code="BLOCK_DECODE_ERROR")
