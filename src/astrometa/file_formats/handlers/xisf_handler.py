"""
XISF file format handler for astrometa.

Reads the XISF container header and translates its FITSKeyword and Property
elements into the unified metadata model.
"""

import logging
from typing import List, Optional

from ...config import ExtractionConfig
from ...core.coercion import to_int, to_str, to_timestamp
from ...core.keyword_map import (
    FITS_KEYWORD_MAP, XISF_PROPERTY_MAP, apply_mappings, finalize_metadata,
)
from ...models.header_store import HeaderStore
from ...models.metadata import AstroMetadata, ColorManagement, DisplayFunction, XisfMetadata
from ...types import SeekableReader
from .. import BaseFileFormatHandler
from ..fits_header import COMMENTARY_KEYWORDS
from ..xisfFile.property_tree import PropertyNode
from ..xisfFile.xisf_reader import XISF_SIGNATURE, XISFDocument, XISFReader
from ..xisfFile.xisf_types import parse_float_list

logger = logging.getLogger(__name__)

# Property ids under "XISF:" describe the file rather than the observation
CREATOR_PROPERTY = 'XISF.CREATORAPPLICATION'
CREATION_TIME_PROPERTY = 'XISF.CREATIONTIME'
BLOCK_ALIGNMENT_PROPERTY = 'XISF.BLOCKALIGNMENTSIZE'


def property_key(property_id: str) -> str:
    """Header store key for a Property id: "Instrument:Camera:Name" -> "INSTRUMENT.CAMERA.NAME"."""
    return property_id.strip().replace(':', '.').upper()


class XisfFileHandler(BaseFileFormatHandler):
    """Handler for XISF format files."""

    def _get_supported_extensions(self) -> List[str]:
        """XISF file extensions."""
        return ['.xisf']

    def _get_signature(self) -> bytes:
        return XISF_SIGNATURE

    def get_format_name(self) -> str:
        """Format name for XISF files."""
        return "XISF"

    def extract_metadata(self, reader: SeekableReader, file_path: Optional[str] = None,
                         config: Optional[ExtractionConfig] = None) -> AstroMetadata:
        """
        Read the XISF header and build the metadata model.

        Args:
            reader: Seekable binary stream
            file_path: Path used in error messages, if known
            config: Extraction settings

        Returns:
            Populated AstroMetadata, including a description of every data block

        Raises:
            FormatError: Invalid signature, header length or header document
        """
        xisf = XISFReader(reader, file_path=file_path, config=config).read()
        metadata = self.build_metadata(xisf)
        logger.debug(f"Successfully read XISF header: {file_path or '<stream>'}")
        return metadata

    def build_metadata(self, xisf: XISFDocument) -> AstroMetadata:
        store = HeaderStore()
        self._collect_fits_keywords(xisf.root, store)
        self._collect_properties(xisf.root, store)

        metadata = AstroMetadata(attachments=list(xisf.attachments))
        apply_mappings(store, metadata, FITS_KEYWORD_MAP)
        apply_mappings(store, metadata, XISF_PROPERTY_MAP)

        metadata.xisf = XisfMetadata(
            version=xisf.version,
            creator=to_str(store.get(CREATOR_PROPERTY)),
            creation_time=to_timestamp(store.get(CREATION_TIME_PROPERTY)),
            block_alignment=to_int(store.get(BLOCK_ALIGNMENT_PROPERTY)),
        )

        self._apply_image_attributes(xisf, metadata)
        finalize_metadata(store, metadata, "XISF")

        if metadata.xisf.creator and (metadata.environment is None
                                      or metadata.environment.software_version is None):
            metadata.section('environment', create=True).software_version = metadata.xisf.creator
        return metadata

    @staticmethod
    def _collect_fits_keywords(root: PropertyNode, store: HeaderStore) -> None:
        for node in root.iter('FITSKeyword'):
            name = node.get('name')
            if not name or not name.strip():
                continue
            value = node.get('value', '')
            if name.strip().upper() in COMMENTARY_KEYWORDS:
                store.append(name, to_str(value) or node.get('comment', ''))
            else:
                # Stored unquoted, as for records read from a FITS header
                store.set(name, to_str(value) or '')

    @staticmethod
    def _collect_properties(root: PropertyNode, store: HeaderStore) -> None:
        for node in root.iter('Property'):
            property_id = node.get('id')
            if not property_id:
                continue
            if node.get('location') is not None:
                # Value lives in a data block, described as an attachment
                continue
            value = node.get('value')
            if value is None:
                value = node.stripped_text
            if value is not None:
                store.set(property_key(property_id), value)

    def _apply_image_attributes(self, xisf: XISFDocument, metadata: AstroMetadata) -> None:
        image_nodes = xisf.root.find_all('Image')
        images = xisf.images
        if images:
            first = images[0]
            if first.width > 0 and first.height > 0:
                metadata.detector.width = first.width
                metadata.detector.height = first.height

        if image_nodes and metadata.exposure.frame_type is None:
            metadata.exposure.frame_type = to_str(image_nodes[0].get('imageType'))

        color = ColorManagement(color_space=images[0].color_space if images else None)
        color.icc_profile = next((a for a in xisf.attachments if a.kind == 'ICCProfile'), None)
        if image_nodes:
            color.display_function = self._display_function(image_nodes[0])
        if color.color_space or color.icc_profile or color.display_function:
            metadata.color_management = color

    @staticmethod
    def _display_function(image: PropertyNode) -> Optional[DisplayFunction]:
        nodes = image.children_by_tag('DisplayFunction')
        if not nodes:
            return None
        node = nodes[0]
        function = DisplayFunction(function_type=to_str(node.get('name')))
        for name, value in node.attributes.items():
            if name == 'name':
                continue
            values = parse_float_list(value)
            if values is None:
                logger.debug(f"Ignoring display function parameter {name}={value!r}")
                continue
            function.parameters[name] = tuple(values)
        return function
