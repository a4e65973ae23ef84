"""
FITS file format handler for astrometa.

Handles native FITS files - the primary format for astronomical images.
"""

import logging
from typing import List, Optional

from ...config import ExtractionConfig
from ...core.coercion import to_int
from ...core.keyword_map import FITS_KEYWORD_MAP, apply_mappings, finalize_metadata
from ...exceptions import FormatError, ParseStage
from ...models.header_store import HeaderStore
from ...models.metadata import AstroMetadata
from ...types import SeekableReader
from .. import BaseFileFormatHandler
from ..fits_header import FITS_SIGNATURE, read_header_records

logger = logging.getLogger(__name__)


class FitsFileHandler(BaseFileFormatHandler):
    """Handler for FITS format files."""

    def _get_supported_extensions(self) -> List[str]:
        """FITS file extensions."""
        return ['.fits', '.fit', '.fts']

    def _get_signature(self) -> bytes:
        return FITS_SIGNATURE

    def get_format_name(self) -> str:
        """Format name for FITS files."""
        return "FITS"

    def extract_metadata(self, reader: SeekableReader, file_path: Optional[str] = None,
                         config: Optional[ExtractionConfig] = None) -> AstroMetadata:
        """
        Read the primary header and map it onto the metadata model.

        Args:
            reader: Binary stream positioned at the start of the FITS data
            file_path: Path used in error messages, if known
            config: Extraction settings

        Returns:
            Populated AstroMetadata

        Raises:
            FormatError: If the header is malformed or lacks image dimensions
        """
        config = config or ExtractionConfig()
        store = read_header_records(reader, file_path=file_path,
                                    max_header_bytes=config.max_header_bytes)
        self._validate_dimensions(store, file_path)
        metadata = self.build_metadata(store)
        logger.debug(f"Successfully read FITS header: {file_path or '<stream>'}")
        return metadata

    @staticmethod
    def build_metadata(store: HeaderStore) -> AstroMetadata:
        metadata = AstroMetadata()
        apply_mappings(store, metadata, FITS_KEYWORD_MAP)
        return finalize_metadata(store, metadata, "FITS")

    @staticmethod
    def _validate_dimensions(store: HeaderStore, file_path: Optional[str]) -> None:
        for key in ('NAXIS1', 'NAXIS2'):
            value = to_int(store.get(key))
            if value is None or value <= 0:
                raise FormatError(f"FITS header has no usable {key} ({store.get(key)!r})",
                                  ParseStage.DIMENSIONS, file_path=file_path)
