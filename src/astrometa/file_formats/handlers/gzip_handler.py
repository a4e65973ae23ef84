"""
GZIP archive handler for astrometa.

Handles externally gzip-compressed FITS files (e.g. .fits.gz). The stream is
decompressed on the fly and only as far as the end of the primary header.
"""

import gzip
import logging
import zlib
from typing import List, Optional

from ...config import ExtractionConfig
from ...exceptions import FormatError, ParseStage
from ...models.metadata import AstroMetadata
from ...types import SeekableReader
from .. import BaseFileFormatHandler
from .fits_handler import FitsFileHandler

logger = logging.getLogger(__name__)

GZIP_MAGIC = b'\x1f\x8b'


class GzipFileHandler(BaseFileFormatHandler):
    """Handler for gzip-compressed FITS files (.fits.gz)."""

    def __init__(self, fits_handler: Optional[FitsFileHandler] = None):
        super().__init__()
        self.fits_handler = fits_handler or FitsFileHandler()

    def _get_supported_extensions(self) -> List[str]:
        return ['.fits.gz', '.fit.gz', '.fts.gz', '.gz']

    def _get_signature(self) -> bytes:
        return GZIP_MAGIC

    def get_format_name(self) -> str:
        return "GZIP"

    def extract_metadata(self, reader: SeekableReader, file_path: Optional[str] = None,
                         config: Optional[ExtractionConfig] = None) -> AstroMetadata:
        """
        Decompress the gzip stream and read the FITS header inside it.

        Raises:
            FormatError: If the stream is not valid gzip or does not wrap FITS
        """
        logger.debug(f"Reading gzip-wrapped FITS: {file_path or '<stream>'}")
        try:
            with gzip.GzipFile(fileobj=reader, mode='rb') as stream:
                # Validates the gzip member header before any FITS parsing
                stream.peek(1)
                return self.fits_handler.extract_metadata(stream, file_path=file_path, config=config)
        except gzip.BadGzipFile as e:
            raise FormatError(f"Invalid gzip stream: {e}",
                              ParseStage.SIGNATURE, file_path=file_path)
        except (EOFError, zlib.error) as e:
            raise FormatError(f"Corrupt gzip stream: {e}",
                              ParseStage.HEADER_RECORDS, file_path=file_path)
