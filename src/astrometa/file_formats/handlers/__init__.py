"""Handler implementations for file format processing."""

from .fits_handler import FitsFileHandler
from .gzip_handler import GzipFileHandler
from .xisf_handler import XisfFileHandler

__all__ = ['FitsFileHandler', 'GzipFileHandler', 'XisfFileHandler']
