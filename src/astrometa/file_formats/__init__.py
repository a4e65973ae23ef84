"""
File format processing abstractions for astrometa.

This module provides protocol definitions and the processor that selects a
handler for a byte source, either by sniffing its signature or from a
caller-supplied format hint.
"""

import os
from abc import ABC, abstractmethod
from typing import Protocol, Optional, Dict

from ..config import ExtractionConfig
from ..exceptions import UnsupportedFormatError
from ..models.metadata import AstroMetadata
from ..types import SeekableReader

# Bytes read from the start of a source for signature sniffing
SNIFF_SIZE = 16


class FileFormatHandler(Protocol):
    """Protocol for file format handlers following Open/Closed Principle."""

    def can_handle(self, head: bytes) -> bool:
        """
        Check if this handler recognizes the leading bytes of a source.

        Args:
            head: First bytes of the source (at least SNIFF_SIZE when available)

        Returns:
            True if this handler can process the source
        """
        ...

    def matches_hint(self, hint: str) -> bool:
        """
        Check if a caller-supplied format hint names this handler.

        Args:
            hint: Format name or file extension (e.g. "XISF", ".fits.gz")
        """
        ...

    def get_supported_extensions(self) -> list[str]:
        """
        Get list of file extensions supported by this handler.

        Returns:
            List of supported file extensions (with dots, e.g., ['.fits', '.fit'])
        """
        ...

    def get_format_name(self) -> str:
        """
        Get human-readable name of the format handled.

        Returns:
            Format name (e.g., "FITS", "GZIP", "XISF")
        """
        ...

    def extract_metadata(self, reader: SeekableReader, file_path: Optional[str] = None,
                         config: Optional[ExtractionConfig] = None) -> AstroMetadata:
        """
        Parse the source into an AstroMetadata instance.

        Raises:
            StructuralError: If the source is structurally unusable
        """
        ...


class BaseFileFormatHandler(ABC):
    """Base class for file format handlers with common functionality."""

    def __init__(self):
        self._supported_extensions = self._get_supported_extensions()

    @abstractmethod
    def _get_supported_extensions(self) -> list[str]:
        """Return list of supported file extensions."""
        pass

    @abstractmethod
    def _get_signature(self) -> bytes:
        """Return the leading bytes that identify the format."""
        pass

    @abstractmethod
    def get_format_name(self) -> str:
        """Return human-readable format name."""
        pass

    @abstractmethod
    def extract_metadata(self, reader: SeekableReader, file_path: Optional[str] = None,
                         config: Optional[ExtractionConfig] = None) -> AstroMetadata:
        """Parse the source into an AstroMetadata instance."""
        pass

    def can_handle(self, head: bytes) -> bool:
        """Check if the source starts with this format's signature."""
        return head.startswith(self._get_signature())

    def matches_hint(self, hint: str) -> bool:
        """Match a format name, an extension, or a file name by extension."""
        hint = hint.strip().lower()
        if hint == self.get_format_name().lower():
            return True
        if not hint.startswith('.') and '.' not in hint:
            hint = '.' + hint
        return any(hint.endswith(ext.lower()) for ext in self._supported_extensions)

    def get_supported_extensions(self) -> list[str]:
        """Get list of supported extensions."""
        return self._supported_extensions.copy()


class FileFormatProcessor:
    """
    Central processor for handling multiple file formats.

    Follows Open/Closed Principle - can be extended with new handlers
    without modifying existing code.
    """

    def __init__(self):
        self._handlers: list[FileFormatHandler] = []
        self._register_default_handlers()

    def _register_default_handlers(self):
        """Register default file format handlers."""
        # Import handlers here to avoid circular imports
        from .handlers.fits_handler import FitsFileHandler
        from .handlers.gzip_handler import GzipFileHandler
        from .handlers.xisf_handler import XisfFileHandler

        self.register_handler(XisfFileHandler())
        self.register_handler(FitsFileHandler())
        self.register_handler(GzipFileHandler())

    def register_handler(self, handler: FileFormatHandler) -> None:
        """
        Register a new file format handler.

        Args:
            handler: File format handler to register
        """
        self._handlers.append(handler)

    def get_supported_formats(self) -> Dict[str, list[str]]:
        """
        Get dictionary of all supported formats and their extensions.

        Returns:
            Dict mapping format names to lists of supported extensions
        """
        formats = {}
        for handler in self._handlers:
            formats[handler.get_format_name()] = handler.get_supported_extensions()
        return formats

    def find_handler(self, head: bytes) -> Optional[FileFormatHandler]:
        """
        Find the handler whose signature matches the leading bytes.

        Args:
            head: First bytes of the source

        Returns:
            Handler that can process the source, or None if no handler found
        """
        for handler in self._handlers:
            if handler.can_handle(head):
                return handler
        return None

    def find_handler_for_hint(self, hint: str) -> Optional[FileFormatHandler]:
        """
        Find the handler named by a format hint or file extension.

        Args:
            hint: Format name ("FITS"), extension ("fit", ".xisf") or file name

        Returns:
            Matching handler, or None if no handler found
        """
        for handler in self._handlers:
            if handler.matches_hint(hint):
                return handler
        return None

    def detect_format(self, head: bytes) -> Optional[str]:
        """Return the format name recognized from the leading bytes, if any."""
        handler = self.find_handler(head)
        return handler.get_format_name() if handler else None

    def select_handler(self, head: bytes, format_hint: Optional[str] = None,
                       file_path: Optional[str] = None) -> FileFormatHandler:
        """
        Choose a handler: explicit hint first, then signature, then extension.

        Raises:
            UnsupportedFormatError: If no handler matches
        """
        if format_hint:
            handler = self.find_handler_for_hint(format_hint)
            if handler is None:
                raise UnsupportedFormatError(f"Unknown format hint: {format_hint}",
                                             file_path=file_path)
            return handler

        handler = self.find_handler(head)
        if handler is None and file_path:
            handler = self.find_handler_for_hint(os.path.basename(file_path))
        if handler is None:
            raise UnsupportedFormatError(f"Unrecognized file signature: {head[:8]!r}",
                                         file_path=file_path)
        return handler


# Global instance for convenience
_global_processor: Optional[FileFormatProcessor] = None


def get_file_format_processor() -> FileFormatProcessor:
    """
    Get the global file format processor instance.

    Returns:
        Singleton FileFormatProcessor instance
    """
    global _global_processor
    if _global_processor is None:
        _global_processor = FileFormatProcessor()
    return _global_processor


def reset_file_format_processor() -> None:
    """Reset the global processor (mainly for testing)."""
    global _global_processor
    _global_processor = None
