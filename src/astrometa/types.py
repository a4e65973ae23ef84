"""
Type definitions for astrometa.

This module provides type aliases and protocols shared by the parsers.
"""

from typing import Protocol, Optional, Union, BinaryIO
from pathlib import Path

# Type aliases for common data structures
FilePath = Union[str, Path]
ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]
FormatHint = Optional[str]


class SeekableReader(Protocol):
    """Protocol for the binary readers the container parser works on."""

    def read(self, size: int = -1) -> bytes: ...
    def seek(self, offset: int, whence: int = 0) -> int: ...
    def tell(self) -> int: ...
