"""
Block checksum calculation service for astrometa.

Computes XISF block digests with hashlib, streaming the block from the
source so large attachments are never held in memory at once.
"""

import hashlib
import logging
from typing import Optional

from ...types import SeekableReader
from ...exceptions import AttachmentReadError, SourceReadError

logger = logging.getLogger(__name__)

# XISF algorithm names to hashlib constructors
SUPPORTED_ALGORITHMS = {
    'sha-1': 'sha1',
    'sha1': 'sha1',
    'sha-256': 'sha256',
    'sha256': 'sha256',
    'sha-512': 'sha512',
    'sha512': 'sha512',
    'sha3-256': 'sha3_256',
    'sha3-512': 'sha3_512',
}


class BlockChecksumCalculator:
    """
    Service for calculating data block digests.

    Single responsibility: digest calculation for byte ranges and buffers.
    """

    def __init__(self, buffer_size: int = 65536):
        """
        Initialize checksum calculator.

        Args:
            buffer_size: Size of read buffer in bytes (default 64 KiB)
        """
        self.buffer_size = buffer_size

    @staticmethod
    def hashlib_name(algorithm: str) -> Optional[str]:
        """Map an XISF algorithm name to a hashlib name, None if unsupported."""
        return SUPPORTED_ALGORITHMS.get(algorithm.strip().lower())

    def is_supported(self, algorithm: str) -> bool:
        return self.hashlib_name(algorithm) is not None

    def _new_hasher(self, algorithm: str):
        name = self.hashlib_name(algorithm)
        if name is None:
            raise ValueError(f"Unsupported checksum algorithm: {algorithm}")
        return hashlib.new(name)

    def calculate_bytes(self, data: bytes, algorithm: str) -> str:
        """
        Calculate the hex digest of an in-memory buffer.

        Raises:
            ValueError: If the algorithm is not supported
        """
        hasher = self._new_hasher(algorithm)
        hasher.update(data)
        return hasher.hexdigest()

    def calculate_range(self, reader: SeekableReader, offset: int, length: int,
                        algorithm: str) -> str:
        """
        Calculate the hex digest of ``length`` bytes starting at ``offset``.

        Args:
            reader: Seekable binary source
            offset: Absolute position of the block
            length: Size of the block in bytes
            algorithm: XISF algorithm name (e.g. "sha-1")

        Returns:
            Hex digest string

        Raises:
            ValueError: If the algorithm is not supported
            AttachmentReadError: If the source ends before the block does
            SourceReadError: If the source cannot be read
        """
        hasher = self._new_hasher(algorithm)
        remaining = length
        try:
            reader.seek(offset)
            while remaining > 0:
                chunk = reader.read(min(self.buffer_size, remaining))
                if not chunk:
                    raise AttachmentReadError(
                        f"Block at {offset} ends {remaining} bytes early",
                        error_code="BLOCK_TRUNCATED"
                    )
                hasher.update(chunk)
                remaining -= len(chunk)
        except OSError as e:
            logger.error(f"Error reading block at {offset} for checksum calculation")
            raise SourceReadError(f"Cannot read block for checksum calculation: {e}")
        return hasher.hexdigest()


# Global instance for convenience
_global_calculator: Optional[BlockChecksumCalculator] = None


def get_checksum_calculator() -> BlockChecksumCalculator:
    """
    Get the global checksum calculator instance.

    Returns:
        Singleton BlockChecksumCalculator instance
    """
    global _global_calculator
    if _global_calculator is None:
        _global_calculator = BlockChecksumCalculator()
    return _global_calculator


def reset_checksum_calculator() -> None:
    """Reset the global calculator (mainly for testing)."""
    global _global_calculator
    _global_calculator = None
