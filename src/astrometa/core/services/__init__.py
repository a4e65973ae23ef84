"""Service modules for astrometa core functionality."""

from .checksum_calculator import BlockChecksumCalculator, get_checksum_calculator

__all__ = ['BlockChecksumCalculator', 'get_checksum_calculator']
