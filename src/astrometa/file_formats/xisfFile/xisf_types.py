"""
XISF data types and enums.

This module contains the value types used when describing XISF header
elements: sample formats, geometry, block locations, compression and
checksum attributes.
"""

from enum import Enum
from typing import Dict, List, NamedTuple, Optional

import numpy as np


class XISFSampleFormat(Enum):
    """Enumeration of XISF sample formats with conversion utilities."""

    UINT8 = "UInt8"
    UINT16 = "UInt16"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    INT8 = "Int8"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    COMPLEX32 = "Complex32"
    COMPLEX64 = "Complex64"

    def to_numpy_dtype(self) -> np.dtype:
        """Little-endian NumPy dtype for this sample format."""
        dtype_map = {
            XISFSampleFormat.UINT8: '<u1',
            XISFSampleFormat.UINT16: '<u2',
            XISFSampleFormat.UINT32: '<u4',
            XISFSampleFormat.UINT64: '<u8',
            XISFSampleFormat.INT8: '<i1',
            XISFSampleFormat.INT16: '<i2',
            XISFSampleFormat.INT32: '<i4',
            XISFSampleFormat.INT64: '<i8',
            XISFSampleFormat.FLOAT32: '<f4',
            XISFSampleFormat.FLOAT64: '<f8',
            XISFSampleFormat.COMPLEX32: '<c8',   # two Float32
            XISFSampleFormat.COMPLEX64: '<c16',  # two Float64
        }
        return np.dtype(dtype_map[self])

    def size(self) -> int:
        """Return the size in bytes for this sample format."""
        return self.to_numpy_dtype().itemsize

    def bits_per_sample(self) -> int:
        return self.size() * 8

    @classmethod
    def from_string(cls, value: str) -> 'XISFSampleFormat':
        """Create XISFSampleFormat from string value."""
        for format_type in cls:
            if format_type.value == value:
                return format_type
        raise ValueError(f"Unknown sample format: {value}")


class XISFGeometry:
    """Represents XISF image geometry parsed from colon-separated format."""

    def __init__(self, geometry_str: str):
        """
        Initialize from geometry string.

        Args:
            geometry_str: Colon-separated dimensions like "1024:1024" or "1024:1024:3"

        Raises:
            ValueError: If any dimension is not a positive integer
        """
        self.geometry_str = geometry_str
        self.dimensions = [int(x) for x in geometry_str.split(':')]

        if len(self.dimensions) < 2:
            raise ValueError(f"Invalid geometry: {geometry_str} (need at least width:height)")
        if any(dim <= 0 for dim in self.dimensions):
            raise ValueError(f"Invalid geometry: {geometry_str} (dimensions must be positive)")

    @property
    def width(self) -> int:
        return self.dimensions[0]

    @property
    def height(self) -> int:
        return self.dimensions[1]

    @property
    def channels(self) -> int:
        """Number of channels (third dimension, default 1)."""
        return self.dimensions[2] if len(self.dimensions) > 2 else 1

    @property
    def total_samples(self) -> int:
        """Total number of samples across all dimensions and channels."""
        result = 1
        for dim in self.dimensions:
            result *= dim
        return result

    def block_size(self, sample_format: XISFSampleFormat) -> int:
        """Uncompressed size in bytes of a block with this geometry."""
        return self.total_samples * sample_format.size()

    def __str__(self) -> str:
        return f"XISFGeometry({self.geometry_str})"

    def __repr__(self) -> str:
        return (f"XISFGeometry(width={self.width}, height={self.height}, "
                f"channels={self.channels}, total_samples={self.total_samples})")


class XISFLocation(NamedTuple):
    """Parsed ``location`` attribute of a data block element."""
    method: str
    position: Optional[int] = None
    size: Optional[int] = None
    encoding: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> 'XISFLocation':
        """
        Parse "attachment:<position>:<size>", "inline:<encoding>",
        "embedded" or "url(<address>)".

        Raises:
            ValueError: If the attribute is malformed
        """
        text = value.strip()
        if text.startswith('url(') and text.endswith(')'):
            return cls('url', url=text[4:-1].strip())

        parts = text.split(':')
        method = parts[0].strip().lower()
        if method == 'attachment':
            if len(parts) != 3:
                raise ValueError(f"Invalid attachment location: {value}")
            position, size = int(parts[1]), int(parts[2])
            if position < 0 or size < 0:
                raise ValueError(f"Invalid attachment location: {value}")
            return cls('attachment', position=position, size=size)
        if method == 'inline':
            if len(parts) != 2 or parts[1].strip().lower() not in ('base64', 'hex'):
                raise ValueError(f"Invalid inline location: {value}")
            return cls('inline', encoding=parts[1].strip().lower())
        if method == 'embedded' and len(parts) == 1:
            return cls('embedded')
        raise ValueError(f"Unknown location: {value}")


class XISFCompression(NamedTuple):
    """Parsed ``compression`` attribute: codec, uncompressed size, item size."""
    codec: str
    uncompressed_size: int
    item_size: Optional[int] = None

    @classmethod
    def parse(cls, value: str) -> 'XISFCompression':
        """
        Parse "<codec>:<uncompressed size>[:<item size>]".

        Raises:
            ValueError: If the attribute is malformed
        """
        parts = value.strip().split(':')
        if len(parts) not in (2, 3) or not parts[0]:
            raise ValueError(f"Invalid compression: {value}")
        uncompressed_size = int(parts[1])
        item_size = int(parts[2]) if len(parts) == 3 else None
        if uncompressed_size < 0 or (item_size is not None and item_size < 1):
            raise ValueError(f"Invalid compression: {value}")
        return cls(parts[0].strip().lower(), uncompressed_size, item_size)


class XISFChecksum(NamedTuple):
    """Parsed ``checksum`` attribute."""
    algorithm: str
    digest: str

    @classmethod
    def parse(cls, value: str, legacy_type: Optional[str] = None) -> 'XISFChecksum':
        """
        Parse "<algorithm>:<hex digest>", or a bare digest with the algorithm
        given separately by a ``checksumType`` attribute.

        Raises:
            ValueError: If the attribute is malformed
        """
        text = value.strip()
        if ':' in text:
            algorithm, digest = text.split(':', 1)
        elif legacy_type:
            algorithm, digest = legacy_type, text
        else:
            raise ValueError(f"Invalid checksum: {value}")
        algorithm, digest = algorithm.strip().lower(), digest.strip().lower()
        if not algorithm or not digest:
            raise ValueError(f"Invalid checksum: {value}")
        return cls(algorithm, digest)


def parse_parameter_list(value: Optional[str]) -> Dict[str, str]:
    """Parse "k=v;k=v" attribute lists; entries without '=' are skipped."""
    parameters: Dict[str, str] = {}
    if not value:
        return parameters
    for pair in value.split(';'):
        key, sep, item = pair.partition('=')
        if sep and key.strip():
            parameters[key.strip()] = item.strip()
    return parameters


def parse_float_list(value: str) -> Optional[List[float]]:
    """Parse colon-separated floats such as "0.5:0.5:0.5"; None if any is invalid."""
    try:
        return [float(item) for item in value.split(':')]
    except ValueError:
        return None
