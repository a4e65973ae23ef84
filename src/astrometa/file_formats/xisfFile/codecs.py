"""
Decompression adapters for XISF data blocks.

Codecs are "zlib", "lz4" and "lz4hc", each optionally suffixed with "+sh"
when the block was byte-shuffled before compression.
"""

import logging
import zlib
from typing import Optional

import lz4.block
import numpy as np

logger = logging.getLogger(__name__)

SHUFFLE_SUFFIX = '+sh'
KNOWN_CODECS = ('zlib', 'lz4', 'lz4hc')


class CodecError(ValueError):
    """Raised when a block cannot be decompressed."""
    pass


def base_codec(codec: str) -> str:
    codec = codec.strip().lower()
    if codec.endswith(SHUFFLE_SUFFIX):
        return codec[:-len(SHUFFLE_SUFFIX)]
    return codec


def is_known_codec(codec: str) -> bool:
    return base_codec(codec) in KNOWN_CODECS


def unshuffle_bytes(data: bytes, item_size: int) -> bytes:
    """
    Undo XISF byte shuffling.

    A shuffled block stores byte 0 of every item, then byte 1 of every item,
    and so on; trailing bytes that do not fill an item are kept in place.
    """
    if item_size <= 1:
        return data
    n_items = len(data) // item_size
    body = n_items * item_size
    if n_items == 0:
        return data

    shuffled = np.frombuffer(data, dtype=np.uint8, count=body)
    unshuffled = shuffled.reshape(item_size, n_items).T.reshape(-1)
    logger.debug(f"Unshuffled {body} bytes with item size {item_size}")
    return unshuffled.tobytes() + bytes(data[body:])


def shuffle_bytes(data: bytes, item_size: int) -> bytes:
    """Apply XISF byte shuffling; the inverse of unshuffle_bytes."""
    if item_size <= 1:
        return data
    n_items = len(data) // item_size
    body = n_items * item_size
    if n_items == 0:
        return data
    items = np.frombuffer(data, dtype=np.uint8, count=body)
    return items.reshape(n_items, item_size).T.reshape(-1).tobytes() + bytes(data[body:])


def decompress_block(data: bytes, codec: str, uncompressed_size: int,
                     item_size: Optional[int] = None) -> bytes:
    """
    Decompress one stored block.

    Args:
        data: Stored (compressed) block bytes
        codec: Codec name from the compression attribute
        uncompressed_size: Declared size after decompression
        item_size: Shuffle item size, required for "+sh" codecs larger than 1

    Returns:
        Decompressed, unshuffled bytes

    Raises:
        CodecError: If the codec is unknown, decompression fails or the
            decompressed size does not match the declared size
    """
    name = base_codec(codec)
    if name not in KNOWN_CODECS:
        raise CodecError(f"Unsupported compression codec: {codec}")

    try:
        if name == 'zlib':
            decompressed = zlib.decompress(data)
        else:
            # lz4 and lz4hc share the block format; XISF stores no size prefix
            decompressed = lz4.block.decompress(data, uncompressed_size=uncompressed_size)
    except (zlib.error, lz4.block.LZ4BlockError) as e:
        raise CodecError(f"{name} decompression failed: {e}")

    if len(decompressed) != uncompressed_size:
        raise CodecError(
            f"Decompressed size mismatch: got {len(decompressed)}, expected {uncompressed_size}")

    if codec.strip().lower().endswith(SHUFFLE_SUFFIX) and item_size:
        decompressed = unshuffle_bytes(decompressed, item_size)

    logger.debug(f"Decompressed {len(data)} bytes to {len(decompressed)} with {codec}")
    return decompressed
