"""
XISF container support.

Reads the XISF binary layout and header document without decoding pixels.
"""

from .xisf_types import XISFSampleFormat, XISFGeometry, XISFLocation, XISFCompression, XISFChecksum
from .property_tree import PropertyNode, parse_header_document
from .xisf_reader import XISFReader, XISFDocument, XISF_SIGNATURE, read_block_data, read_stored_block

__all__ = [
    'XISFSampleFormat', 'XISFGeometry', 'XISFLocation', 'XISFCompression', 'XISFChecksum',
    'PropertyNode', 'parse_header_document',
    'XISFReader', 'XISFDocument', 'XISF_SIGNATURE', 'read_block_data', 'read_stored_block',
]
