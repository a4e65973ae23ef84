"""
Test utilities for astrometa.

Provides common fixtures and builders for synthetic FITS headers and XISF
containers.
"""

import gzip
import hashlib
import struct
import zlib
from typing import Any, Dict, Sequence

import numpy as np
import pytest
from astropy.io import fits

from astrometa.config import ExtractionConfig
from astrometa.file_formats import reset_file_format_processor
from astrometa.core.services.checksum_calculator import reset_checksum_calculator

XISF_NAMESPACE = "http://pixinsight.com/xisf"
XISF_HEADER_SIZE = 4096


def build_fits_header(cards: Dict[str, Any]) -> bytes:
    """Serialize cards into a padded FITS header ending with END."""
    header = fits.Header()
    for key, value in cards.items():
        header[key] = value
    return header.tostring().encode('ascii')


def build_xisf(body: str, blocks: Sequence[bytes] = (), header_size: int = XISF_HEADER_SIZE,
               signature: bytes = b'XISF0100', trailing: bytes = b'') -> bytes:
    """
    Assemble an XISF container.

    ``body`` is the content of the root element. Placeholders ``{loc0}``,
    ``{loc1}``... expand to "attachment:<position>:<size>" for the blocks,
    which are stored back to back right after the padded header.
    """
    locations = {}
    position = 16 + header_size
    for index, block in enumerate(blocks):
        locations[f'loc{index}'] = f'attachment:{position}:{len(block)}'
        position += len(block)

    document = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<xisf version="1.0" xmlns="{XISF_NAMESPACE}">'
        + body.format(**locations)
        + '</xisf>'
    ).encode('utf-8')
    assert len(document) <= header_size, "header_size too small for document"

    padded = document + b'\x00' * (header_size - len(document))
    return signature + struct.pack('<II', header_size, 0) + padded + b''.join(blocks) + trailing


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Give every test fresh global services."""
    reset_file_format_processor()
    reset_checksum_calculator()
    yield
    reset_file_format_processor()
    reset_checksum_calculator()


@pytest.fixture
def extraction_config() -> ExtractionConfig:
    """Default extraction settings, independent of any local astrometa.ini."""
    return ExtractionConfig()


@pytest.fixture
def sample_fits_header() -> Dict[str, Any]:
    """Provide sample FITS header data."""
    return {
        'SIMPLE': True,
        'BITPIX': 16,
        'NAXIS': 2,
        'NAXIS1': 4096,
        'NAXIS2': 2160,
        'TELESCOP': 'Test Telescope',
        'INSTRUME': 'ZWO ASI2600MM Pro',
        'OBJECT': 'M31',
        'IMAGETYP': 'LIGHT',
        'EXPTIME': 300.0,
        'DATE-OBS': '2025-11-07T04:30:00.123456789',
        'CCD-TEMP': -10.2,
        'SET-TEMP': -10.0,
        'XBINNING': 2,
        'YBINNING': 2,
        'XPIXSZ': 3.76,
        'FOCALLEN': 530.0,
        'APERTURE': 106.0,
        'GAIN': 100,
        'OFFSET': 50,
        'FILTER': 'Ha',
        'OBJCTRA': '00 42 44.3',
        'OBJCTDEC': '+41 16 09',
        'SITELAT': 51.05,
        'SITELONG': -114.07,
        'PIERSIDE': 'West',
        'AIRMASS': 1.25,
    }


@pytest.fixture
def sample_fits_bytes(sample_fits_header) -> bytes:
    """Sample header serialized as a FITS stream."""
    return build_fits_header(sample_fits_header)


@pytest.fixture
def sample_fits_gz_bytes(sample_fits_bytes) -> bytes:
    return gzip.compress(sample_fits_bytes)


@pytest.fixture
def sample_pixels() -> bytes:
    """4x3 UInt16 image, little-endian."""
    return np.arange(12, dtype='<u2').tobytes()


@pytest.fixture
def sample_xisf_parts(sample_pixels) -> Dict[str, Any]:
    """Pieces of the sample XISF container, for assertions."""
    compressed = zlib.compress(sample_pixels)
    body = (
        '<Image id="main" geometry="4:3:1" sampleFormat="UInt16" colorSpace="Gray" '
        'imageType="Flat" location="{loc0}" '
        f'compression="zlib:{len(sample_pixels)}" checksum="sha-1:{sha1_hex(compressed)}">'
        '<FITSKeyword name="OBJECT" value="\'NGC 7000\'" comment="Target"/>'
        '<FITSKeyword name="FOCALLEN" value="500." comment="Focal length"/>'
        '<FITSKeyword name="XPIXSZ" value="3.76" comment=""/>'
        '<FITSKeyword name="DATE-OBS" value="\'2024-03-02T03:00:00\'" comment=""/>'
        '<FITSKeyword name="HISTORY" value="" comment="Calibrated"/>'
        '<Property id="Instrument:Telescope:FocalLength" type="Float32" value="0.53"/>'
        '<Property id="Instrument:Telescope:Aperture" type="Float32" value="0.106"/>'
        '<Property id="Instrument:Camera:Name" type="String">ZWO ASI294MC</Property>'
        '<Property id="Observation:Location:Longitude" type="Float64" value="-30"/>'
        '<Resolution horizontal="72" vertical="72" unit="inch"/>'
        '<DisplayFunction m="0.5:0.5:0.5:0.5" s="0:0:0:0" h="1:1:1:1" '
        'l="0:0:0:0" r="1:1:1:1" name="AutoStretch"/>'
        '</Image>'
        '<Metadata>'
        '<Property id="XISF:CreationTime" type="TimePoint" value="2024-03-02T10:15:00Z"/>'
        '<Property id="XISF:CreatorApplication" type="String" value="PixInsight 1.8.9"/>'
        '<Property id="XISF:BlockAlignmentSize" type="UInt16" value="4096"/>'
        '</Metadata>'
    )
    return {'body': body, 'blocks': [compressed], 'pixels': sample_pixels}


@pytest.fixture
def sample_xisf_bytes(sample_xisf_parts) -> bytes:
    return build_xisf(sample_xisf_parts['body'], sample_xisf_parts['blocks'])
