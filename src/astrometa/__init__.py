"""
astrometa - Astronomical image metadata extraction.

This package extracts structured, instrument-independent metadata from FITS
and XISF image containers, with features including:

- FITS flat-header parsing (plain and gzip-wrapped)
- XISF container parsing: header document, data blocks, checksums, compression
- A unified metadata model across both formats
- Derived quantities: plate scale, field of view, observing-session date

Main Components:
    core: Coercion, keyword tables, derived quantities and entry points
    file_formats: Format handlers and the XISF container reader
    models: Header store, metadata model and data block descriptors
    exceptions: Exception hierarchy for error handling
    config: Configuration management with environment support
"""

__version__ = "1.0.0"

from .core.extractor import (
    extract_metadata,
    extract_metadata_from_path,
    detect_format,
    read_attachment_data,
)
from .core.derived import (
    can_calculate_plate_scale,
    plate_scale,
    field_of_view,
    calculate_session_date,
)
from .core.keyword_map import KeywordMapping, FITS_KEYWORD_MAP, XISF_PROPERTY_MAP

from .models import (
    HeaderStore,
    AstroMetadata,
    Equipment,
    Detector,
    Filter,
    Exposure,
    Mount,
    Environment,
    WcsData,
    XisfMetadata,
    ColorManagement,
    DisplayFunction,
    AttachmentInfo,
    IntegrityIssue,
    IntegrityIssueKind,
    LocationMethod,
)

from .exceptions import (
    AstroMetaError,
    StructuralError,
    FormatError,
    SourceReadError,
    UnsupportedFormatError,
    AttachmentReadError,
    ConfigurationError,
    ParseStage,
)

from .config import get_config, setup_logging, ConfigManager, AstroMetaConfig, ExtractionConfig

__all__ = [
    # Entry points
    'extract_metadata',
    'extract_metadata_from_path',
    'detect_format',
    'read_attachment_data',

    # Derived quantities
    'can_calculate_plate_scale',
    'plate_scale',
    'field_of_view',
    'calculate_session_date',

    # Keyword tables
    'KeywordMapping',
    'FITS_KEYWORD_MAP',
    'XISF_PROPERTY_MAP',

    # Models
    'HeaderStore',
    'AstroMetadata',
    'Equipment',
    'Detector',
    'Filter',
    'Exposure',
    'Mount',
    'Environment',
    'WcsData',
    'XisfMetadata',
    'ColorManagement',
    'DisplayFunction',
    'AttachmentInfo',
    'IntegrityIssue',
    'IntegrityIssueKind',
    'LocationMethod',

    # Exceptions
    'AstroMetaError',
    'StructuralError',
    'FormatError',
    'SourceReadError',
    'UnsupportedFormatError',
    'AttachmentReadError',
    'ConfigurationError',
    'ParseStage',

    # Configuration
    'get_config',
    'setup_logging',
    'ConfigManager',
    'AstroMetaConfig',
    'ExtractionConfig',

    # Package metadata
    '__version__',
]
