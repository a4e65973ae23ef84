"""Metadata model classes for astrometa."""

from .header_store import HeaderStore
from .attachment import AttachmentInfo, IntegrityIssue, IntegrityIssueKind, LocationMethod
from .metadata import (
    AstroMetadata, Equipment, Detector, Filter, Exposure, Mount, Environment,
    WcsData, XisfMetadata, ColorManagement, DisplayFunction,
)

__all__ = [
    'HeaderStore',
    'AttachmentInfo', 'IntegrityIssue', 'IntegrityIssueKind', 'LocationMethod',
    'AstroMetadata', 'Equipment', 'Detector', 'Filter', 'Exposure', 'Mount',
    'Environment', 'WcsData', 'XisfMetadata', 'ColorManagement', 'DisplayFunction',
]
