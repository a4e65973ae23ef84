"""
Unified, format-independent metadata model.

Every optional field is None unless the source supplied a parseable value.
Width/height (0) and binning (1) are structural neutral values only; use
Detector.binning_declared to know whether binning was actually supplied.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .attachment import AttachmentInfo


@dataclass
class Equipment:
    telescope_name: Optional[str] = None
    focal_length: Optional[float] = None   # mm
    aperture: Optional[float] = None       # mm
    focal_ratio: Optional[float] = None
    reducer_flattener: Optional[str] = None
    mount_model: Optional[str] = None
    focuser_position: Optional[int] = None
    focuser_temperature: Optional[float] = None


@dataclass
class Detector:
    camera_name: Optional[str] = None
    pixel_size: Optional[float] = None     # microns
    width: int = 0
    height: int = 0
    binning_x: int = 1
    binning_y: int = 1
    binning_declared: bool = False
    gain: Optional[float] = None
    offset: Optional[int] = None
    readout_mode: Optional[str] = None
    usb_limit: Optional[int] = None
    read_noise: Optional[float] = None
    full_well: Optional[float] = None
    temperature: Optional[float] = None
    temp_setpoint: Optional[float] = None
    cooler_power: Optional[float] = None
    cooler_status: Optional[str] = None
    rotator_angle: Optional[float] = None


@dataclass
class Filter:
    name: Optional[str] = None
    position: Optional[int] = None
    wavelength: Optional[float] = None


@dataclass
class Exposure:
    object_name: Optional[str] = None
    ra: Optional[float] = None             # decimal degrees
    dec: Optional[float] = None            # decimal degrees
    date_obs: Optional[datetime] = None    # aware, UTC
    session_date: Optional[datetime] = None
    exposure_time: Optional[float] = None  # seconds
    frame_type: Optional[str] = None
    sequence_id: Optional[str] = None
    frame_number: Optional[int] = None
    dither_offset_x: Optional[float] = None
    dither_offset_y: Optional[float] = None
    project_name: Optional[str] = None
    session_id: Optional[str] = None


@dataclass
class Mount:
    pier_side: Optional[str] = None
    meridian_flip: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    height: Optional[float] = None
    guide_camera: Optional[str] = None
    guide_rms: Optional[float] = None
    guide_scale: Optional[float] = None
    dither_enabled: Optional[bool] = None
    peak_ra_error: Optional[float] = None
    peak_dec_error: Optional[float] = None


@dataclass
class Environment:
    ambient_temp: Optional[float] = None
    humidity: Optional[float] = None
    dew_heater_power: Optional[float] = None
    voltage: Optional[float] = None
    current: Optional[float] = None
    software_version: Optional[str] = None
    plugin_info: Optional[Dict[str, str]] = None
    sqm: Optional[float] = None


@dataclass
class WcsData:
    ctype1: Optional[str] = None
    ctype2: Optional[str] = None
    crpix1: Optional[float] = None
    crpix2: Optional[float] = None
    crval1: Optional[float] = None
    crval2: Optional[float] = None
    cd1_1: Optional[float] = None
    cd1_2: Optional[float] = None
    cd2_1: Optional[float] = None
    cd2_2: Optional[float] = None
    crota2: Optional[float] = None
    airmass: Optional[float] = None
    altitude: Optional[float] = None
    azimuth: Optional[float] = None


@dataclass
class XisfMetadata:
    version: Optional[str] = None
    creator: Optional[str] = None
    creation_time: Optional[datetime] = None
    block_alignment: Optional[int] = None


@dataclass
class DisplayFunction:
    function_type: Optional[str] = None
    parameters: Dict[str, Tuple[float, ...]] = field(default_factory=dict)


@dataclass
class ColorManagement:
    color_space: Optional[str] = None
    icc_profile: Optional[AttachmentInfo] = None
    display_function: Optional[DisplayFunction] = None


# Sub-records that only exist once one of their fields is populated
OPTIONAL_SECTIONS = {
    'mount': Mount,
    'environment': Environment,
    'wcs': WcsData,
}


def is_empty_record(record: Any) -> bool:
    """True when every field of a dataclass record is None."""
    return all(getattr(record, f.name) is None for f in dataclasses.fields(record))


@dataclass
class AstroMetadata:
    """Metadata extracted from one FITS or XISF source."""
    equipment: Equipment = field(default_factory=Equipment)
    detector: Detector = field(default_factory=Detector)
    filter: Filter = field(default_factory=Filter)
    exposure: Exposure = field(default_factory=Exposure)
    mount: Optional[Mount] = None
    environment: Optional[Environment] = None
    wcs: Optional[WcsData] = None
    xisf: Optional[XisfMetadata] = None
    color_management: Optional[ColorManagement] = None
    attachments: List[AttachmentInfo] = field(default_factory=list)
    raw_headers: Dict[str, str] = field(default_factory=dict)
    source_format: Optional[str] = None

    def section(self, name: str, create: bool = False) -> Any:
        """
        Return a named sub-record.

        Optional sections (mount, environment, wcs) are created on demand when
        ``create`` is set, otherwise None is returned for an absent section.
        """
        record = getattr(self, name)
        if record is None and create and name in OPTIONAL_SECTIONS:
            record = OPTIONAL_SECTIONS[name]()
            setattr(self, name, record)
        return record

    def prune_empty_sections(self) -> None:
        """Drop optional sections that ended up with no populated field."""
        for name in OPTIONAL_SECTIONS:
            record = getattr(self, name)
            if record is not None and is_empty_record(record):
                setattr(self, name, None)

    # Derived quantities

    def can_calculate_plate_scale(self) -> bool:
        from ..core.derived import can_calculate_plate_scale
        return can_calculate_plate_scale(self)

    def plate_scale(self, binned: bool = False) -> Optional[float]:
        from ..core.derived import plate_scale
        return plate_scale(self, binned=binned)

    def field_of_view(self, binned: bool = False) -> Optional[Tuple[float, float]]:
        from ..core.derived import field_of_view
        return field_of_view(self, binned=binned)

    def calculate_session_date(self, timezone_name: Optional[str] = None) -> Optional[datetime]:
        from ..core.derived import calculate_session_date
        return calculate_session_date(self, timezone_name=timezone_name)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation; datetimes become ISO-8601 strings."""
        return _serialize(self)


def _serialize(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _serialize(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if f.metadata.get('serialize', True)
        }
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value
