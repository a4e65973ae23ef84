"""
Well-known header keys and the rules that map them onto AstroMetadata.

Each table is an immutable tuple of KeywordMapping entries. Keys are tried in
the order listed; the first key present whose value coerces successfully
wins, so an unparseable primary key falls through to its alternates.
"""

import logging
from typing import Any, Callable, NamedTuple, Optional, Tuple

from ..models.header_store import HeaderStore
from ..models.metadata import AstroMetadata
from .coercion import (
    to_str, to_float, to_int, to_bool, to_angle, to_right_ascension, to_timestamp,
)

logger = logging.getLogger(__name__)


class KeywordMapping(NamedTuple):
    keys: Tuple[str, ...]
    target: str                                   # "<section>.<field>"
    coerce: Callable[[Optional[str]], Any]


def to_binning(value: Optional[str]) -> Optional[int]:
    result = to_int(value)
    if result is None or result < 1:
        return None
    return result


def meters_to_millimeters(value: Optional[str]) -> Optional[float]:
    result = to_float(value)
    return None if result is None else result * 1000.0


FITS_KEYWORD_MAP: Tuple[KeywordMapping, ...] = (
    # Equipment
    KeywordMapping(('TELESCOP',), 'equipment.telescope_name', to_str),
    KeywordMapping(('FOCALLEN',), 'equipment.focal_length', to_float),
    KeywordMapping(('APERTURE',), 'equipment.aperture', to_float),
    KeywordMapping(('FOCRATIO',), 'equipment.focal_ratio', to_float),
    KeywordMapping(('MOUNT',), 'equipment.mount_model', to_str),
    KeywordMapping(('FOCPOS', 'FOCUSPOS'), 'equipment.focuser_position', to_int),
    KeywordMapping(('FOCTEMP', 'FOCUSTEMP'), 'equipment.focuser_temperature', to_float),

    # Detector
    KeywordMapping(('INSTRUME', 'CAMERA'), 'detector.camera_name', to_str),
    KeywordMapping(('XPIXSZ', 'PIXSIZE'), 'detector.pixel_size', to_float),
    KeywordMapping(('NAXIS1',), 'detector.width', to_int),
    KeywordMapping(('NAXIS2',), 'detector.height', to_int),
    KeywordMapping(('XBINNING',), 'detector.binning_x', to_binning),
    KeywordMapping(('YBINNING',), 'detector.binning_y', to_binning),
    KeywordMapping(('GAIN', 'EGAIN'), 'detector.gain', to_float),
    KeywordMapping(('OFFSET', 'CCDOFFST'), 'detector.offset', to_int),
    KeywordMapping(('READOUT', 'READOUTM'), 'detector.readout_mode', to_str),
    KeywordMapping(('USBLIMIT', 'USBTRFC'), 'detector.usb_limit', to_int),
    KeywordMapping(('RDNOISE',), 'detector.read_noise', to_float),
    KeywordMapping(('FULLWELL',), 'detector.full_well', to_float),
    KeywordMapping(('CCD-TEMP', 'CCDTEMP'), 'detector.temperature', to_float),
    KeywordMapping(('SET-TEMP', 'CCD-TEMP-SETPOINT'), 'detector.temp_setpoint', to_float),
    KeywordMapping(('COOL-PWR', 'COOLPWR'), 'detector.cooler_power', to_float),
    KeywordMapping(('COOL-STAT', 'COOLSTAT'), 'detector.cooler_status', to_str),
    KeywordMapping(('ROTANG', 'ROTPA', 'ROTATANG'), 'detector.rotator_angle', to_float),

    # Filter
    KeywordMapping(('FILTER',), 'filter.name', to_str),
    KeywordMapping(('FILTERID', 'FLTPOS'), 'filter.position', to_int),
    KeywordMapping(('WAVELENG', 'WAVELEN'), 'filter.wavelength', to_float),

    # Exposure
    KeywordMapping(('OBJECT',), 'exposure.object_name', to_str),
    KeywordMapping(('RA', 'OBJCTRA'), 'exposure.ra', to_right_ascension),
    KeywordMapping(('DEC', 'OBJCTDEC'), 'exposure.dec', to_angle),
    KeywordMapping(('DATE-OBS',), 'exposure.date_obs', to_timestamp),
    KeywordMapping(('EXPTIME', 'EXPOSURE'), 'exposure.exposure_time', to_float),
    KeywordMapping(('IMAGETYP', 'FRAME'), 'exposure.frame_type', to_str),
    KeywordMapping(('SEQID', 'SEQFILE'), 'exposure.sequence_id', to_str),
    KeywordMapping(('FRAMENUM', 'SEQNUM'), 'exposure.frame_number', to_int),
    KeywordMapping(('DX', 'DITHX'), 'exposure.dither_offset_x', to_float),
    KeywordMapping(('DY', 'DITHY'), 'exposure.dither_offset_y', to_float),
    KeywordMapping(('PROJECT', 'PROJNAME'), 'exposure.project_name', to_str),
    KeywordMapping(('SESSIONID', 'SESSID'), 'exposure.session_id', to_str),

    # Mount and site
    KeywordMapping(('PIERSIDE',), 'mount.pier_side', to_str),
    KeywordMapping(('MFLIP',), 'mount.meridian_flip', to_bool),
    KeywordMapping(('SITELAT', 'OBSLAT'), 'mount.latitude', to_angle),
    KeywordMapping(('SITELONG', 'OBSLONG'), 'mount.longitude', to_angle),
    KeywordMapping(('SITEELEV', 'OBSELEV'), 'mount.height', to_float),
    KeywordMapping(('GUIDECAM',), 'mount.guide_camera', to_str),
    KeywordMapping(('GUIDERMS',), 'mount.guide_rms', to_float),
    KeywordMapping(('GUIDESCALE',), 'mount.guide_scale', to_float),
    KeywordMapping(('DITHER',), 'mount.dither_enabled', to_bool),
    KeywordMapping(('PEAKRA', 'PEAKRAER'), 'mount.peak_ra_error', to_float),
    KeywordMapping(('PEAKDEC', 'PEAKDCER'), 'mount.peak_dec_error', to_float),

    # Environment
    KeywordMapping(('AMB_TEMP', 'AMBTEMP'), 'environment.ambient_temp', to_float),
    KeywordMapping(('HUMIDITY',), 'environment.humidity', to_float),
    KeywordMapping(('DEWPOWER', 'DEWPWR'), 'environment.dew_heater_power', to_float),
    KeywordMapping(('VOLTAGE', 'SYSVOLT'), 'environment.voltage', to_float),
    KeywordMapping(('CURRENT', 'SYSCURR'), 'environment.current', to_float),
    KeywordMapping(('SQM', 'SQMMAG', 'SKYQUAL'), 'environment.sqm', to_float),

    # World coordinate system
    KeywordMapping(('CTYPE1',), 'wcs.ctype1', to_str),
    KeywordMapping(('CTYPE2',), 'wcs.ctype2', to_str),
    KeywordMapping(('CRPIX1',), 'wcs.crpix1', to_float),
    KeywordMapping(('CRPIX2',), 'wcs.crpix2', to_float),
    KeywordMapping(('CRVAL1',), 'wcs.crval1', to_float),
    KeywordMapping(('CRVAL2',), 'wcs.crval2', to_float),
    KeywordMapping(('CD1_1',), 'wcs.cd1_1', to_float),
    KeywordMapping(('CD1_2',), 'wcs.cd1_2', to_float),
    KeywordMapping(('CD2_1',), 'wcs.cd2_1', to_float),
    KeywordMapping(('CD2_2',), 'wcs.cd2_2', to_float),
    KeywordMapping(('CROTA2',), 'wcs.crota2', to_float),
    KeywordMapping(('AIRMASS',), 'wcs.airmass', to_float),
    KeywordMapping(('ALT-OBS', 'ALTITUDE', 'OBJCTALT'), 'wcs.altitude', to_angle),
    KeywordMapping(('AZ-OBS', 'AZIMUTH', 'OBJCTAZ'), 'wcs.azimuth', to_angle),
)


# XISF property ids as stored in the header store ("Instrument:Camera:Name"
# becomes "INSTRUMENT.CAMERA.NAME"). Lengths are in meters, coordinates in
# decimal degrees, temperatures in Celsius.
XISF_PROPERTY_MAP: Tuple[KeywordMapping, ...] = (
    KeywordMapping(('INSTRUMENT.TELESCOPE.NAME',), 'equipment.telescope_name', to_str),
    KeywordMapping(('INSTRUMENT.TELESCOPE.FOCALLENGTH',), 'equipment.focal_length', meters_to_millimeters),
    KeywordMapping(('INSTRUMENT.TELESCOPE.APERTURE',), 'equipment.aperture', meters_to_millimeters),

    KeywordMapping(('INSTRUMENT.CAMERA.NAME',), 'detector.camera_name', to_str),
    KeywordMapping(('INSTRUMENT.CAMERA.GAIN',), 'detector.gain', to_float),
    KeywordMapping(('INSTRUMENT.CAMERA.XBINNING',), 'detector.binning_x', to_binning),
    KeywordMapping(('INSTRUMENT.CAMERA.YBINNING',), 'detector.binning_y', to_binning),
    KeywordMapping(('INSTRUMENT.CAMERA.ROTATION',), 'detector.rotator_angle', to_float),
    KeywordMapping(('INSTRUMENT.SENSOR.XPIXELSIZE',), 'detector.pixel_size', to_float),
    KeywordMapping(('INSTRUMENT.SENSOR.TEMPERATURE',), 'detector.temperature', to_float),
    KeywordMapping(('INSTRUMENT.SENSOR.TARGETTEMPERATURE',), 'detector.temp_setpoint', to_float),

    KeywordMapping(('INSTRUMENT.FILTER.NAME',), 'filter.name', to_str),

    KeywordMapping(('INSTRUMENT.EXPOSURETIME',), 'exposure.exposure_time', to_float),
    KeywordMapping(('OBSERVATION.OBJECT.NAME',), 'exposure.object_name', to_str),
    KeywordMapping(('OBSERVATION.OBJECT.RA',), 'exposure.ra', to_float),
    KeywordMapping(('OBSERVATION.OBJECT.DEC',), 'exposure.dec', to_float),
    KeywordMapping(('OBSERVATION.TIME.START',), 'exposure.date_obs', to_timestamp),

    KeywordMapping(('OBSERVATION.LOCATION.LATITUDE',), 'mount.latitude', to_float),
    KeywordMapping(('OBSERVATION.LOCATION.LONGITUDE',), 'mount.longitude', to_float),
    KeywordMapping(('OBSERVATION.LOCATION.ELEVATION',), 'mount.height', to_float),

    KeywordMapping(('OBSERVATION.METEOROLOGY.AMBIENTTEMPERATURE',), 'environment.ambient_temp', to_float),
    KeywordMapping(('OBSERVATION.METEOROLOGY.RELATIVEHUMIDITY',), 'environment.humidity', to_float),
)


_BINNING_FIELDS = ('binning_x', 'binning_y')
_OPTICS_KEYWORDS = ('reducer', 'flattener')
_SOFTWARE_VERSION_KEYS = (('NINA-VERSION', 'NINA'), ('EKOS-VERSION', 'EKOS'))
_PLUGIN_PREFIXES = ('NINA-PLUGIN-', 'EKOS-PLUGIN-')


def resolve_mapping(store: HeaderStore, mapping: KeywordMapping) -> Any:
    """Return the first successfully coerced value for a mapping, or None."""
    for key in mapping.keys:
        raw = store.get(key)
        if raw is None:
            continue
        value = mapping.coerce(raw)
        if value is not None:
            return value
        logger.debug(f"Ignoring unparseable {key}={raw!r} for {mapping.target}")
    return None


def apply_mappings(store: HeaderStore, metadata: AstroMetadata,
                   mappings: Tuple[KeywordMapping, ...]) -> int:
    """
    Fill metadata fields from a header store.

    Only values that coerce successfully are written, so applying a second
    table overrides earlier values without erasing them when it has nothing.

    Returns:
        Number of fields written
    """
    applied = 0
    for mapping in mappings:
        value = resolve_mapping(store, mapping)
        if value is None:
            continue
        section_name, field_name = mapping.target.split('.', 1)
        record = metadata.section(section_name, create=True)
        setattr(record, field_name, value)
        if field_name in _BINNING_FIELDS:
            record.binning_declared = True
        applied += 1
    return applied


def apply_acquisition_software(store: HeaderStore, metadata: AstroMetadata) -> None:
    """Software version and plugin records written by acquisition programs."""
    software_version = None
    for key, name in _SOFTWARE_VERSION_KEYS:
        version = to_str(store.get(key))
        if version:
            software_version = f"{name} {version}"
            break
    if software_version is None:
        software_version = to_str(store.get('SWCREATE'))

    plugins = {}
    for prefix in _PLUGIN_PREFIXES:
        for key, value in store.keys_with_prefix(prefix):
            text = to_str(value)
            if text is not None:
                plugins[key] = text

    if software_version is not None:
        metadata.section('environment', create=True).software_version = software_version
    if plugins:
        metadata.section('environment', create=True).plugin_info = plugins


def apply_optics_hints(store: HeaderStore, metadata: AstroMetadata) -> None:
    """Pick a reducer/flattener description out of the instrument name."""
    instrument = to_str(store.get('INSTRUME'))
    if instrument and any(word in instrument.lower() for word in _OPTICS_KEYWORDS):
        metadata.equipment.reducer_flattener = instrument


def derive_focal_ratio(metadata: AstroMetadata) -> None:
    """Fill focal_ratio from focal length and aperture when not supplied."""
    equipment = metadata.equipment
    if equipment.focal_ratio is not None:
        return
    if equipment.focal_length is not None and equipment.aperture:
        if equipment.aperture > 0:
            equipment.focal_ratio = equipment.focal_length / equipment.aperture


def finalize_metadata(store: HeaderStore, metadata: AstroMetadata, source_format: str) -> AstroMetadata:
    """Apply the cross-field rules and attach the raw header copy."""
    apply_acquisition_software(store, metadata)
    apply_optics_hints(store, metadata)
    derive_focal_ratio(metadata)
    metadata.prune_empty_sections()
    metadata.raw_headers = store.to_dict()
    metadata.source_format = source_format
    return metadata
