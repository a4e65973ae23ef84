"""
Derived quantities computed from partially populated metadata.

Plate scale and field of view need pixel size, focal length and image
dimensions; any missing input yields None rather than a guess.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from ..models.metadata import AstroMetadata
from .timezones import to_local_time

logger = logging.getLogger(__name__)

# Arcseconds per radian divided by 1000 (microns / millimeters)
ARCSEC_PER_RADIAN_SCALED = 206.265

SESSION_BOUNDARY_HOUR = 12


def can_calculate_plate_scale(metadata: AstroMetadata) -> bool:
    focal_length = metadata.equipment.focal_length
    return (metadata.detector.pixel_size is not None
            and focal_length is not None
            and focal_length > 0)


def plate_scale(metadata: AstroMetadata, binned: bool = False) -> Optional[float]:
    """
    Image scale in arcseconds per pixel.

    Args:
        metadata: Extracted metadata
        binned: Scale for binned pixels; None when the source did not
            declare its binning

    Returns:
        (pixel_size / focal_length) * 206.265, or None when inputs are missing
    """
    if not can_calculate_plate_scale(metadata):
        return None
    scale = (metadata.detector.pixel_size / metadata.equipment.focal_length) * ARCSEC_PER_RADIAN_SCALED
    if binned:
        if not metadata.detector.binning_declared:
            return None
        scale *= metadata.detector.binning_x
    return scale


def field_of_view(metadata: AstroMetadata, binned: bool = False) -> Optional[Tuple[float, float]]:
    """Field of view (width, height) in arcminutes."""
    scale = plate_scale(metadata, binned=binned)
    if scale is None:
        return None
    width, height = metadata.detector.width, metadata.detector.height
    if width <= 0 or height <= 0:
        return None
    return scale * width / 60.0, scale * height / 60.0


def session_date_for(date_obs: datetime,
                     timezone_name: Optional[str] = None,
                     latitude: Optional[float] = None,
                     longitude: Optional[float] = None) -> datetime:
    """
    Observing-session date for a timestamp.

    Exposures taken before local noon belong to the night that started on the
    previous calendar day. The session date is returned as UTC midnight of
    that local date.
    """
    local, rule = to_local_time(date_obs, timezone_name, latitude, longitude)
    session_day = local.date()
    if local.hour < SESSION_BOUNDARY_HOUR:
        session_day -= timedelta(days=1)
    logger.debug(f"Session date for {date_obs.isoformat()} is {session_day} ({rule})")
    return datetime(session_day.year, session_day.month, session_day.day, tzinfo=timezone.utc)


def calculate_session_date(metadata: AstroMetadata,
                           timezone_name: Optional[str] = None) -> Optional[datetime]:
    """
    Compute and store exposure.session_date; date_obs is left untouched.

    Returns:
        The session date, or None when the source has no observation time
    """
    date_obs = metadata.exposure.date_obs
    if date_obs is None:
        metadata.exposure.session_date = None
        return None

    latitude = longitude = None
    if metadata.mount is not None:
        latitude, longitude = metadata.mount.latitude, metadata.mount.longitude

    metadata.exposure.session_date = session_date_for(date_obs, timezone_name, latitude, longitude)
    return metadata.exposure.session_date
