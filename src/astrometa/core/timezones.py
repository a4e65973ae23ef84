"""
Timezone resolution for observing-session dates.

Determines the local time of an observation with a fallback chain:

1. Explicit IANA timezone name (argument or configuration)
2. Site latitude and longitude looked up with timezonefinder
3. Longitude-only approximation, round(longitude / 15) hours
4. UTC
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import pytz
from timezonefinder import TimezoneFinder

logger = logging.getLogger(__name__)

# TimezoneFinder loads its polygon data on construction; share one instance
_finder: Optional[TimezoneFinder] = None


def get_timezone_finder() -> TimezoneFinder:
    global _finder
    if _finder is None:
        _finder = TimezoneFinder()
    return _finder


def timezone_from_name(name: str):
    """Return a pytz timezone, or None for an unknown name."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {name!r}, falling back to site location")
        return None


def timezone_from_coords(latitude: float, longitude: float):
    """Return the pytz timezone covering a site, or None when it cannot be found."""
    try:
        tz_name = get_timezone_finder().timezone_at(lat=latitude, lng=longitude)
    except ValueError as e:
        logger.debug(f"Could not determine timezone from coordinates: {e}")
        return None
    if not tz_name:
        return None
    return timezone_from_name(tz_name)


def offset_from_longitude(longitude: float) -> Optional[timezone]:
    """Fixed offset of round(longitude / 15) hours; None outside [-180, 180]."""
    if not -180.0 <= longitude <= 180.0:
        return None
    return timezone(timedelta(hours=round(longitude / 15.0)))


def to_local_time(utc_timestamp: datetime,
                  timezone_name: Optional[str] = None,
                  latitude: Optional[float] = None,
                  longitude: Optional[float] = None) -> Tuple[datetime, str]:
    """
    Convert a UTC timestamp to site-local time.

    Args:
        utc_timestamp: Observation timestamp; naive values are taken as UTC
        timezone_name: Explicit IANA timezone, wins over the site location
        latitude: Site latitude in degrees
        longitude: Site longitude in degrees

    Returns:
        Tuple of (local aware datetime, name of the rule that was used)
    """
    if utc_timestamp.tzinfo is None:
        utc_timestamp = utc_timestamp.replace(tzinfo=timezone.utc)

    if timezone_name:
        tz = timezone_from_name(timezone_name)
        if tz is not None:
            return utc_timestamp.astimezone(tz), f"timezone {tz.zone}"

    if latitude is not None and longitude is not None:
        tz = timezone_from_coords(latitude, longitude)
        if tz is not None:
            return utc_timestamp.astimezone(tz), f"site timezone {tz.zone}"

    if longitude is not None:
        tz = offset_from_longitude(longitude)
        if tz is not None:
            return utc_timestamp.astimezone(tz), f"longitude offset {tz}"

    return utc_timestamp.astimezone(timezone.utc), "UTC"
