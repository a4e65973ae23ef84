"""
Scalar coercion utilities.

Every function takes a raw header string (or None) and returns the typed
value, or None when the text cannot be interpreted. Individual values never
raise; failures are logged at DEBUG level.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

logger = logging.getLogger(__name__)

_TIMESTAMP_RE = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})'
    r'(?:[T ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?'
    r'(Z|[+-]\d{2}:?\d{2})?)?$'
)
_SEXAGESIMAL_SPLIT_RE = re.compile(r'[\s:]+')


def _clean(value: Optional[str]) -> Optional[str]:
    """Strip whitespace and surrounding FITS quotes; empty text becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        text = text[1:-1].replace("''", "'").strip()
    return text or None


def to_str(value: Optional[str]) -> Optional[str]:
    return _clean(value)


def to_float(value: Optional[str]) -> Optional[float]:
    """Parse a float; FITS 'D' exponents are accepted, non-finite values are not."""
    text = _clean(value)
    if text is None:
        return None
    if '_' in text:
        logger.debug(f"Cannot coerce {value!r} to float")
        return None
    try:
        result = float(text.replace('D', 'E').replace('d', 'e'))
    except ValueError:
        logger.debug(f"Cannot coerce {value!r} to float")
        return None
    if not math.isfinite(result):
        logger.debug(f"Ignoring non-finite value {value!r}")
        return None
    return result


def to_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer; integral float text such as '3.0' is accepted."""
    text = _clean(value)
    if text is None:
        return None
    if '_' in text:
        logger.debug(f"Cannot coerce {value!r} to int")
        return None
    try:
        return int(text)
    except ValueError:
        pass
    result = to_float(text)
    if result is None or not result.is_integer():
        logger.debug(f"Cannot coerce {value!r} to int")
        return None
    return int(result)


def to_bool(value: Optional[str]) -> Optional[bool]:
    text = _clean(value)
    if text is None:
        return None
    text = text.upper()
    if text in ('T', 'TRUE', '1'):
        return True
    if text in ('F', 'FALSE', '0'):
        return False
    logger.debug(f"Cannot coerce {value!r} to bool")
    return None


def parse_sexagesimal(value: Optional[str]) -> Optional[float]:
    """
    Parse a sexagesimal value such as "-45 12 34" or "12:34:56.7".

    The sign is detected and stripped first, the remainder is split on
    whitespace and/or colons into 2 or 3 components, and the sign is applied
    to the magnitude c0 + c1/60 + c2/3600. The unit of the result is the unit
    of the first component (degrees or hours).

    Returns:
        Signed decimal value, or None for anything malformed
    """
    text = _clean(value)
    if text is None:
        return None

    sign = 1.0
    if text[0] in '+-':
        if text[0] == '-':
            sign = -1.0
        text = text[1:].strip()

    parts = [part for part in _SEXAGESIMAL_SPLIT_RE.split(text) if part]
    if len(parts) < 2 or len(parts) > 3:
        logger.debug(f"Cannot parse sexagesimal {value!r}: expected 2 or 3 components")
        return None

    magnitude = 0.0
    for index, part in enumerate(parts):
        if part[0] in '+-':
            logger.debug(f"Cannot parse sexagesimal {value!r}: signed component {part!r}")
            return None
        try:
            if '_' in part:
                raise ValueError(part)
            component = float(part)
        except ValueError:
            logger.debug(f"Cannot parse sexagesimal {value!r}: non-numeric component {part!r}")
            return None
        if not math.isfinite(component):
            return None
        magnitude += component / (60.0 ** index)

    return sign * magnitude


def to_angle(value: Optional[str]) -> Optional[float]:
    """Decimal degrees from numeric or sexagesimal degree text."""
    result = to_float(value)
    if result is not None:
        return result
    return parse_sexagesimal(value)


def to_right_ascension(value: Optional[str]) -> Optional[float]:
    """
    Right ascension in decimal degrees.

    Numeric text is already in degrees; sexagesimal text is in hours and is
    multiplied by 15.
    """
    result = to_float(value)
    if result is not None:
        return result
    hours = parse_sexagesimal(value)
    if hours is None:
        return None
    return hours * 15.0


def to_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a strict ISO-8601 timestamp into an aware UTC datetime.

    Accepts YYYY-MM-DD, or YYYY-MM-DD[T| ]HH:MM:SS[.fraction][Z|+HH:MM].
    Fractions longer than microseconds are truncated and values without an
    offset are taken as UTC.
    """
    text = _clean(value)
    if text is None:
        return None

    match = _TIMESTAMP_RE.match(text)
    if not match:
        logger.debug(f"Cannot parse timestamp {value!r}")
        return None

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    microsecond = int(fraction[:6].ljust(6, '0')) if fraction else 0

    tzinfo = timezone.utc
    if offset and offset != 'Z':
        digits = offset[1:].replace(':', '')
        hours, minutes = int(digits[:2]), int(digits[2:])
        if hours > 23 or minutes > 59:
            logger.debug(f"Cannot parse timestamp {value!r}: offset out of range")
            return None
        delta = timedelta(hours=hours, minutes=minutes)
        tzinfo = timezone(-delta if offset[0] == '-' else delta)

    try:
        result = datetime(int(year), int(month), int(day),
                          int(hour or 0), int(minute or 0), int(second or 0),
                          microsecond, tzinfo=tzinfo)
    except ValueError as e:
        logger.debug(f"Cannot parse timestamp {value!r}: {e}")
        return None

    return result.astimezone(timezone.utc)
