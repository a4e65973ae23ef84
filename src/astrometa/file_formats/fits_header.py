"""
Flat FITS header reader.

Reads the primary header of a FITS stream block by block and stores every
record as a raw string in a HeaderStore. Only sequential reads are used so
the same code serves plain and gzip-wrapped streams.
"""

import logging
import re
import warnings
from typing import Optional

from astropy.io import fits
from astropy.io.fits.card import Undefined
from astropy.io.fits.verify import VerifyError, VerifyWarning

from ..exceptions import FormatError, ParseStage, SourceReadError
from ..models.header_store import HeaderStore

logger = logging.getLogger(__name__)

FITS_BLOCK_SIZE = 2880
FITS_CARD_SIZE = 80
FITS_SIGNATURE = b'SIMPLE  ='
COMMENTARY_KEYWORDS = ('COMMENT', 'HISTORY')
CONTINUE_KEYWORD = 'CONTINUE'
_CONTINUE_VALUE_RE = re.compile(r"^\s*'((?:[^']|'')*)'")


def card_value_text(value) -> str:
    """Render a decoded card value as the raw string kept in the header store."""
    if isinstance(value, bool):
        return 'T' if value else 'F'
    if value is None or isinstance(value, Undefined):
        return ''
    return str(value)


def _fallback_value_text(image: str) -> str:
    """Raw value text of a card astropy cannot decode."""
    body = image[10:] if image[8:10] == '= ' else image[8:]
    return body.split('/', 1)[0].strip()


def parse_card(image: str):
    """
    Decode one 80-character record.

    Returns:
        Tuple of (keyword, value text); keyword is '' for blank records
    """
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', VerifyWarning)
        card = fits.Card.fromstring(image)
        try:
            keyword = card.keyword
        except (ValueError, VerifyError):
            keyword = image[:8].strip()
        if keyword in COMMENTARY_KEYWORDS:
            return keyword, image[8:].rstrip()
        try:
            return keyword, card_value_text(card.value)
        except (ValueError, VerifyError) as e:
            logger.debug(f"Keeping raw value for unparseable card {image!r}: {e}")
            return keyword, _fallback_value_text(image)


def continue_value_text(image: str) -> Optional[str]:
    """String segment of a CONTINUE record, or None if it holds no quoted string."""
    match = _CONTINUE_VALUE_RE.match(image[8:])
    if not match:
        return None
    return match.group(1).replace("''", "'")


def _append_continuation(store: HeaderStore, keyword: Optional[str], image: str) -> None:
    """Join a CONTINUE segment onto the long string value of the previous record."""
    previous = store.get(keyword) if keyword else None
    segment = continue_value_text(image)
    if previous is None or not previous.endswith('&') or segment is None:
        logger.debug(f"Ignoring CONTINUE record without a long string to extend: {image!r}")
        return
    store.set(keyword, previous[:-1] + segment)


def read_header_records(stream, file_path: Optional[str] = None,
                        max_header_bytes: Optional[int] = None) -> HeaderStore:
    """
    Read header records up to and including the END record.

    Args:
        stream: Binary stream positioned at the start of the FITS file
        file_path: Path used in error messages, if known
        max_header_bytes: Abort when the header grows beyond this size

    Returns:
        HeaderStore with every record

    Raises:
        FormatError: Missing SIMPLE signature, or stream ended before END
        SourceReadError: If the stream cannot be read
    """
    store = HeaderStore()
    bytes_read = 0
    first_record = True
    last_keyword = None

    while True:
        try:
            block = _read_block(stream)
        except OSError as e:
            raise SourceReadError(f"Cannot read FITS header: {e}", file_path=file_path)

        if len(block) < FITS_BLOCK_SIZE:
            if first_record and not block.startswith(FITS_SIGNATURE):
                raise FormatError("Missing SIMPLE record at start of FITS header",
                                  ParseStage.SIGNATURE, file_path=file_path)
            raise FormatError(f"FITS header ended after {bytes_read + len(block)} bytes without END record",
                              ParseStage.HEADER_RECORDS, file_path=file_path)
        bytes_read += len(block)

        for start in range(0, FITS_BLOCK_SIZE, FITS_CARD_SIZE):
            image = block[start:start + FITS_CARD_SIZE].decode('ascii', errors='replace')

            if first_record:
                if not image.startswith(FITS_SIGNATURE.decode('ascii')):
                    raise FormatError("Missing SIMPLE record at start of FITS header",
                                      ParseStage.SIGNATURE, file_path=file_path)
                first_record = False

            if image[:8].rstrip() == 'END' and not image[8:].strip():
                logger.debug(f"FITS header: {len(store)} records in {bytes_read} bytes")
                return store

            if image[:8].rstrip() == CONTINUE_KEYWORD:
                _append_continuation(store, last_keyword, image)
                continue

            keyword, value = parse_card(image)
            last_keyword = None
            if not keyword:
                continue
            if keyword in COMMENTARY_KEYWORDS:
                store.append(keyword, value)
            else:
                store.set(keyword, value)
                last_keyword = keyword

        if max_header_bytes is not None and bytes_read >= max_header_bytes:
            raise FormatError(f"FITS header exceeds limit of {max_header_bytes} bytes without END record",
                              ParseStage.HEADER_RECORDS, file_path=file_path)


def _read_block(stream) -> bytes:
    """Read one full block; streams such as GzipFile may return short reads."""
    chunks = []
    remaining = FITS_BLOCK_SIZE
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b''.join(chunks)
