"""EXIF capture date extraction."""

import logging
from datetime import datetime
from typing import Any, BinaryIO, Mapping, Optional, Tuple

import exifread

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# Probed in order, first parseable value wins.
CAPTURE_DATE_FIELDS = (
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
)


class MetadataDecodeError(Exception):
    """Raised when no EXIF metadata can be decoded from a file."""


def read_exif_tags(fh: BinaryIO) -> Mapping[str, Any]:
    """
    Decode EXIF tags from an open binary file.

    Args:
        fh: File handle positioned anywhere; it is rewound first

    Returns:
        Mapping of exifread tag names to tag values

    Raises:
        MetadataDecodeError: If decoding fails or the file carries no tags
    """
    try:
        fh.seek(0)
        tags = exifread.process_file(fh, details=False)
    except Exception as e:
        raise MetadataDecodeError(f"EXIF decode failed: {e}") from e

    if not tags:
        raise MetadataDecodeError("No EXIF metadata found")
    return tags


def parse_exif_datetime(value: str) -> datetime:
    """Parse an EXIF date string such as "2020:07:28 11:49:03"."""
    return datetime.strptime(value.strip().rstrip('\x00'), EXIF_DATETIME_FORMAT)


def capture_date_from_tags(tags: Mapping[str, Any]) -> Optional[Tuple[str, datetime]]:
    """
    Find the capture date in decoded tags.

    Args:
        tags: Mapping returned by read_exif_tags

    Returns:
        Tuple of (field name, parsed date) or None if no field parses
    """
    for field_name in CAPTURE_DATE_FIELDS:
        tag = tags.get(field_name)
        if tag is None:
            continue
        try:
            return field_name, parse_exif_datetime(str(tag))
        except (TypeError, ValueError) as e:
            logger.debug(f"Unparseable {field_name} value {tag!s:.40}: {e}")
    return None
