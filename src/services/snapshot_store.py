"""
Threat match snapshot storage.

Snapshots are written to S3 by the batch job, one JSON-lines object per
date:

    {REPORT_KEY_PREFIX}{yyyy-mm}/threat_matches_{yyyy-mm-dd}.jsonl

The first line is a free-text header. Every following line holds one
registrar's matches:

    {"registrarEmailAddress": "...", "threatMatches": [{"threatType": ..., ...}]}

This module satisfies the snapshot store interface used by the domain
layer (``get_snapshot`` and ``find_previous_date_with_data``).
"""

import json
import logging
import os
from datetime import date, timedelta
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from domain.baseline import months_before
from domain.errors import SnapshotError, SnapshotFormatError, SnapshotNotFoundError
from domain.models import RegistrarThreatMatches, Snapshot
from services import s3 as s3_service

logger = logging.getLogger(__name__)

# Configuration from environment variables
REPORT_BUCKET = os.environ.get('REPORT_BUCKET')
REPORT_KEY_PREFIX = os.environ.get('REPORT_KEY_PREFIX', 'threat-reports/')


def snapshot_key(day: date) -> str:
    """
    Build the S3 key of the snapshot for a date.

    Example:
        >>> snapshot_key(date(2025, 11, 12))
        'threat-reports/2025-11/threat_matches_2025-11-12.jsonl'
    """
    return f"{REPORT_KEY_PREFIX}{day:%Y-%m}/threat_matches_{day.isoformat()}.jsonl"


def _require_bucket() -> str:
    if not REPORT_BUCKET:
        raise SnapshotError("REPORT_BUCKET environment variable not set")
    return REPORT_BUCKET


def parse_snapshot(content: str, source: str = "<snapshot>") -> Snapshot:
    """
    Parse JSON-lines snapshot content.

    Args:
        content: Full object content (header line included)
        source: Name used in error messages

    Returns:
        Snapshot: One RegistrarThreatMatches per registrar

    Raises:
        SnapshotFormatError: If a line is not valid JSON, an entry is
            malformed, or a registrar appears twice
    """
    lines = content.splitlines()
    entries: List[RegistrarThreatMatches] = []
    seen_addresses = set()

    # Skip the header at line 0
    for line_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        try:
            entry = RegistrarThreatMatches.from_dict(json.loads(line))
        except (json.JSONDecodeError, ValueError, RecursionError) as e:
            raise SnapshotFormatError(f"Malformed entry in {source} line {line_number}: {e}") from e

        if entry.registrar_email_address in seen_addresses:
            raise SnapshotFormatError(
                f"Duplicate registrar {entry.registrar_email_address} in {source} line {line_number}"
            )
        seen_addresses.add(entry.registrar_email_address)
        entries.append(entry)

    return frozenset(entries)


def get_snapshot(day: date) -> Snapshot:
    """
    Fetch and parse the snapshot for a date.

    Args:
        day: Snapshot date

    Returns:
        Snapshot for that date

    Raises:
        SnapshotNotFoundError: If no snapshot object exists
        SnapshotFormatError: If the object is malformed
        SnapshotError: For any other storage failure
    """
    bucket = _require_bucket()
    key = snapshot_key(day)
    logger.info(f"Fetching snapshot for {day}: s3://{bucket}/{key}")

    try:
        raw = s3_service.fetch_object(bucket, key)
    except FileNotFoundError as e:
        raise SnapshotNotFoundError(f"No snapshot for {day}: {e}") from e
    except (ClientError, BotoCoreError, ValueError) as e:
        raise SnapshotError(f"Failed to fetch snapshot for {day}: {e}") from e

    try:
        content = raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise SnapshotFormatError(f"Snapshot for {day} is not valid UTF-8: {e}") from e

    snapshot = parse_snapshot(content, source=key)
    logger.info(f"Loaded snapshot for {day}: {len(snapshot)} registrar(s)")
    return snapshot


def has_data(day: date) -> bool:
    """Check if a non-empty snapshot object was published for a date."""
    bucket = _require_bucket()
    try:
        return s3_service.object_exists_and_not_empty(bucket, snapshot_key(day))
    except (ClientError, BotoCoreError) as e:
        raise SnapshotError(f"Failed to check snapshot for {day}: {e}") from e


def find_previous_date_with_data(day: date, lookback_months: int) -> Optional[date]:
    """
    Find the most recent earlier date with a published snapshot.

    Searches one day at a time from the day before ``day`` back to
    ``lookback_months`` months before it (inclusive).

    Args:
        day: Report date
        lookback_months: Size of the search window in calendar months

    Returns:
        The nearest earlier date with data, or None if there is none

    Raises:
        SnapshotError: If storage cannot be queried
    """
    earliest = months_before(day, lookback_months)
    candidate = day - timedelta(days=1)

    while candidate >= earliest:
        if has_data(candidate):
            logger.info(f"Found previous snapshot for {day} on {candidate}")
            return candidate
        candidate -= timedelta(days=1)

    logger.info(f"No snapshot found between {earliest} and {day - timedelta(days=1)}")
    return None
