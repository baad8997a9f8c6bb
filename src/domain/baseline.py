"""
Baseline lookup for daily diffs.
"""

import calendar
import logging
from datetime import date
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_MONTHS = 1


def months_before(day: date, months: int) -> date:
    """
    Subtract calendar months from a date.

    The day of month is clamped to the last day of the target month, so
    March 31 minus one month is February 28 (or 29).
    """
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class BaselineResolver:
    """
    Finds the most recent earlier date with published match data.

    The snapshot store is any object with a
    ``find_previous_date_with_data(date, lookback_months)`` method.
    """

    def __init__(self, snapshot_store, lookback_months: int = DEFAULT_LOOKBACK_MONTHS):
        if lookback_months < 1:
            raise ValueError(f"lookback_months must be at least 1, got {lookback_months}")
        self.snapshot_store = snapshot_store
        self.lookback_months = lookback_months

    def window_start(self, day: date) -> date:
        """Earliest date (inclusive) searched for a baseline of ``day``."""
        return months_before(day, self.lookback_months)

    def find_baseline(self, day: date) -> Optional[date]:
        """
        Find the baseline date for a report date.

        Args:
            day: Report date

        Returns:
            The nearest strictly earlier date within the lookback window
            that has data, or None if there is none. None is not an error.
        """
        earliest = self.window_start(day)
        logger.info(f"Searching for baseline of {day} back to {earliest}")

        found = self.snapshot_store.find_previous_date_with_data(day, self.lookback_months)
        if found is None:
            logger.warning(f"No baseline found for {day} within {self.lookback_months} month(s)")
            return None

        if not (earliest <= found < day):
            logger.warning(
                f"Ignoring baseline {found} for {day}: outside window [{earliest}, {day})"
            )
            return None

        logger.info(f"Using baseline {found} for {day}")
        return found
