from datetime import timedelta

from .models import ACTIVE_STATUSES

DEFAULT_MAX_CONSECUTIVE_DAYS = 2


def active_dates(bookings):
    """Dates of the pending/confirmed bookings in ``bookings``."""
    return [b.booking_date for b in bookings if b.status in ACTIVE_STATUSES]


def longest_run(existing_dates, proposed_date):
    """
    Length of the longest chain of calendar-adjacent days once
    ``proposed_date`` is added. The whole sequence is rescanned because a new
    date can join two runs that were separate before.
    """
    dates = sorted(set(existing_dates) | {proposed_date})
    longest = current = 1
    for previous, day in zip(dates, dates[1:]):
        if day - previous == timedelta(days=1):
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def would_exceed_limit(existing_dates, proposed_date, max_consecutive=DEFAULT_MAX_CONSECUTIVE_DAYS):
    return longest_run(existing_dates, proposed_date) > max_consecutive
