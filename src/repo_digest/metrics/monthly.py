"""Calendar-month bucketing for pull request counts.

Slot 0 is the month ending at ``now``; slot ``i`` covers the half-open range
``(now - (i + 1) months, now - i months]``. Months are calendar months
counted back from ``now``, not fixed 30-day windows.
"""

from datetime import datetime

from repo_digest.timeutil import subtract_months


def month_boundaries(now: datetime, since: datetime) -> list[datetime]:
    """List the upper boundary of every slot between ``now`` and ``since``.

    Args:
        now: Newest instant of the range.
        since: Oldest instant of the range.

    Returns:
        ``now``, ``now`` minus one month, ... for every boundary not older than
        ``since``. Empty when ``since`` is after ``now``.
    """
    boundaries = []
    months = 0
    boundary = now
    while boundary >= since:
        boundaries.append(boundary)
        months += 1
        boundary = subtract_months(now, months)
    return boundaries


def empty_counts(now: datetime, since: datetime) -> list[int]:
    """Zeroed counts array with one slot per month between ``now`` and ``since``."""
    return [0] * len(month_boundaries(now, since))


def bucket_index(created: datetime, now: datetime, slot_count: int) -> int:
    """Return the slot a creation instant falls into.

    Instants after ``now`` go to slot 0; instants older than the last slot go
    to the last slot.
    """
    if slot_count <= 0:
        msg = "slot_count must be positive"
        raise ValueError(msg)
    for i in range(slot_count - 1):
        if created > subtract_months(now, i + 1):
            return i
    return slot_count - 1


def month_labels(now: datetime, slot_count: int) -> list[str]:
    """``YYYY-MM`` label of each slot's upper boundary."""
    return [subtract_months(now, i).strftime("%Y-%m") for i in range(slot_count)]
