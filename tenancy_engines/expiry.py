"""
Module: tenancy_engines.expiry
Responsibility:
    Pure predicates behind the daily sweep: which tenancies are expiring
    soon, whether a reminder is due, whether a served notice has run its
    course, and when the next sweep should fire.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  "Now" is always passed in.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta


def is_expiring_soon(end_date: date | None, today: date, window_days: int) -> bool:
    """End date falls within ``[today, today + window_days]``."""
    if end_date is None:
        return False
    return today <= end_date <= today + timedelta(days=window_days)


def reminder_due(last_reminder_on: date | None, today: date, cooldown_days: int) -> bool:
    """At most one reminder per cooldown window."""
    if last_reminder_on is None:
        return True
    return last_reminder_on <= today - timedelta(days=cooldown_days)


def termination_reached(termination_date: date | None, today: date) -> bool:
    """The lodger's last day is behind us."""
    return termination_date is not None and termination_date < today


def next_sweep_at(now: datetime, hour: int) -> datetime:
    """Next occurrence of ``hour``:00 strictly after ``now`` (same tzinfo)."""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def should_sweep(last_run: datetime | None, now: datetime, hour: int) -> bool:
    """True once per day, at or after ``hour``:00."""
    if last_run is None:
        return now.hour >= hour
    return now >= next_sweep_at(last_run, hour)
