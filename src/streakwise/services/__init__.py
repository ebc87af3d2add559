"""Service module exports."""

from . import entries, goals, metrics, periods, reminders, reports, streaks

__all__ = [
    "entries",
    "goals",
    "metrics",
    "periods",
    "reminders",
    "reports",
    "streaks",
]
