"""Conflict detection between showtime intervals in the same room.

Intervals are half-open, ``[start, end)``: a showtime ending exactly when the
next one starts does not conflict with it.
"""
from enum import Enum


class Overlap(Enum):
    NONE = "none"
    START = "start_overlap"  # candidate starts inside the existing showtime
    END = "end_overlap"  # candidate ends inside the existing showtime
    FULL = "full_overlap"  # candidate spans the whole existing showtime


_MESSAGES = {
    Overlap.START: "The start of the new showtime overlaps the existing showtime (ID: {id})",
    Overlap.END: "The end of the new showtime overlaps the existing showtime (ID: {id})",
    Overlap.FULL: "The new showtime fully covers the existing showtime (ID: {id})",
}


def classify(candidate_start, candidate_end, existing_start, existing_end) -> Overlap:
    """Return the first matching conflict shape, in START, END, FULL order."""
    if existing_start <= candidate_start < existing_end:
        return Overlap.START
    if existing_start < candidate_end <= existing_end:
        return Overlap.END
    if candidate_start <= existing_start and candidate_end >= existing_end:
        return Overlap.FULL
    return Overlap.NONE


def find_conflict(start, end, showtimes, exclude_id=None):
    """Return ``(showtime, Overlap)`` for the first conflicting showtime, else None."""
    for showtime in showtimes:
        if exclude_id is not None and showtime.id == exclude_id:
            continue
        kind = classify(start, end, showtime.showtime_init, showtime.showtime_end)
        if kind is not Overlap.NONE:
            return showtime, kind
    return None


def conflict_message(kind: Overlap, showtime_id) -> str:
    return _MESSAGES[kind].format(id=showtime_id)
