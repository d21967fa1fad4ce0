"""Creating, editing and deleting showtimes.

A showtime occupies its room over ``[start, start + runtime + TURNAROUND)``.
Each write runs as a single transaction that first locks the room's schedule,
so two admins scheduling the same room are serialised and cannot both pass
the overlap check.
"""
import logging

import catalog
import store
from auth import require_role, ROLE_ADMIN
from errors import BadParam, Conflict, require_int
from overlap import find_conflict, conflict_message
from utils import current_timestamp

logger = logging.getLogger(__name__)

TURNAROUND = 1800  # cleaning/changeover buffer, seconds


def showtime_end(start, runtime):
    return start + runtime + TURNAROUND


def _validate(movie_id, room_id, start, now):
    if movie_id is None or room_id is None or start is None:
        raise BadParam("All fields are required")
    movie_id = require_int(movie_id, "movie_id")
    room_id = require_int(room_id, "room_id")
    start = require_int(start, "showtime_init")
    if start <= now:
        raise Conflict("Cannot schedule a showtime in the past")
    return movie_id, room_id, start


def _resolve(movie_id, room_id):
    """Runtime of the movie and capacity of the (now locked) room."""
    # lock before any read so the schedule read afterwards is current
    capacity = store.lock_room_schedule(room_id)
    runtime = catalog.get_runtime(movie_id)
    if runtime is None:
        raise Conflict("Movie does not exist")
    if capacity is None:
        raise BadParam("Room not found")
    return runtime, capacity


def _check_overlap(room_id, start, end, exclude_id=None):
    found = find_conflict(start, end, store.list_showtimes_in_room(room_id), exclude_id=exclude_id)
    if found:
        existing, kind = found
        logger.warning("Showtime in room %s rejected: %s with showtime %s", room_id, kind.value, existing.id)
        raise Conflict(conflict_message(kind, existing.id), showtime_id=existing.id, overlap=kind.value)


def create_showtime(actor, movie_id, room_id, start, now=None):
    require_role(actor, ROLE_ADMIN)
    now = current_timestamp() if now is None else now
    movie_id, room_id, start = _validate(movie_id, room_id, start, now)

    def work():
        runtime, capacity = _resolve(movie_id, room_id)
        end = showtime_end(start, runtime)
        _check_overlap(room_id, start, end)
        return store.insert_showtime(
            movie_id=movie_id,
            room_id=room_id,
            showtime_init=start,
            showtime_end=end,
            available_seats=capacity,
            total_seats=capacity,
            created_at=now
        )

    showtime_id = store.run_in_transaction(work)
    logger.info("Showtime %s created: movie %s in room %s at %s", showtime_id, movie_id, room_id, start)
    return showtime_id


def edit_showtime(actor, showtime_id, movie_id, room_id, start, now=None):
    """Move a showtime to another movie, room or start time.

    The seat counter is kept as is when the room stays the same. Moving to
    another room resizes ``total_seats`` to its capacity and derives
    ``available_seats`` from the seats already taken; the move is refused if
    a taken seat number does not exist in the new room.
    """
    require_role(actor, ROLE_ADMIN)
    now = current_timestamp() if now is None else now
    showtime_id = require_int(showtime_id, "showtime_id")
    movie_id, room_id, start = _validate(movie_id, room_id, start, now)

    def work():
        runtime, capacity = _resolve(movie_id, room_id)
        showtime = store.get_showtime(showtime_id)
        if showtime is None:
            raise Conflict("Showtime does not exist")
        end = showtime_end(start, runtime)
        _check_overlap(room_id, start, end, exclude_id=showtime_id)

        room_changed = showtime.room_id != room_id
        if room_changed and store.highest_seat_number(showtime_id) > capacity:
            raise Conflict("The new room is too small for the seats already reserved")

        store.update_showtime(showtime_id, {
            "movie_id": movie_id,
            "room_id": room_id,
            "showtime_init": start,
            "showtime_end": end,
        })
        if room_changed:
            store.reconcile_showtime_capacity(showtime_id, capacity)

    store.run_in_transaction(work)
    logger.info("Showtime %s edited: movie %s in room %s at %s", showtime_id, movie_id, room_id, start)


def delete_showtime(actor, showtime_id):
    require_role(actor, ROLE_ADMIN)
    showtime_id = require_int(showtime_id, "showtime_id")

    def work():
        showtime = store.get_showtime(showtime_id)
        if showtime is None:
            raise Conflict("Showtime does not exist")
        store.delete_showtime(showtime)

    store.run_in_transaction(work)
    logger.info("Showtime %s deleted", showtime_id)


def list_showtimes():
    return [{"id": s.id, "movie_id": s.movie_id} for s in store.list_showtimes()]


def get_showtime(showtime_id):
    showtime_id = require_int(showtime_id, "showtime_id")
    showtime = store.get_showtime(showtime_id)
    if showtime is None:
        raise BadParam("Showtime not found")
    return showtime.to_dict()
