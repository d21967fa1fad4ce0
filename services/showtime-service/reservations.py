"""Booking, cancelling and moving seats.

For every showtime ``available_seats + occupied seats == total_seats``. Each
operation writes the seat record, the reservation and the counter in one
transaction; the counter moves with an atomic SQL increment, never from a
value read earlier. A second booking of the same seat is stopped by the
unique ``(showtime_id, seat_number)`` constraint when it slips past the
pre-check, and reported with the same Conflict.
"""
import logging

import store
from auth import require_role, ROLE_USER
from errors import BadParam, Conflict, ServerError, require_int
from utils import current_timestamp

logger = logging.getLogger(__name__)

SEAT_OCCUPIED = "Seat is occupied"
RESERVATION_NOT_FOUND = "Reservation not found"


def reservation_cutoff(showtime):
    # midpoint of the whole window, turnaround included
    return showtime.showtime_init + (showtime.showtime_end - showtime.showtime_init) / 2


def _check_seat_in_range(seat_number, capacity):
    if not 1 <= seat_number <= capacity:
        raise Conflict("Seat number is out of range")


def reserve_seat(actor, showtime_id, seat_number, now=None):
    require_role(actor, ROLE_USER)
    if showtime_id is None or seat_number is None:
        raise BadParam("All fields are required")
    showtime_id = require_int(showtime_id, "showtime_id")
    seat_number = require_int(seat_number, "seat_number")
    now = current_timestamp() if now is None else now

    def work():
        showtime = store.get_showtime(showtime_id)
        if showtime is None:
            raise Conflict("Showtime does not exist")
        if now >= reservation_cutoff(showtime):
            raise Conflict("The screening is already substantially underway")
        _check_seat_in_range(seat_number, store.get_room_capacity(showtime.room_id))
        if store.seat_taken(showtime_id, seat_number):
            raise Conflict(SEAT_OCCUPIED)

        seat = store.insert_seat(showtime_id, seat_number)
        reservation = store.insert_reservation(actor.user_id, showtime_id, seat.id, now)
        if not store.take_available_seat(showtime_id):
            raise Conflict("No seats available")
        return reservation.id

    try:
        reservation_id = store.run_in_transaction(work, integrity_conflict=SEAT_OCCUPIED)
    except Conflict as exc:
        logger.warning("Seat %s for showtime %s refused to user %s: %s",
                       seat_number, showtime_id, actor.user_id, exc.message)
        raise
    logger.info("Reservation %s: seat %s for showtime %s by user %s",
                reservation_id, seat_number, showtime_id, actor.user_id)
    return reservation_id


def _owned_reservation(actor, reservation_id):
    reservation = store.get_reservation(reservation_id)
    # a stranger's reservation looks exactly like a missing one
    if reservation is None or reservation.user_id != actor.user_id:
        raise Conflict(RESERVATION_NOT_FOUND)
    return reservation


def cancel_reservation(actor, reservation_id):
    require_role(actor, ROLE_USER)
    reservation_id = require_int(reservation_id, "reservation_id")

    def work():
        reservation = _owned_reservation(actor, reservation_id)
        showtime_id, seat_id = reservation.showtime_id, reservation.seat_id
        # ownership is part of the DELETE, so a concurrent cancel finds nothing
        if not store.delete_reservation(reservation_id, actor.user_id):
            raise Conflict(RESERVATION_NOT_FOUND)
        store.delete_seat(seat_id)
        if not store.release_seat(showtime_id):
            logger.error("Seat counter of showtime %s already at capacity on cancel", showtime_id)
            raise ServerError("Seat counter out of step")
        return showtime_id

    showtime_id = store.run_in_transaction(work)
    logger.info("Reservation %s for showtime %s cancelled by user %s", reservation_id, showtime_id, actor.user_id)


def reassign_seat(actor, reservation_id, new_seat_number):
    require_role(actor, ROLE_USER)
    reservation_id = require_int(reservation_id, "reservation_id")
    new_seat_number = require_int(new_seat_number, "seat_number")

    def work():
        reservation = _owned_reservation(actor, reservation_id)
        seat = reservation.seat
        if seat.seat_number == new_seat_number:
            return seat.seat_number
        _check_seat_in_range(new_seat_number, store.get_room_capacity(reservation.showtime.room_id))
        if store.seat_taken(reservation.showtime_id, new_seat_number):
            raise Conflict(SEAT_OCCUPIED)
        previous = seat.seat_number
        store.renumber_seat(seat.id, new_seat_number)
        return previous

    previous = store.run_in_transaction(work, integrity_conflict=SEAT_OCCUPIED)
    logger.info("Reservation %s moved from seat %s to seat %s", reservation_id, previous, new_seat_number)


def list_seats(showtime_id):
    showtime_id = require_int(showtime_id, "showtime_id")
    if store.get_showtime(showtime_id) is None:
        raise BadParam("Showtime does not exist")
    return [seat.to_dict() for seat in store.list_seats(showtime_id)]


def list_reservations(actor):
    require_role(actor, ROLE_USER)
    return [r.to_dict() for r in store.list_reservations_for_user(actor.user_id)]
