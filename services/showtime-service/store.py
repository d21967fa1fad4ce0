"""Persistence for rooms, showtimes, seats and reservations.

Nothing here decides anything: callers check business rules and run these
primitives inside :func:`run_in_transaction`, which owns commit, rollback and
the mapping of storage failures onto the error taxonomy.
"""
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from errors import ServiceError, Conflict, ServerError
from models import db, Room, Showtime, Seat, Reservation

logger = logging.getLogger(__name__)

DEADLOCK_RETRIES = 1


def run_in_transaction(work, integrity_conflict: str | None = None):
    """Run ``work()`` as one unit and commit it.

    Any failure rolls back every write issued by ``work``. A unique-constraint
    violation means a concurrent request won the race; when
    ``integrity_conflict`` is given it is reported as that same Conflict.
    Deadlocks and busy databases are retried once.
    """
    attempt = 0
    while True:
        try:
            result = work()
            db.session.commit()
            return result
        except ServiceError:
            db.session.rollback()
            raise
        except IntegrityError as exc:
            db.session.rollback()
            if integrity_conflict:
                logger.info("Constraint violation mapped to conflict: %s", exc.orig)
                raise Conflict(integrity_conflict) from exc
            logger.exception("Integrity error")
            raise ServerError("Database error") from exc
        except OperationalError as exc:
            db.session.rollback()
            if attempt < DEADLOCK_RETRIES:
                attempt += 1
                logger.warning("Transaction aborted (%s), retrying", exc.orig)
                continue
            logger.exception("Transaction failed after retry")
            raise ServerError("Database error") from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Database error")
            raise ServerError("Database error") from exc


# --- Capacity store ---

def get_room_capacity(room_id):
    return db.session.scalar(select(Room.capacity).where(Room.id == room_id))


def lock_room_schedule(room_id):
    """Take the room's row lock for the rest of the transaction.

    Returns the room capacity, or None when the room does not exist.
    """
    result = db.session.execute(
        update(Room)
        .where(Room.id == room_id)
        .values(schedule_version=Room.schedule_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    return get_room_capacity(room_id)


# --- Schedule registry ---

def list_showtimes_in_room(room_id):
    return db.session.scalars(
        select(Showtime).where(Showtime.room_id == room_id).order_by(Showtime.showtime_init, Showtime.id)
    ).all()


def list_showtimes():
    return db.session.scalars(select(Showtime).order_by(Showtime.id)).all()


def get_showtime(showtime_id):
    return db.session.get(Showtime, showtime_id)


def insert_showtime(**fields):
    showtime = Showtime(**fields)
    db.session.add(showtime)
    db.session.flush()
    return showtime.id


def update_showtime(showtime_id, fields):
    db.session.execute(
        update(Showtime)
        .where(Showtime.id == showtime_id)
        .values(**fields)
        .execution_options(synchronize_session=False)
    )


def reconcile_showtime_capacity(showtime_id, capacity):
    # the occupied count is read by the UPDATE itself, so a reservation
    # committing meanwhile is applied on top of the new counter
    occupied = (
        select(func.count(Seat.id))
        .where(Seat.showtime_id == showtime_id)
        .scalar_subquery()
    )
    db.session.execute(
        update(Showtime)
        .where(Showtime.id == showtime_id)
        .values(total_seats=capacity, available_seats=capacity - occupied)
        .execution_options(synchronize_session=False)
    )


def delete_showtime(showtime):
    db.session.delete(showtime)
    db.session.flush()


def take_available_seat(showtime_id) -> bool:
    result = db.session.execute(
        update(Showtime)
        .where(Showtime.id == showtime_id, Showtime.available_seats > 0)
        .values(available_seats=Showtime.available_seats - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def release_seat(showtime_id) -> bool:
    result = db.session.execute(
        update(Showtime)
        .where(Showtime.id == showtime_id, Showtime.available_seats < Showtime.total_seats)
        .values(available_seats=Showtime.available_seats + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# --- Seat ledger ---

def seat_taken(showtime_id, seat_number) -> bool:
    count = db.session.scalar(
        select(func.count(Seat.id)).where(Seat.showtime_id == showtime_id, Seat.seat_number == seat_number)
    )
    return count > 0


def list_seats(showtime_id):
    return db.session.scalars(
        select(Seat).where(Seat.showtime_id == showtime_id).order_by(Seat.seat_number)
    ).all()


def count_occupied(showtime_id) -> int:
    return db.session.scalar(select(func.count(Seat.id)).where(Seat.showtime_id == showtime_id))


def highest_seat_number(showtime_id) -> int:
    return db.session.scalar(
        select(func.coalesce(func.max(Seat.seat_number), 0)).where(Seat.showtime_id == showtime_id)
    )


def insert_seat(showtime_id, seat_number):
    seat = Seat(showtime_id=showtime_id, seat_number=seat_number)
    db.session.add(seat)
    db.session.flush()
    return seat


def renumber_seat(seat_id, seat_number):
    db.session.execute(
        update(Seat)
        .where(Seat.id == seat_id)
        .values(seat_number=seat_number)
        .execution_options(synchronize_session=False)
    )


def delete_seat(seat_id):
    db.session.execute(
        delete(Seat).where(Seat.id == seat_id).execution_options(synchronize_session=False)
    )


def insert_reservation(user_id, showtime_id, seat_id, reserved_at):
    reservation = Reservation(
        user_id=user_id,
        showtime_id=showtime_id,
        seat_id=seat_id,
        reservation_date=reserved_at
    )
    db.session.add(reservation)
    db.session.flush()
    return reservation


def get_reservation(reservation_id):
    return db.session.get(Reservation, reservation_id)


def list_reservations_for_user(user_id):
    return db.session.scalars(
        select(Reservation).where(Reservation.user_id == user_id).order_by(Reservation.reservation_date.desc())
    ).all()


def delete_reservation(reservation_id, user_id) -> bool:
    """Delete the reservation only if ``user_id`` owns it."""
    result = db.session.execute(
        delete(Reservation)
        .where(Reservation.id == reservation_id, Reservation.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
