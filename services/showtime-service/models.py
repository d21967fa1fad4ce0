from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, Text, ForeignKey, CheckConstraint, UniqueConstraint
from typing import Optional, List

from utils import current_timestamp

db = SQLAlchemy()

class Room(db.Model):
    __tablename__ = 'rooms'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    # bumped by every scheduling write; updating it takes the room's row lock
    schedule_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False, default=current_timestamp)

    showtimes: Mapped[List["Showtime"]] = relationship(back_populates="room", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('capacity > 0', name='ck_room_capacity_positive'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "created_at": self.created_at
        }

class Movie(db.Model):
    __tablename__ = 'movies'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    running_time: Mapped[int] = mapped_column(Integer, nullable=False) # Seconds
    genre: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    poster_image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    release_date: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False, default=current_timestamp)

    showtimes: Mapped[List["Showtime"]] = relationship(back_populates="movie", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('running_time > 0', name='ck_movie_running_time_positive'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "running_time": self.running_time,
            "genre": self.genre,
            "poster_image": self.poster_image,
            "release_date": self.release_date,
            "created_at": self.created_at
        }

class Showtime(db.Model):
    __tablename__ = 'showtimes'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    movie_id: Mapped[int] = mapped_column(ForeignKey('movies.id', ondelete='CASCADE'), nullable=False, index=True)
    room_id: Mapped[int] = mapped_column(ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False, index=True)
    showtime_init: Mapped[int] = mapped_column(Integer, nullable=False)
    showtime_end: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False, default=current_timestamp)

    movie: Mapped["Movie"] = relationship(back_populates="showtimes")
    room: Mapped["Room"] = relationship(back_populates="showtimes")
    seats: Mapped[List["Seat"]] = relationship(back_populates="showtime", cascade="all, delete-orphan")
    reservations: Mapped[List["Reservation"]] = relationship(back_populates="showtime", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('available_seats >= 0 AND available_seats <= total_seats', name='ck_showtime_seat_counter'),
        CheckConstraint('showtime_end > showtime_init', name='ck_showtime_interval'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "movie_id": self.movie_id,
            "room_id": self.room_id,
            "showtime_init": self.showtime_init,
            "showtime_end": self.showtime_end,
            "available_seats": self.available_seats,
            "total_seats": self.total_seats,
            "created_at": self.created_at
        }

class Seat(db.Model):
    __tablename__ = 'seats'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    showtime_id: Mapped[int] = mapped_column(ForeignKey('showtimes.id', ondelete='CASCADE'), nullable=False)
    seat_number: Mapped[int] = mapped_column(Integer, nullable=False)

    showtime: Mapped["Showtime"] = relationship(back_populates="seats")
    reservation: Mapped[Optional["Reservation"]] = relationship(back_populates="seat", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('showtime_id', 'seat_number', name='uq_seat_per_showtime'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "showtime_id": self.showtime_id,
            "seat_number": self.seat_number
        }

class Reservation(db.Model):
    __tablename__ = 'reservations'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True) # Identity token subject
    showtime_id: Mapped[int] = mapped_column(ForeignKey('showtimes.id', ondelete='CASCADE'), nullable=False)
    seat_id: Mapped[int] = mapped_column(ForeignKey('seats.id', ondelete='CASCADE'), unique=True, nullable=False)
    reservation_date: Mapped[int] = mapped_column(Integer, nullable=False, default=current_timestamp)

    showtime: Mapped["Showtime"] = relationship(back_populates="reservations")
    seat: Mapped["Seat"] = relationship(back_populates="reservation")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "showtime_id": self.showtime_id,
            "seat_id": self.seat_id,
            "seat_number": self.seat.seat_number,
            "reservation_date": self.reservation_date
        }
