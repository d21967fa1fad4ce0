import logging

from sqlalchemy import select, func

import catalog_cache
import store
from auth import require_role, ROLE_ADMIN
from errors import BadParam, Conflict, require_int
from models import db, Room, Movie, Showtime
from utils import current_timestamp

logger = logging.getLogger(__name__)

MOVIE_FIELDS = ("title", "description", "running_time", "genre", "poster_image", "release_date")


# --- Rooms ---

def create_room(actor, name, capacity):
    require_role(actor, ROLE_ADMIN)
    if not name or capacity is None:
        raise BadParam("All fields are required")
    capacity = require_int(capacity, "capacity", minimum=1)

    def work():
        if db.session.scalar(select(func.count(Room.id)).where(Room.name == name)):
            raise Conflict("Room already exists")
        room = Room(name=name, capacity=capacity, created_at=current_timestamp())
        db.session.add(room)
        db.session.flush()
        return room.id

    room_id = store.run_in_transaction(work, integrity_conflict="Room already exists")
    logger.info("Room %s created (%s, %d seats)", room_id, name, capacity)
    return room_id


def list_rooms():
    return [room.to_dict() for room in db.session.scalars(select(Room).order_by(Room.id))]


# --- Movies ---

def create_movie(actor, title, description, running_time, genre, poster_image, release_date):
    """Add a movie; ``running_time`` is given in minutes and stored in seconds."""
    require_role(actor, ROLE_ADMIN)
    if not all([title, description, running_time, genre, poster_image, release_date]):
        raise BadParam("All fields are required")
    minutes = require_int(running_time, "running_time", minimum=1)

    def work():
        if db.session.scalar(select(func.count(Movie.id)).where(Movie.title == title)):
            raise Conflict("Movie already exists")
        movie = Movie(
            title=title,
            description=description,
            running_time=minutes * 60,
            genre=genre,
            poster_image=poster_image,
            release_date=release_date,
            created_at=current_timestamp()
        )
        db.session.add(movie)
        db.session.flush()
        return movie.id

    movie_id = store.run_in_transaction(work, integrity_conflict="Movie already exists")
    logger.info("Movie %s created (%s)", movie_id, title)
    return movie_id


def list_movies():
    return [
        {"id": movie_id, "title": title}
        for movie_id, title in db.session.execute(select(Movie.id, Movie.title).order_by(Movie.id))
    ]


def _load_movie(movie_id):
    cached = catalog_cache.get_movie(movie_id)
    if cached:
        return cached
    movie = db.session.get(Movie, movie_id)
    if movie is None:
        return None
    return catalog_cache.add_movie(movie.to_dict())


def get_movie(movie_id):
    movie_id = require_int(movie_id, "movie_id")
    movie = _load_movie(movie_id)
    if movie is None:
        raise BadParam("Movie not found")
    return movie


def get_runtime(movie_id):
    """Running time of a movie in seconds, or None if it does not exist."""
    movie = _load_movie(movie_id)
    return movie["running_time"] if movie else None


def movies_by_genre(genre):
    if not genre:
        raise BadParam("Movie genre not provided")
    movies = db.session.scalars(select(Movie).where(Movie.genre == genre).order_by(Movie.id)).all()
    if not movies:
        raise BadParam("No movies with this genre")
    return [movie.to_dict() for movie in movies]


def edit_movie(actor, movie_id, data):
    require_role(actor, ROLE_ADMIN)
    movie_id = require_int(movie_id, "movie_id")
    fields = {k: v for k, v in (data or {}).items() if k in MOVIE_FIELDS}
    if not fields or any(v in (None, "") for v in fields.values()):
        raise BadParam("All fields are required")
    if "running_time" in fields:
        fields["running_time"] = require_int(fields["running_time"], "running_time", minimum=1) * 60

    def work():
        movie = db.session.get(Movie, movie_id)
        if movie is None:
            raise Conflict("Movie does not exist")
        if "running_time" in fields and fields["running_time"] != movie.running_time:
            scheduled = db.session.scalar(select(func.count(Showtime.id)).where(Showtime.movie_id == movie_id))
            if scheduled:
                raise Conflict("Cannot change the running time of a movie with scheduled showtimes")
        for key, value in fields.items():
            setattr(movie, key, value)
        db.session.flush()

    store.run_in_transaction(work, integrity_conflict="Movie already exists")
    catalog_cache.delete_movie(movie_id)
    logger.info("Movie %s edited (%s)", movie_id, ", ".join(sorted(fields)))


def delete_movie(actor, movie_id):
    require_role(actor, ROLE_ADMIN)
    movie_id = require_int(movie_id, "movie_id")

    def work():
        movie = db.session.get(Movie, movie_id)
        if movie is None:
            raise Conflict("Movie does not exist")
        db.session.delete(movie)
        db.session.flush()

    store.run_in_transaction(work)
    catalog_cache.delete_movie(movie_id)
    logger.info("Movie %s deleted", movie_id)
