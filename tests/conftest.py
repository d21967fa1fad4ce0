import os

SECRET = "test-secret-for-showtime-service-0123456789"

os.environ["JWT_SECRET"] = SECRET
os.environ.pop("JWKS_URL", None)
os.environ.pop("REDIS_URL", None)

import jwt
import pytest

import catalog_cache
from auth import Identity, ROLE_ADMIN, ROLE_USER
from models import db, Room, Movie, Showtime
from showtime_server import create_app
import store

# fixed "current time" handed to the core operations
NOW = 1_900_000_000


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET": SECRET,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def no_cache():
    catalog_cache.set_client(None)
    yield
    catalog_cache.set_client(None)


@pytest.fixture
def admin():
    return Identity(user_id="1", role=ROLE_ADMIN)


@pytest.fixture
def user():
    return Identity(user_id="7", role=ROLE_USER)


@pytest.fixture
def other_user():
    return Identity(user_id="8", role=ROLE_USER)


def make_token(user_id, role, **claims):
    payload = {"id": user_id, "role": role}
    payload.update(claims)
    return jwt.encode(payload, SECRET, algorithm="HS256")


@pytest.fixture
def auth_header():
    def build(user_id=7, role=ROLE_USER):
        return {"Authorization": f"Bearer {make_token(user_id, role)}"}
    return build


def add_room(name="Main Room", capacity=100):
    room = Room(name=name, capacity=capacity, created_at=NOW)
    db.session.add(room)
    db.session.commit()
    return room.id


def add_movie(title="The Goonies", running_time=3600, genre="Adventure"):
    movie = Movie(
        title=title,
        description="Description",
        running_time=running_time,
        genre=genre,
        poster_image="https://example.com/poster.jpg",
        release_date="1985-07-24",
        created_at=NOW
    )
    db.session.add(movie)
    db.session.commit()
    return movie.id


@pytest.fixture
def room(app):
    return add_room()


@pytest.fixture
def movie(app):
    return add_movie()


def assert_conserved(showtime_id):
    showtime = db.session.get(Showtime, showtime_id)
    assert showtime.available_seats + store.count_occupied(showtime_id) == showtime.total_seats
    assert 0 <= showtime.available_seats <= showtime.total_seats
