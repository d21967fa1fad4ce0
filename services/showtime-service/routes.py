from flask import Blueprint, request, jsonify

import catalog
import reservations
import scheduler
from auth import current_identity
from errors import BadParam

api = Blueprint('api', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadParam("Invalid JSON")
    return data


# --- ROOMS Endpoints ---

@api.post("/rooms")
def create_room():
    user = current_identity()
    data = _json_body()
    room_id = catalog.create_room(user, data.get("name"), data.get("capacity"))
    return jsonify({"ok": True, "message": "Room created", "id": room_id}), 201

@api.get("/rooms")
def list_rooms():
    current_identity()
    return jsonify({"ok": True, "data": catalog.list_rooms()})


# --- MOVIES Endpoints ---

@api.post("/movies")
def create_movie():
    user = current_identity()
    data = _json_body()
    movie_id = catalog.create_movie(
        user,
        title=data.get("title"),
        description=data.get("description"),
        running_time=data.get("running_time"),
        genre=data.get("genre"),
        poster_image=data.get("poster_image"),
        release_date=data.get("release_date")
    )
    return jsonify({"ok": True, "message": "Movie created", "id": movie_id}), 201

@api.get("/movies")
def list_movies():
    current_identity()
    return jsonify({"ok": True, "data": catalog.list_movies()})

@api.get("/movies/<mid>")
def get_movie_details(mid):
    current_identity()
    return jsonify({"ok": True, "data": catalog.get_movie(mid)})

@api.patch("/movies/<mid>")
def edit_movie(mid):
    user = current_identity()
    catalog.edit_movie(user, mid, _json_body())
    return jsonify({"ok": True, "message": "Movie updated"})

@api.delete("/movies/<mid>")
def remove_movie(mid):
    user = current_identity()
    catalog.delete_movie(user, mid)
    return jsonify({"ok": True, "message": "Movie deleted"})

@api.get("/movies/genre/<genre>")
def list_movies_by_genre(genre):
    current_identity()
    return jsonify({"ok": True, "data": catalog.movies_by_genre(genre)})


# --- SHOWTIMES Endpoints ---

@api.post("/showtimes")
def add_showtime():
    user = current_identity()
    data = _json_body()
    showtime_id = scheduler.create_showtime(
        user, data.get("movie_id"), data.get("room_id"), data.get("showtime_init")
    )
    return jsonify({"ok": True, "message": "Showtime added", "id": showtime_id}), 201

@api.get("/showtimes")
def list_showtimes():
    current_identity()
    return jsonify({"ok": True, "data": scheduler.list_showtimes()})

@api.get("/showtimes/<sid>")
def get_showtime(sid):
    current_identity()
    return jsonify({"ok": True, "data": scheduler.get_showtime(sid)})

@api.patch("/showtimes/<sid>")
def edit_showtime(sid):
    user = current_identity()
    data = _json_body()
    scheduler.edit_showtime(user, sid, data.get("movie_id"), data.get("room_id"), data.get("showtime_init"))
    return jsonify({"ok": True, "message": "Showtime updated"})

@api.delete("/showtimes/<sid>")
def remove_showtime(sid):
    user = current_identity()
    scheduler.delete_showtime(user, sid)
    return jsonify({"ok": True, "message": "Showtime deleted"})


# --- SEATS Endpoints ---

@api.get("/seats/showtime/<sid>")
def view_seats(sid):
    current_identity()
    return jsonify({"ok": True, "data": reservations.list_seats(sid)})


# --- RESERVATIONS ---

@api.post("/reservations")
def create_reservation():
    user = current_identity()
    data = _json_body()
    reservation_id = reservations.reserve_seat(user, data.get("showtime_id"), data.get("seat_number"))
    return jsonify({"ok": True, "message": "Reservation created", "reservation_id": reservation_id}), 201

@api.get("/reservations/me")
def get_my_reservations():
    user = current_identity()
    return jsonify({"ok": True, "data": reservations.list_reservations(user)})

@api.patch("/reservations/<rid>")
def move_reservation(rid):
    user = current_identity()
    data = _json_body()
    reservations.reassign_seat(user, rid, data.get("seat_number"))
    return jsonify({"ok": True, "message": "Seat reassigned"})

@api.delete("/reservations/<rid>")
def cancel_reservation(rid):
    user = current_identity()
    reservations.cancel_reservation(user, rid)
    return jsonify({"ok": True, "message": "Reservation cancelled"})
