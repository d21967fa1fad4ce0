import concurrent.futures
import itertools
import os
import sys
import time

import jwt
import requests

# CONFIG
SHOWTIME_SERVICE_URL = os.getenv("SHOWTIME_SERVICE_URL", "http://localhost:5002")
JWT_SECRET = os.getenv("JWT_SECRET")

RESET = "\033[0m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
CYAN = "\033[96m"

print(f"{CYAN}--- Showtime Service Seat Race Test ---{RESET}")
print("MULTIPLE users try to book the SAME seat at once, for 5 consecutive seats.")
print("For each seat exactly ONE booking must succeed and the others must get 409 Conflict.\n")

if not JWT_SECRET:
    print(f"{RED}JWT_SECRET is not set (same secret as the service).{RESET}")
    sys.exit(1)


def make_token(user_id, role):
    return jwt.encode({"id": user_id, "role": role}, JWT_SECRET, algorithm="HS256")


ADMIN_HEADERS = {"Authorization": f"Bearer {make_token(1, 'admin')}"}
USER_TOKENS = [(f"user{i}", make_token(100 + i, "user")) for i in range(1, 5)]


def setup_showtime():
    stamp = int(time.time())
    r = requests.post(f"{SHOWTIME_SERVICE_URL}/rooms", json={"name": f"Stress {stamp}", "capacity": 50},
                      headers=ADMIN_HEADERS, timeout=5)
    r.raise_for_status()
    room_id = r.json()["id"]

    r = requests.post(f"{SHOWTIME_SERVICE_URL}/movies", json={
        "title": f"Stress Movie {stamp}",
        "description": "Race condition test",
        "running_time": 90,
        "genre": "Test",
        "poster_image": "https://example.com/poster.jpg",
        "release_date": "2024",
    }, headers=ADMIN_HEADERS, timeout=5)
    r.raise_for_status()
    movie_id = r.json()["id"]

    r = requests.post(f"{SHOWTIME_SERVICE_URL}/showtimes", json={
        "movie_id": movie_id,
        "room_id": room_id,
        "showtime_init": stamp + 3600,
    }, headers=ADMIN_HEADERS, timeout=5)
    r.raise_for_status()
    return r.json()["id"]


print(f"{CYAN}[1] Creating room, movie and showtime...{RESET}")
try:
    sid = setup_showtime()
    print(f"Showtime: {sid}")
except Exception as e:
    print(f"{RED}Setup Error: {e}{RESET}")
    sys.exit(1)


def attempt_booking(args):
    username, access_token, showtime_id, seat_number = args
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        r = requests.post(f"{SHOWTIME_SERVICE_URL}/reservations",
                          json={"showtime_id": showtime_id, "seat_number": seat_number},
                          headers=headers, timeout=10)
        return username, r.status_code, r.text
    except Exception as e:
        return username, 999, str(e)


def run_test_for_seat(seat_number, request_count=20):
    print(f"\n{CYAN}[Test Seat {seat_number}] Simulating race condition...{RESET}")

    user_cycle = itertools.cycle(USER_TOKENS)
    tasks = []
    for _ in range(request_count):
        u, t = next(user_cycle)
        tasks.append((u, t, sid, seat_number))

    results = []
    start_time = time.time()

    with concurrent.futures.ThreadPoolExecutor(max_workers=10) as executor:
        futures = [executor.submit(attempt_booking, t) for t in tasks]
        for future in concurrent.futures.as_completed(futures):
            u, status, text = future.result()
            results.append(status)
            if status == 201:
                print(f"  -> [{u}] {GREEN}SUCCESS (201){RESET}")
            elif status == 409:
                print(f"  -> [{u}] {YELLOW}CONFLICT (409){RESET}")
            else:
                print(f"  -> [{u}] {RED}FAIL ({status}) {text[:120]}{RESET}")

    duration = time.time() - start_time
    successes = results.count(201)
    conflicts = results.count(409)
    others = len(results) - successes - conflicts

    print(f"  Requests: {request_count} | {GREEN}Success: {successes}{RESET} | {YELLOW}Conflict: {conflicts}{RESET} | {RED}Error: {others}{RESET} | Time: {duration:.2f}s")

    if successes == 1 and others == 0:
        print(f"  {GREEN}>>> PASS: Exactly one booking succeeded. <<< {RESET}")
        return True
    elif successes == 0:
        print(f"  {RED}>>> FAIL: Zero bookings. <<< {RESET}")
        return False
    else:
        print(f"  {RED}>>> CRITICAL FAIL: {successes} bookings succeeded for same seat! Race condition! <<< {RESET}")
        return False


def check_counter():
    r = requests.get(f"{SHOWTIME_SERVICE_URL}/showtimes/{sid}", headers=ADMIN_HEADERS, timeout=5)
    showtime = r.json()["data"]
    seats = requests.get(f"{SHOWTIME_SERVICE_URL}/seats/showtime/{sid}", headers=ADMIN_HEADERS, timeout=5).json()["data"]
    ok = showtime["available_seats"] + len(seats) == showtime["total_seats"]
    colour = GREEN if ok else RED
    print(f"{colour}available_seats={showtime['available_seats']} occupied={len(seats)} total={showtime['total_seats']}{RESET}")
    return ok


print(f"\n{CYAN}[2] Starting 5 Consecutive Seat Tests...{RESET}")

overall_pass = True

for seat in range(1, 6):
    if not run_test_for_seat(seat):
        overall_pass = False
    time.sleep(1)

print(f"\n{CYAN}[3] Checking seat counter...{RESET}")
if not check_counter():
    overall_pass = False

print(f"\n{CYAN}--- Final Summary ---{RESET}")
if overall_pass:
    print(f"{GREEN}ALL TESTS PASSED.{RESET}")
else:
    print(f"{RED}SOME TESTS FAILED.{RESET}")
    sys.exit(1)
