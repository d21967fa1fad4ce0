import json
import logging
import redis
from utils import REDIS_URL, CACHE_TTL

logger = logging.getLogger(__name__)

PREFIX_MOVIE = "movie"

_client = None


def get_client():
    global _client
    if _client is None and REDIS_URL:
        _client = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    return _client


def set_client(client):
    """Swap the redis connection (None disables caching)."""
    global _client
    _client = client


# --- Movies ---
def get_movie(mid):
    r = get_client()
    if r is None:
        return None
    try:
        data = r.get(f"{PREFIX_MOVIE}:{mid}")
    except redis.RedisError as e:
        logger.warning("Cache read failed for movie %s: %s", mid, e)
        return None
    return json.loads(data) if data else None

def add_movie(movie_curr):
    # movie_curr is a dict
    r = get_client()
    if r is None:
        return movie_curr
    try:
        r.set(f"{PREFIX_MOVIE}:{movie_curr['id']}", json.dumps(movie_curr), ex=CACHE_TTL)
    except redis.RedisError as e:
        logger.warning("Cache write failed for movie %s: %s", movie_curr["id"], e)
    return movie_curr

def delete_movie(mid):
    r = get_client()
    if r is None:
        return
    try:
        r.delete(f"{PREFIX_MOVIE}:{mid}")
    except redis.RedisError as e:
        logger.warning("Cache eviction failed for movie %s: %s", mid, e)
