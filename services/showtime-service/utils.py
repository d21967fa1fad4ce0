import os
import time
from typing import Any
import jwt
import requests
from dotenv import load_dotenv

load_dotenv()

_MISSING = object()

def _get_env(name: str, default: Any = _MISSING) -> str:
    value = os.getenv(name)
    if not value:
        if default is _MISSING:
            raise RuntimeError(f"{name} is not set")
        return default
    return value

# Configuration
DATABASE_URL = _get_env("DATABASE_URL", "sqlite:///cinema.db")
JWKS_URL = _get_env("JWKS_URL", None)
# HS256 shared secret of the identity issuer; only optional when tokens are checked against a JWKS
JWT_SECRET = _get_env("JWT_SECRET", None) if JWKS_URL else _get_env("JWT_SECRET")
CLIENT_ID = _get_env("KEYCLOAK_CLIENT_ID", "")

REDIS_URL = _get_env("REDIS_URL", None)
CACHE_TTL = int(_get_env("CACHE_TTL", "300"))

PORT = _get_env("PORT", "5002")
LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")

_jwks_cache: dict[str, Any] | None = None
_jwks_cache_expires_at: float = 0.0


def current_timestamp() -> int:
    return int(time.time())


def _fetch_jwks() -> dict[str, Any]:
    global _jwks_cache, _jwks_cache_expires_at

    now = time.time()
    if _jwks_cache and now < _jwks_cache_expires_at:
        return _jwks_cache

    resp = requests.get(JWKS_URL, timeout=10)
    resp.raise_for_status()
    _jwks_cache = resp.json()
    _jwks_cache_expires_at = now + 60
    return _jwks_cache


def _jwks_key(access_token: str):
    jwks = _fetch_jwks()
    unverified_header = jwt.get_unverified_header(access_token)
    kid = unverified_header.get("kid")
    if not kid:
        raise ValueError("JWT missing kid")

    for jwk in jwks.get("keys", []):
        if jwk.get("kid") == kid:
            return jwt.algorithms.RSAAlgorithm.from_jwk(jwk)
    raise ValueError("No matching JWK for kid")


def decode_and_verify_access_token(access_token: str, secret: str | None = None) -> dict[str, Any]:
    options = {
        "verify_signature": True,
        "verify_exp": True,
        "verify_aud": False,
    }

    if JWKS_URL and secret is None:
        kwargs: dict[str, Any] = {
            "key": _jwks_key(access_token),
            "algorithms": ["RS256"],
            "options": options,
        }
    else:
        kwargs = {
            "key": secret or JWT_SECRET,
            "algorithms": ["HS256"],
            "options": options,
        }

    return jwt.decode(access_token, **kwargs)


def extract_roles(decoded_token: dict[str, Any]) -> set[str]:
    roles = set()
    if decoded_token.get("role"):
        roles.add(decoded_token["role"])

    resource_access = decoded_token.get("resource_access") or {}
    client_roles = (resource_access.get(CLIENT_ID) or {}).get("roles") or []

    realm_access = decoded_token.get("realm_access") or {}
    realm_roles = realm_access.get("roles") or []

    return roles.union(client_roles).union(realm_roles)
