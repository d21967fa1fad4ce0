import logging
from dataclasses import dataclass
from typing import Any

import jwt
import requests
from flask import current_app, request

from errors import Unauthorized
from utils import decode_and_verify_access_token, extract_roles

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_USER = "user"

# roles each role satisfies
_GRANTS = {
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_USER},
    ROLE_USER: {ROLE_USER},
}


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    user_id = claims.get("id", claims.get("sub"))
    if user_id is None or user_id == "":
        raise Unauthorized("Invalid token payload (no user id)")

    roles = extract_roles(claims)
    if ROLE_ADMIN in roles:
        role = ROLE_ADMIN
    elif ROLE_USER in roles:
        role = ROLE_USER
    else:
        raise Unauthorized("Invalid token payload (no role)")

    return Identity(user_id=str(user_id), role=role)


def verify(token: str | None, secret: str | None = None) -> Identity:
    if not token:
        raise Unauthorized("Token not provided")
    try:
        claims = decode_and_verify_access_token(token, secret)
    except (jwt.PyJWTError, ValueError, requests.RequestException) as exc:
        logger.warning("Token rejected: %s", exc)
        raise Unauthorized("Invalid token") from exc
    return identity_from_claims(claims)


def require_role(actor: Identity | None, required: str) -> Identity:
    if actor is None:
        raise Unauthorized("Token not provided")
    if required not in _GRANTS.get(actor.role, set()):
        raise Unauthorized(f"Only {required} users may perform this action")
    return actor


def current_identity() -> Identity:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise Unauthorized("Missing Authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthorized("Invalid Authorization header")

    return verify(parts[1], current_app.config.get("JWT_SECRET"))
