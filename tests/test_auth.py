import time

import jwt
import pytest

import auth
from auth import Identity, ROLE_ADMIN, ROLE_USER, require_role, verify
from conftest import SECRET, make_token
from errors import Unauthorized


def test_verify_reads_id_and_role():
    assert verify(make_token(7, "user"), SECRET) == Identity(user_id="7", role=ROLE_USER)
    assert verify(make_token(2, "admin"), SECRET) == Identity(user_id="2", role=ROLE_ADMIN)


def test_verify_falls_back_to_sub_and_realm_roles():
    token = jwt.encode(
        {"sub": "kc-subject", "realm_access": {"roles": ["offline_access", "admin"]}},
        SECRET,
        algorithm="HS256",
    )

    assert verify(token, SECRET) == Identity(user_id="kc-subject", role=ROLE_ADMIN)


@pytest.mark.parametrize("token", [
    None,
    "",
    "not-a-jwt",
    jwt.encode({"id": 1, "role": "user"}, "another-secret-another-secret-00", algorithm="HS256"),
    make_token(1, "user", exp=int(time.time()) - 60),
    make_token(1, "guest"),
    jwt.encode({"role": "user"}, SECRET, algorithm="HS256"),
])
def test_verify_rejects_bad_tokens(token):
    with pytest.raises(Unauthorized):
        verify(token, SECRET)


def test_require_role():
    admin = Identity("1", ROLE_ADMIN)
    user = Identity("7", ROLE_USER)

    assert require_role(admin, ROLE_ADMIN) is admin
    assert require_role(admin, ROLE_USER) is admin
    assert require_role(user, ROLE_USER) is user
    with pytest.raises(Unauthorized):
        require_role(user, ROLE_ADMIN)
    with pytest.raises(Unauthorized):
        require_role(None, ROLE_USER)


def test_current_identity_parses_bearer_header(app):
    with app.test_request_context(headers={"Authorization": f"Bearer {make_token(7, 'user')}"}):
        assert auth.current_identity().user_id == "7"

    for header in ({}, {"Authorization": "Token abc"}, {"Authorization": "Bearer"}):
        with app.test_request_context(headers=header):
            with pytest.raises(Unauthorized):
                auth.current_identity()
