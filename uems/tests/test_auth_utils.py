import pytest
import jwt
from datetime import datetime, timedelta, timezone

from uems.auth_service.utils import create_token, decode_token, load_account, optional_auth, require_auth
from uems.core.actor import Actor
from uems.core.errors import AuthenticationError, AuthorizationError


def test_create_token():
    token = create_token(123, "admin")

    assert isinstance(token, str)

    # Decode to verify contents using the same secret
    payload = jwt.decode(token, "test_secret", algorithms=["HS256"])
    assert payload["sub"] == "123"
    assert payload["role"] == "admin"
    assert "exp" in payload
    assert "iat" in payload


def test_decode_token_invalid():
    with pytest.raises(AuthenticationError, match="invalid token"):
        decode_token("invalid.token.here")


def test_decode_token_expired():
    payload = {
        "sub": "1",
        "role": "student",
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
    }
    token = jwt.encode(payload, "test_secret", algorithm="HS256")

    with pytest.raises(AuthenticationError, match="token expired"):
        decode_token(token)


def test_require_auth_valid(app, accounts):
    accounts[789] = {"role": "organizer", "is_active": True}
    token = create_token(789, "organizer")

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        actor = require_auth()

    assert actor == Actor(user_id=789, role="organizer")
    assert not actor.is_admin


def test_require_auth_missing_header(app):
    with app.test_request_context():
        with pytest.raises(AuthenticationError, match="missing token"):
            require_auth()


def test_require_auth_invalid_format(app):
    with app.test_request_context(headers={"Authorization": "InvalidFormat"}):
        with pytest.raises(AuthenticationError, match="missing token"):
            require_auth()


def test_require_auth_wrong_role(app, accounts):
    accounts[111] = {"role": "student", "is_active": True}
    token = create_token(111, "student")

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        with pytest.raises(AuthorizationError, match="permission denied"):
            require_auth(required_roles=["admin"])


def test_optional_auth_treats_bad_token_as_anonymous(app):
    with app.test_request_context(headers={"Authorization": "Bearer garbage"}):
        assert optional_auth() is None

    with app.test_request_context():
        assert optional_auth() is None


def test_require_auth_uses_live_role(app, accounts):
    # Token still says admin, the users row was demoted since
    accounts[5] = {"role": "student", "is_active": True}
    token = create_token(5, "admin")

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        assert require_auth().role == "student"
        with pytest.raises(AuthorizationError, match="permission denied"):
            require_auth(required_roles=["admin"])


def test_require_auth_promoted_user_gets_new_role(app, accounts):
    accounts[8] = {"role": "organizer", "is_active": True}
    token = create_token(8, "student")

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        assert require_auth(required_roles=["organizer", "admin"]).role == "organizer"


def test_require_auth_rejects_deactivated_or_deleted_account(app, accounts):
    accounts[5] = {"role": "admin", "is_active": False}

    for user_id in (5, 6):
        token = create_token(user_id, "admin")
        with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            with pytest.raises(AuthenticationError, match="inactive"):
                require_auth()


def test_optional_auth_ignores_deactivated_account(app, accounts):
    accounts[5] = {"role": "student", "is_active": False}
    token = create_token(5, "student")

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        assert optional_auth() is None


def test_load_account_queries_users(mock_db):
    _, mock_cursor = mock_db("uems.auth_service.utils")
    mock_cursor.fetchone.return_value = {"role": "organizer", "is_active": True}

    assert load_account(4) == {"role": "organizer", "is_active": True}
    sql, params = mock_cursor.execute.call_args[0]
    assert "FROM users WHERE user_id" in sql
    assert params == (4,)
