"""Authentication helpers for bearer tokens + password management."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, Optional

from fastapi import Header, Request
from itsdangerous import BadData, URLSafeTimedSerializer
from passlib.context import CryptContext

from .errors import InvalidPassword, MissingCredentials, MissingToken, Unauthorized, UserNotFound

if TYPE_CHECKING:
    from .repositories import UserRepository

logger = logging.getLogger(__name__)

TOKEN_SALT = "clinica-auth"
DEFAULT_ROUNDS = 10


@lru_cache
def _password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def _trim_password(password: str) -> str:
    if not isinstance(password, str):
        password = str(password)
    encoded = password.encode("utf-8")
    if len(encoded) <= 72:
        return password
    return encoded[:72].decode("utf-8", errors="ignore")


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return _password_context(rounds).hash(_trim_password(password))


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_context(DEFAULT_ROUNDS).verify(_trim_password(password), password_hash)
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def _serializer(secret: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret, salt=TOKEN_SALT)


def create_access_token(user_id: int, secret: str) -> str:
    return _serializer(secret).dumps({"id": user_id})


def read_access_token(token: str, secret: str, max_age: int) -> Dict[str, Any]:
    """Return the token payload or raise ``Unauthorized``."""
    try:
        data = _serializer(secret).loads(token, max_age=max_age)
    except BadData as exc:
        raise Unauthorized() from exc
    if not isinstance(data, dict) or not isinstance(data.get("id"), int):
        raise Unauthorized()
    return data


def _bearer_token(header_value: Optional[str]) -> str:
    """Return the token portion of an Authorization header, ``Bearer`` prefix optional."""
    if not header_value or not header_value.strip():
        raise MissingToken()
    scheme, _, credentials = header_value.strip().partition(" ")
    token = credentials.strip() if scheme.lower() == "bearer" else header_value.strip()
    if not token:
        raise Unauthorized()
    return token


def require_token(
    request: Request,
    authorization: Optional[str] = Header(None, convert_underscores=False),
) -> Dict[str, Any]:
    settings = request.app.state.settings
    identity = read_access_token(
        _bearer_token(authorization), settings.secret_key, settings.token_max_age
    )
    request.state.usuario = identity
    return identity


def authenticate(
    users: "UserRepository", username: Optional[str], password: Optional[str], *, secret: str
) -> str:
    """Check credentials and return a signed token for the user."""
    if not username or not password:
        raise MissingCredentials()
    record = users.find_credentials(username)
    if not record:
        logger.info("Login rejected for unknown user '%s'", username)
        raise UserNotFound()
    if not verify_password(password, record["contrasena"]):
        logger.info("Login rejected for '%s': wrong password", username)
        raise InvalidPassword()
    return create_access_token(record["idUsuario"], secret)
