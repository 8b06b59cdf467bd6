from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config

REQUIRED_CLAIMS = ["exp", "iat", "sub", "role"]


class SigningKeyMissingError(RuntimeError):
    """JWT_SECRET_KEY is not configured, so no token can be issued."""


class InvalidTokenError(Exception):
    """The token is malformed, tampered with, expired or cannot be checked."""


def create_access_token(claims: dict, expires_minutes: int | None = None) -> str:
    if not config.JWT_SECRET_KEY:
        raise SigningKeyMissingError("JWT_SECRET_KEY is not configured.")

    expire_minutes = config.JWT_EXPIRES_MINUTES if expires_minutes is None else expires_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(claims["id"]),
        "role": claims["role"],
        "name": claims.get("name"),
        "iat": now,
        "exp": now + timedelta(minutes=expire_minutes),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    if not config.JWT_SECRET_KEY:
        raise InvalidTokenError("JWT_SECRET_KEY is not configured.")

    try:
        payload = jwt.decode(
            token,
            config.JWT_SECRET_KEY,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    return {"id": payload["sub"], "role": payload["role"], "name": payload.get("name")}
