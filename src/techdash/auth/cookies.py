"""
techdash.auth.cookies

Session cookie signing and validation.

Responsibilities:
- Wrap the opaque session token in a signed, expiring JWT for the cookie value.
- Decode and validate cookie values with strict claim requirements (sid/iat/exp).
- Describe the cookie attributes (HttpOnly, SameSite, Secure in prod, Max-Age).
"""

from __future__ import annotations

import http.cookies
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from techdash.settings import Settings


@dataclass(frozen=True, slots=True)
class CookieConfig:
    name: str
    secret: str
    max_age: int
    secure: bool
    alg: str = "HS256"
    same_site: str = "lax"

    @classmethod
    def from_settings(cls, settings: Settings) -> CookieConfig:
        return cls(
            name=settings.session_cookie_name,
            secret=settings.session_secret,
            max_age=settings.session_max_age_seconds,
            secure=settings.is_production,
        )


class CookieValidationError(Exception):
    pass


def sign_session_token(*, cfg: CookieConfig, token: str) -> str:
    now = datetime.now(tz=UTC)
    # The cookie carries only the opaque token; identity stays server-side.
    payload: dict[str, Any] = {
        "sid": token,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=cfg.max_age)).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def read_session_token(*, cfg: CookieConfig, value: str) -> str:
    try:
        # jwt.decode enforces signature + exp.
        payload = jwt.decode(
            value,
            cfg.secret,
            algorithms=[cfg.alg],
            options={"require": ["sid", "iat", "exp"]},
        )
    except InvalidTokenError as e:
        raise CookieValidationError(str(e)) from e
    token = payload.get("sid")
    if not isinstance(token, str) or not token:
        raise CookieValidationError("invalid session id")
    return token


def _cookie_header(cfg: CookieConfig, value: str, max_age: int) -> str:
    # Same serialization Starlette's Response.set_cookie uses.
    cookie: http.cookies.BaseCookie[str] = http.cookies.SimpleCookie()
    cookie[cfg.name] = value
    morsel = cookie[cfg.name]
    morsel["path"] = "/"
    morsel["max-age"] = max_age
    morsel["httponly"] = True
    morsel["samesite"] = cfg.same_site
    if cfg.secure:
        morsel["secure"] = True
    return cookie.output(header="").strip()


def set_cookie_header(*, cfg: CookieConfig, value: str) -> str:
    return _cookie_header(cfg, value, cfg.max_age)


def clear_cookie_header(*, cfg: CookieConfig) -> str:
    return _cookie_header(cfg, "", 0)


# --- Module Notes -----------------------------------------------------------
# Header values are rendered by `http.cookies`, which quotes values containing
# characters outside the cookie token set; signed JWT values never need it.
