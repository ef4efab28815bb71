"""Admin session tokens: issue and verify HS256 JWTs.

Verification never raises for a bad token; it returns a tagged result so
callers decide how to respond. The gate collapses every failure to "not
authenticated"; the distinction between invalid and expired is kept only
for server-side logs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode

from cisa.config import get_settings

JWT_ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(hours=24)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenConfigError(ValueError):
    """Raised when the token service is constructed without a signing secret."""


@dataclass(frozen=True, slots=True)
class Principal:
    """Snapshot of an authenticated admin taken at token issuance."""

    id: str
    username: str
    role: str


@dataclass(frozen=True, slots=True)
class TokenOk:
    principal: Principal
    issued_at: datetime
    expires_at: datetime
    ok: bool = True


@dataclass(frozen=True, slots=True)
class TokenInvalid:
    reason: str
    ok: bool = False


@dataclass(frozen=True, slots=True)
class TokenExpired:
    expired_at: datetime
    ok: bool = False


TokenResult = TokenOk | TokenInvalid | TokenExpired


def _signature_is_canonical(token: str) -> bool:
    """Reject signatures whose base64url text is not the canonical encoding.

    The last character of a base64url segment carries unused low bits, so
    two different strings can decode to the same signature bytes.
    """
    segment = token.rsplit(".", 1)[-1]
    try:
        return base64url_encode(base64url_decode(segment.encode("ascii"))).decode("ascii") == segment
    except (ValueError, UnicodeError):
        return False


class TokenService:
    """Stateless issuer/verifier bound to one signing secret."""

    __slots__ = ("_secret", "_ttl", "_clock")

    def __init__(
        self,
        secret: str,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not secret:
            raise TokenConfigError("Token signing secret is not configured")
        if ttl <= timedelta(0):
            raise TokenConfigError(f"Token TTL must be positive, got {ttl}")
        self._secret = secret
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, principal: Principal) -> str:
        now = self._clock()
        payload = {
            "sub": principal.id,
            "username": principal.username,
            "role": principal.role,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str) -> TokenResult:
        if not token or not _signature_is_canonical(token):
            return TokenInvalid(reason="malformed token")
        try:
            # Expiry is checked below against the injected clock.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            return TokenInvalid(reason=f"signature or format rejected: {exc.__class__.__name__}")

        sub = payload.get("sub")
        username = payload.get("username")
        role = payload.get("role")
        exp = payload.get("exp")
        iat = payload.get("iat")
        if not sub or not username or not role or not isinstance(exp, int):
            return TokenInvalid(reason="missing claims")

        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        if self._clock() >= expires_at:
            return TokenExpired(expired_at=expires_at)

        issued_at = (
            datetime.fromtimestamp(iat, tz=timezone.utc) if isinstance(iat, int) else expires_at - self._ttl
        )
        return TokenOk(
            principal=Principal(id=str(sub), username=str(username), role=str(role)),
            issued_at=issued_at,
            expires_at=expires_at,
        )


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service built once from settings."""
    settings = get_settings()
    return TokenService(settings.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours))
