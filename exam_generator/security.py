"""Password hashing and bearer token issuance/verification."""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import Settings, get_settings
from .models import Role


# ─── Password Hashing ─────────────────────────────────────────────────────────


@lru_cache()
def _password_context(schemes: tuple) -> CryptContext:
    return CryptContext(schemes=list(schemes), deprecated="auto")


def _pwd_context() -> CryptContext:
    return _password_context(tuple(get_settings().password_scheme_list))


def hash_password(plain: str) -> str:
    return _pwd_context().hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return _pwd_context().verify(plain, hashed)


# ─── Tokens ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Identity:
    """Who is calling. Attached to ``request.state.identity``."""

    id: int
    email: str
    role: Role


class TokenFailure(str, enum.Enum):
    EXPIRED = "EXPIRED"
    MALFORMED = "MALFORMED"
    NOT_YET_VALID = "NOT_YET_VALID"


class TokenError(Exception):
    """Token could not be verified. ``reason`` is for logs only."""

    def __init__(self, reason: TokenFailure, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)


class TokenService:
    def __init__(
        self,
        secret: str,
        lifetime: timedelta = timedelta(hours=1),
        issuer: str = "api-gerador-provas",
        audience: str = "api-gerador-provas-client",
        algorithm: str = "HS256",
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self.lifetime = lifetime
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            lifetime=settings.token_lifetime,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            algorithm=settings.jwt_algorithm,
        )

    def issue(self, identity: Identity, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(tz=timezone.utc)
        payload: Dict[str, Any] = {
            # python-jose insists on a string subject
            "sub": str(identity.id),
            "email": identity.email,
            "role": Role.canonical(identity.role).value,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_nbf": False},
            )
        except ExpiredSignatureError as exc:
            raise TokenError(TokenFailure.EXPIRED, str(exc)) from exc
        except JWTError as exc:
            raise TokenError(TokenFailure.MALFORMED, str(exc)) from exc

        self._check_not_before(claims)

        try:
            return Identity(
                id=int(claims["sub"]),
                email=claims["email"],
                role=Role.canonical(claims["role"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenError(TokenFailure.MALFORMED, f"bad claims: {exc}") from exc

    @staticmethod
    def _check_not_before(claims: Dict[str, Any]) -> None:
        nbf = claims.get("nbf")
        if nbf is None:
            return
        try:
            not_before = int(nbf)
        except (TypeError, ValueError) as exc:
            raise TokenError(TokenFailure.MALFORMED, "nbf must be an integer") from exc
        now = int(datetime.now(tz=timezone.utc).timestamp())
        if not_before > now:
            raise TokenError(TokenFailure.NOT_YET_VALID, "token is not yet valid (nbf)")


@lru_cache()
def get_token_service() -> TokenService:
    return TokenService.from_settings(get_settings())
