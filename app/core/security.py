"""Identity token verification.

Tokens are issued by the identity provider; this service only verifies them
and reads the subject. create_access_token mints compatible tokens for
scripts and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings
from app.core.exceptions import AuthenticationError


def _decode_options() -> dict[str, Any]:
    return {
        "verify_aud": settings.jwt_audience is not None,
        "leeway": settings.jwt_leeway_seconds,
    }


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Mint an access token shaped like the identity provider's."""
    claims = dict(data)
    now = datetime.now(UTC)
    claims["iat"] = now
    claims["exp"] = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    claims.setdefault("type", "access")
    if settings.jwt_issuer:
        claims.setdefault("iss", settings.jwt_issuer)
    if settings.jwt_audience:
        claims.setdefault("aud", settings.jwt_audience)
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: str = "access") -> dict[str, Any]:
    """Decode a bearer token and return its claims.

    Raises AuthenticationError when the signature, expiry, issuer or
    audience do not check out, or when the token carries no subject.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=_decode_options(),
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {e}")

    if claims.get("type", token_type) != token_type:
        raise AuthenticationError("Invalid token type")
    if not claims.get("sub"):
        raise AuthenticationError("Token has no subject")
    return claims
