"""Bearer token helpers.

Sign-in happens in the identity service; this side only issues tokens for
internal tooling and tests, and decodes the tokens presented on requests.
"""
from datetime import timedelta
from jose import JWTError, jwt
from app.core.config import settings
from app.core.time import utc_now


def create_access_token(data: dict) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = utc_now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    if settings.JWT_ISSUER:
        to_encode["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        to_encode["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Decode JWT token; None when the signature, expiry or claims are invalid."""
    options = {
        "verify_aud": bool(settings.JWT_AUDIENCE),
        "verify_iss": bool(settings.JWT_ISSUER),
    }
    decode_kwargs = {
        "token": token,
        "key": settings.SECRET_KEY,
        "algorithms": [settings.ALGORITHM],
        "options": options,
    }
    if settings.JWT_AUDIENCE:
        decode_kwargs["audience"] = settings.JWT_AUDIENCE
    if settings.JWT_ISSUER:
        decode_kwargs["issuer"] = settings.JWT_ISSUER
    try:
        return jwt.decode(**decode_kwargs)
    except JWTError:
        return None
