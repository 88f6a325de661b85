from jose import jwt

from app.core.config import get_settings

settings = get_settings()


def decode_access_token(token: str) -> dict:
    """
    Verify a bearer token issued by the auth service. Raises JWTError on a bad
    signature or an expired token.
    """
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
