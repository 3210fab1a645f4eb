"""Validation of bearer tokens issued by the identity provider."""

from jose import JWTError, jwt

from outdrinkme.config import get_settings

ALGORITHM = "HS256"


def decode_access_token(token: str) -> dict:
    """Return the claims of ``token``; ``sub`` carries the user's external id."""

    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc
