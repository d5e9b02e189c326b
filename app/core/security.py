from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from app.core.config import JWT_SECRET, JWT_ALGO, ACCESS_TOKEN_MINUTES


def create_access_token(subject: str, minutes: int = ACCESS_TOKEN_MINUTES) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"sub": subject, "exp": expire}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGO)


def decode_subject(token: str) -> Optional[str]:
    """Retourne le claim `sub` d'un token valide, None sinon."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
    except JWTError:
        return None
    return payload.get("sub")
