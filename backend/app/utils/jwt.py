from datetime import datetime, timedelta, timezone
from jose import jwt

ALGORITHM = "HS256"


def create_access_token(data: dict, *, secret: str, expires_in: timedelta) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_in
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, *, secret: str) -> dict:
    """Raises jose.ExpiredSignatureError / jose.JWTError on bad tokens."""
    return jwt.decode(token, secret, algorithms=[ALGORITHM])
