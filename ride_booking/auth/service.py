from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ride_booking.config import settings


def create_access_token(passenger_id: str, expires_minutes: int = 60) -> str:
    """Issue a bearer token identifying a registered passenger"""
    payload = {
        "passenger_id": passenger_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_passenger_id(token: str) -> Optional[str]:
    """Return the passenger id in a valid token, or None"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        return None
    return payload.get("passenger_id")
