from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ride_booking.auth.service import decode_passenger_id

bearer_scheme = HTTPBearer(auto_error=False)


def get_optional_passenger_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[str]:
    """Logged-in passenger id, or None for guest checkout"""
    if credentials is None:
        return None

    passenger_id = decode_passenger_id(credentials.credentials)
    if passenger_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return passenger_id
