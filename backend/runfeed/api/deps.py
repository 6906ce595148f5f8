from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from runfeed.db import get_db
from runfeed.errors import AuthenticationError
from runfeed.models.user import User
from runfeed.services import identity


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Expected a Bearer token")
    return token.strip()


def get_current_user(
    token: str = Depends(bearer_token),
    db: Session = Depends(get_db),
) -> User:
    try:
        return identity.user_for_token(db, token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
