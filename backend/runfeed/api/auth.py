from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from runfeed.api.deps import bearer_token, get_current_user
from runfeed.db import get_db
from runfeed.errors import AuthenticationError, DuplicateUserError, NotFoundError
from runfeed.models.user import User
from runfeed.schemas.user import (
    ProfileUpdate,
    TokenRead,
    UserLogin,
    UserPublic,
    UserRead,
    UserRegister,
)
from runfeed.services import identity

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenRead)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    try:
        identity.register(db, payload.email, payload.password, payload.username)
    except DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))
    # Registration signs the new user in straight away
    user, token = identity.login(db, payload.email, payload.password)
    return TokenRead(token=token, user=UserRead.model_validate(user))


@router.post("/login", response_model=TokenRead)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    try:
        user, token = identity.login(db, payload.email, payload.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return TokenRead(token=token, user=UserRead.model_validate(user))


@router.post("/logout")
def logout(token: str = Depends(bearer_token), db: Session = Depends(get_db)):
    identity.sign_out(db, token)
    return {"message": "Signed out"}


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(get_current_user)):
    return user


@router.put("/me", response_model=UserRead)
def update_me(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return identity.update_profile(
        db,
        user,
        username=payload.username,
        bio=payload.bio,
        profile_image_base64=payload.profile_image_base64,
    )


@router.get("/users/{user_id}", response_model=UserPublic)
def get_profile(
    user_id: str,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return identity.fetch_profile(db, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
