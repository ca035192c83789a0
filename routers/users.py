# routers/users.py
import logging

from fastapi import APIRouter, HTTPException

from db import SessionDep
from models import User
from schemas import FarmerSummary, ProfileUpdate, UserRead
from .auth import CurrentUserDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserRead)
def get_profile(user: CurrentUserDep):
    """
    The signed-in user's full profile.
    """
    return user


@router.patch("/me", response_model=UserRead)
def update_profile(update: ProfileUpdate, user: CurrentUserDep, session: SessionDep):
    """
    Update profile fields. Role and email are not editable here.

    Help requests keep the location they were created with.
    """
    for field, value in update.model_dump(exclude_unset=True).items():
        if field == "full_name" and not value:
            raise HTTPException(status_code=400, detail="Full name cannot be empty")
        setattr(user, field, value)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Profile %s updated", user.id)
    return user


@router.get("/{user_id}", response_model=FarmerSummary)
def get_user(user_id: str, session: SessionDep, _: CurrentUserDep):
    """
    Public summary of a single user.
    """
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
