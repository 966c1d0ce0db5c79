# mentorbook/api/auth.py

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.crud import user as user_crud
from mentorbook.database import get_db
from mentorbook.models.user import SubscriptionTier
from mentorbook.schemas.auth import LoginRequest, RegisterRequest, Token
from mentorbook.utils.security import authenticate_user, create_access_token, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ===== REGISTER ENDPOINT =====

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user_data: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new account. Mentor profiles are created separately."""
    normalized_email = user_data.email.strip().lower()
    tier = (user_data.subscription_tier or SubscriptionTier.FREE.value).lower()
    if tier not in {t.value for t in SubscriptionTier}:
        raise HTTPException(status_code=400, detail="Unknown subscription tier")

    if user_crud.get_user_by_email(db, normalized_email):
        raise HTTPException(status_code=400, detail="Email already registered")

    try:
        user = user_crud.create_user(
            db,
            name=user_data.name.strip(),
            email=normalized_email,
            password=user_data.password,
            subscription_tier=tier,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Registration failed")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info("User %s registered", user.id)
    return {"message": "Registration successful", "user_id": user.id}


# ===== LOGIN ENDPOINT =====

@router.post("/login", response_model=Token)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Verify credentials and return an access token"""
    user = authenticate_user(db, credentials.email.strip().lower(), credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": str(user.id)})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user_id": user.id,
        "is_mentor": user.mentor is not None,
    }


@router.get("/me")
def me(current_user: models.User = Depends(get_current_user)):
    return {
        "id": current_user.id,
        "name": current_user.name,
        "email": current_user.email,
        "subscription_tier": current_user.subscription_tier,
        "is_mentor": current_user.mentor is not None,
    }
