# blog/routes/auth.py

"""
API endpoints для регистрации и авторизации.
"""

from fastapi import APIRouter, Depends, status, Request

from sqlalchemy.orm import Session

from blog.schemas import (
    AuthResponse,
    UserCreate,
    UserLogin,
)
from blog.utils.database import get_db
from blog.services.auth_service import register_user_in_db, authenticate_user

from blog.utils.limiter import limiter
from blog.config import settings

# Router для всех auth-эндпоинтов
router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
    responses={400: {"description": "Bad Request"}},
)


# ===============================
# РЕГИСТРАЦИЯ НОВОГО ПОЛЬЗОВАТЕЛЯ
# ===============================

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.REGISTER_RATE_LIMIT)
async def register_user(
        user: UserCreate,
        request: Request,
        db: Session = Depends(get_db)
):
    """Регистрация: 409, если email или username заняты"""
    db_user, token = await register_user_in_db(db, user)
    return {
        "message": "User created successfully",
        "user": db_user,
        "token": token,
        "token_type": "bearer",
    }


# ==============================
# Авторизация созданного профиля
# ==============================

@router.post("/login", response_model=AuthResponse, status_code=status.HTTP_200_OK)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_user(
        user: UserLogin,
        request: Request,
        db: Session = Depends(get_db)
):
    """Логин пользователя по email и паролю"""
    db_user, token = await authenticate_user(db, user)
    return {
        "message": "Login successful",
        "user": db_user,
        "token": token,
        "token_type": "bearer",
    }
