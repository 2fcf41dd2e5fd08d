# blog/routes/users.py

"""
API enpoints для работы с текущим пользователем.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from blog.schemas import UserResponse, UserUpdate
from blog.models import User
from blog.utils.database import get_db
from blog.dependencies import get_current_user
from blog.services.auth_service import update_profile

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
)

@router.get("/me", response_model=UserResponse, status_code=status.HTTP_200_OK)
async def get_me(
        current_user: User = Depends(get_current_user),
):
    """
    Возвращает данные текущего пользователя (без пароля)
    """
    return current_user


@router.put("/me", response_model=UserResponse, status_code=status.HTTP_200_OK)
async def update_me(
        profile: UserUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Обновляет имя, фамилию и аватар текущего пользователя
    """
    return await update_profile(db, current_user, profile)
