# blog/services/auth_service.py

"""
Сервисный слой для регистрации, логина и профиля.

Знает про модели, БД, хэширование и JWT, но не про HTTP-исключения.
"""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from blog.models import User, utcnow
from blog.schemas import UserCreate, UserLogin, UserUpdate
from blog.services.post_services import invalidate_feed_cache
from blog.utils.exceptions import AuthenticationError, ConflictError
from blog.utils.security import (
    hash_password,
    verify_password,
    create_access_token,
)

logger = logging.getLogger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(user.id, {"username": user.username})


async def register_user_in_db(
    db: Session,
    user_in: UserCreate,
) -> tuple[User, str]:
    """
    Зарегистрировать нового пользователя.

    Возвращает пользователя и access-токен. ConflictError, если
    email или username заняты.
    """
    # Проверка уникальности email/username
    existing = (
        db.query(User)
        .filter(or_(User.email == user_in.email, User.username == user_in.username))
        .first()
    )
    if existing:
        raise ConflictError("User already exists with this email or username")

    # Хэшируем пароль и создаём пользователя
    db_user = User(
        email=user_in.email,
        username=user_in.username,
        hashed_password=hash_password(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
    )

    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    logger.info("User %s registered", db_user.id)
    return db_user, issue_token(db_user)


async def authenticate_user(
    db: Session,
    creds: UserLogin,
) -> tuple[User, str]:
    """
    Аутентифицировать пользователя по email и паролю.

    Неверные данные и отключенный аккаунт дают одну и ту же ошибку.
    """
    db_user = db.query(User).filter(User.email == creds.email).first()

    if (
        not db_user
        or not db_user.is_active
        or not verify_password(creds.password, db_user.hashed_password)
    ):
        raise AuthenticationError("Invalid credentials")

    db_user.last_login = utcnow()
    db.commit()
    db.refresh(db_user)

    return db_user, issue_token(db_user)


async def update_profile(
    db: Session,
    user: User,
    profile_in: UserUpdate,
) -> User:
    for key, value in profile_in.model_dump(exclude_unset=True).items():
        setattr(user, key, value)

    db.commit()
    db.refresh(user)

    # в ленте лежат краткие данные авторов (имя, аватар)
    await invalidate_feed_cache()
    return user
