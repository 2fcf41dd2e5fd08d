# blog/dependencies.py

"""
Зависимости для использования в endpoints
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from blog.models import User
from blog.utils.database import get_db
from blog.utils.exceptions import AuthenticationError, NotFound
from blog.utils.pagination import is_db_id
from blog.utils.security import user_id_from_token

security = HTTPBearer(auto_error=False)


def _user_from_token(token: str, db: Session) -> Optional[User]:
    """
    Декодируем токен, из него берем user_id и ищем активного пользователя.
    None - если токен невалиден, истек или пользователя больше нет.
    """
    user_id = user_id_from_token(token)
    if user_id is None:
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        return None

    return user


async def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db)
) -> User:
    """
    Получаем текущего авторизованного пользователя

    Извлекаем Bearer токен из заголовка Authorization и возвращаем объект User.
    Без токена или с невалидным токеном - 401.
    """
    if credentials is None:
        raise AuthenticationError("Access token required")

    user = _user_from_token(credentials.credentials, db)
    if user is None:
        raise AuthenticationError("Invalid or expired token")

    return user


async def get_current_user_optional(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Необязательный текущий пользователь.

    Если токена нет или он невалиден - возвращаем None,
    иначе - объект User.
    """
    if credentials is None:
        return None

    return _user_from_token(credentials.credentials, db)


# ========================
# ID ресурсов из пути URL
# ========================

def valid_post_id(post_id: int) -> int:
    """id вне диапазона INTEGER не может существовать в БД: сразу 404."""
    if not is_db_id(post_id):
        raise NotFound("Post not found")
    return post_id


def valid_comment_id(comment_id: int) -> int:
    if not is_db_id(comment_id):
        raise NotFound("Comment not found")
    return comment_id
