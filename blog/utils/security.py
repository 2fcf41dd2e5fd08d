# blog/utils/security.py

"""
Утилиты для безопасности: хэширование пароля и JWT токены
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from passlib.context import CryptContext
from blog.config import settings
from blog.utils.pagination import is_db_id

ACCESS_TOKEN_TYPE = "access"

# Контекст bcrypt алгоритм
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# =============================
# ФУНКЦИЯ ДЛЯ РАБОТЫ С ПАРОЛЯМИ
# =============================

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

# Проверка, что введённый пароль совпадает с хэшем в БД
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

# =============================
# ФУНКЦИИ ДЛЯ РАБОТЫ С JWT
# =============================

def create_access_token(
    user_id: int,
    extra_claims: Optional[dict] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Access-токен для пользователя: sub = id, плюс произвольные claims.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = dict(extra_claims or {})
    claims.update({
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + lifetime,
        "token_type": ACCESS_TOKEN_TYPE,
    })
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """
    Декодируем JWT токен и проверяем подпись.
    None - если токен истек или подделан.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def user_id_from_token(token: str) -> Optional[int]:
    """id пользователя из валидного access-токена, иначе None."""
    payload = decode_token(token)
    if payload is None or payload.get("token_type") != ACCESS_TOKEN_TYPE:
        return None

    subject = str(payload.get("sub", ""))
    if not subject.isdigit() or not is_db_id(int(subject)):
        return None
    return int(subject)
