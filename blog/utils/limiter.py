from slowapi import Limiter
from slowapi.util import get_remote_address

# Лимиты задаются на конкретных эндпоинтах (регистрация, логин)
limiter = Limiter(key_func=get_remote_address)
