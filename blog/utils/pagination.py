# blog/utils/pagination.py

"""
Разбор параметров страницы и сборка блока pagination для ответа.
"""

import math
from typing import Optional

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_PAGE_SIZE = 100

# Верхняя граница INTEGER-колонок (id, номера страниц из запроса)
MAX_DB_INT = 2**31 - 1
MAX_OFFSET = 2**63 - 1


def parse_positive_int(raw: Optional[str | int], default: Optional[int]) -> Optional[int]:
    """Невалидные, неположительные и не влезающие в INTEGER значения заменяются на default."""
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if 0 < value <= MAX_DB_INT else default


def is_db_id(value: int) -> bool:
    return 0 < value <= MAX_DB_INT


def resolve_page(raw_page: Optional[str | int], raw_limit: Optional[str | int]) -> tuple[int, int]:
    page = parse_positive_int(raw_page, DEFAULT_PAGE)
    limit = min(parse_positive_int(raw_limit, DEFAULT_LIMIT), MAX_PAGE_SIZE)
    return page, limit


def page_offset(page: int, limit: int) -> int:
    return min((page - 1) * limit, MAX_OFFSET)


def build_pagination(page: int, limit: int, total_items: int) -> dict:
    total_pages = math.ceil(total_items / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total_items,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }
