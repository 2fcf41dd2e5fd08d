# blog/services/post_queries.py

"""
Запросы к постам: лента с фильтрами/сортировкой и детальная страница.

Счетчики лайков и комментариев считаются подзапросами в том же SELECT,
что и сама лента, - никаких дополнительных запросов на каждую строку.
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from sqlalchemy import Boolean, case, distinct, exists, func, literal, or_, select
from sqlalchemy.orm import Session, joinedload, selectinload

from blog.models import Comment, Like, Post, Tag
from blog.utils.pagination import page_offset

DEFAULT_SORT_FIELD = "createdAt"
DEFAULT_SORT_DIRECTION = "DESC"

# Разрешенные поля сортировки: имя в API -> колонка
SORTABLE_COLUMNS = {
    "createdAt": Post.created_at,
    "updatedAt": Post.updated_at,
    "publishedAt": Post.published_at,
    "title": Post.title,
    "viewCount": Post.view_count,
}
# Сортировка по вычисляемому полю
LIKES_SORT_FIELD = "likesCount"
SORTABLE_FIELDS = frozenset(SORTABLE_COLUMNS) | {LIKES_SORT_FIELD}


@dataclass
class PostListParams:
    page: int = 1
    limit: int = 10
    sort_field: str = DEFAULT_SORT_FIELD
    sort_direction: str = DEFAULT_SORT_DIRECTION
    search: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    author_id: Optional[int] = None
    current_user_id: Optional[int] = None

    def __post_init__(self):
        if self.sort_field not in SORTABLE_FIELDS:
            self.sort_field = DEFAULT_SORT_FIELD
        direction = (self.sort_direction or "").upper()
        self.sort_direction = direction if direction in ("ASC", "DESC") else DEFAULT_SORT_DIRECTION
        self.search = self.search.strip() if self.search and self.search.strip() else None

    @property
    def offset(self) -> int:
        return page_offset(self.page, self.limit)


class PostRow(NamedTuple):
    post: Post
    likes_count: int
    comments_count: int
    is_liked: bool


def likes_count_subquery():
    return (
        select(func.count(Like.id))
        .where(Like.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


def comments_count_subquery():
    return (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


def is_liked_expression(current_user_id: Optional[int]):
    if current_user_id is None:
        return literal(False, type_=Boolean)
    return exists().where(
        Like.post_id == Post.id,
        Like.user_id == current_user_id,
    ).correlate(Post)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_listing_filters(query, params: PostListParams):
    # В ленту попадают только опубликованные посты
    query = query.filter(Post.is_published.is_(True))

    # Поиск по заголовку/контенту (регистронезависимый)
    if params.search:
        pattern = f"%{_escape_like(params.search)}%"
        query = query.filter(
            or_(
                Post.title.ilike(pattern, escape="\\"),
                Post.content.ilike(pattern, escape="\\"),
            )
        )

    # Хотя бы один из тегов (EXISTS, без размножения строк)
    if params.tags:
        query = query.filter(Post.tags.any(Tag.name.in_(params.tags)))

    if params.author_id is not None:
        query = query.filter(Post.author_id == params.author_id)

    return query


def count_published_posts(db: Session, params: PostListParams) -> int:
    query = db.query(func.count(distinct(Post.id)))
    return apply_listing_filters(query, params).scalar() or 0


def list_published_posts(db: Session, params: PostListParams) -> tuple[list[PostRow], int]:
    """
    Вернуть страницу ленты и общее число постов под фильтром.
    """
    total = count_published_posts(db, params)
    if total == 0:
        return [], 0

    likes_count = likes_count_subquery().label("likes_count")
    comments_count = comments_count_subquery().label("comments_count")
    is_liked = is_liked_expression(params.current_user_id).label("is_liked")

    query = (
        db.query(Post, likes_count, comments_count, is_liked)
        .options(joinedload(Post.author), selectinload(Post.tags))
    )
    query = apply_listing_filters(query, params)

    if params.sort_field == LIKES_SORT_FIELD:
        sort_column = likes_count
    else:
        sort_column = SORTABLE_COLUMNS[params.sort_field]

    if params.sort_direction == "ASC":
        query = query.order_by(sort_column.asc(), Post.id.asc())
    else:
        query = query.order_by(sort_column.desc(), Post.id.desc())

    rows = query.offset(params.offset).limit(params.limit).all()
    return [
        PostRow(
            post=post,
            likes_count=int(likes or 0),
            comments_count=int(comments or 0),
            is_liked=bool(liked),
        )
        for post, likes, comments, liked in rows
    ], total


def get_published_post_with_comments(db: Session, post_id: int) -> Optional[Post]:
    """
    Пост с автором и комментариями (каждый со своим автором) одним запросом.
    """
    return (
        db.query(Post)
        .options(
            joinedload(Post.author),
            joinedload(Post.comments).joinedload(Comment.author),
            selectinload(Post.tags),
        )
        .filter(Post.id == post_id, Post.is_published.is_(True))
        .first()
    )


def like_metrics(db: Session, post_id: int, current_user_id: Optional[int]) -> tuple[int, bool]:
    """
    (число лайков, лайкнул ли текущий пользователь) одним агрегатом.
    """
    liked_by_user = case((Like.user_id == current_user_id, 1), else_=0)
    total, mine = (
        db.query(func.count(Like.id), func.coalesce(func.sum(liked_by_user), 0))
        .filter(Like.post_id == post_id)
        .one()
    )
    return int(total or 0), current_user_id is not None and int(mine or 0) > 0


def increment_view_count(db: Session, post_id: int) -> int:
    """
    Атомарно увеличить счетчик просмотров. Возвращает число обновленных строк.
    """
    updated = (
        db.query(Post)
        .filter(Post.id == post_id)
        .update(
            {
                Post.view_count: Post.view_count + 1,
                # не трогаем updated_at: просмотр - не редактирование
                Post.updated_at: Post.updated_at,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated
