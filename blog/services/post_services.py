# blog/services/post_services.py

"""
Сервисный слой для постов.

Знает про модели, запросы и кэш, но не про HTTP: ошибки поднимаются
типизированными исключениями из blog.utils.exceptions.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from blog.config import settings
from blog.models import Like, Post, Tag, User, utcnow
from blog.schemas import (
    PostCreate,
    PostListItem,
    PostListResponse,
    PostUpdate,
    PostWithComments,
)
from blog.services.cache import cache
from blog.services.post_queries import (
    DEFAULT_SORT_DIRECTION,
    DEFAULT_SORT_FIELD,
    PostListParams,
    get_published_post_with_comments,
    increment_view_count,
    like_metrics,
    list_published_posts,
)
from blog.utils.database import Database
from blog.utils.exceptions import ConflictError, NotFound, PermissionDeniedError
from blog.utils.pagination import DEFAULT_LIMIT, build_pagination

logger = logging.getLogger(__name__)

# Ключ кэша для "главной" публичной ленты
POSTS_CACHE_KEY = "posts:list:main"


async def invalidate_feed_cache() -> None:
    await cache.delete(POSTS_CACHE_KEY)


def _is_main_feed(params: PostListParams) -> bool:
    # Кэшируем только первую страницу для анонима без фильтров
    return (
        params.page == 1
        and params.limit == DEFAULT_LIMIT
        and params.sort_field == DEFAULT_SORT_FIELD
        and params.sort_direction == DEFAULT_SORT_DIRECTION
        and params.search is None
        and not params.tags
        and params.author_id is None
        and params.current_user_id is None
    )


def resolve_tags(db: Session, names: list[str]) -> list[Tag]:
    """
    Найти теги по именам, недостающие создать.
    """
    if not names:
        return []
    existing = {tag.name: tag for tag in db.query(Tag).filter(Tag.name.in_(names)).all()}
    tags = []
    for name in names:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(name=name)
            db.add(tag)
            existing[name] = tag
        tags.append(tag)
    return tags


async def list_posts(db: Session, params: PostListParams) -> dict:
    """
    Страница ленты: посты с лайками/комментариями и блок pagination.
    """
    use_cache = _is_main_feed(params)
    if use_cache:
        cached = await cache.get(POSTS_CACHE_KEY)
        if cached is not None:
            return cached

    rows, total = list_published_posts(db, params)

    items = [
        PostListItem.model_validate(row.post).model_copy(
            update={
                "likes_count": row.likes_count,
                "comments_count": row.comments_count,
                "is_liked_by_current_user": row.is_liked,
            }
        )
        for row in rows
    ]
    data = PostListResponse(
        posts=items,
        pagination=build_pagination(params.page, params.limit, total),
    ).model_dump(mode="json")

    if use_cache:
        await cache.set(POSTS_CACHE_KEY, data, ttl=settings.POSTS_CACHE_TTL)

    return data


async def get_post_detail(
    db: Session,
    post_id: int,
    current_user: Optional[User],
) -> PostWithComments:
    """
    Пост с автором, лайками и комментариями. NotFound, если поста нет
    или он не опубликован.

    Просмотр в БД засчитывает вызывающий код (record_post_view в фоне),
    в ответе счетчик уже включает текущий просмотр.
    """
    post = get_published_post_with_comments(db, post_id)
    if post is None:
        raise NotFound("Post not found")

    current_user_id = current_user.id if current_user else None
    likes_count, is_liked = like_metrics(db, post.id, current_user_id)

    return PostWithComments.model_validate(post).model_copy(
        update={
            "view_count": post.view_count + 1,
            "likes_count": likes_count,
            "comments_count": len(post.comments),
            "is_liked_by_current_user": is_liked,
        }
    )


def record_post_view(database: Database, post_id: int) -> None:
    """
    Фоновая задача: +1 к просмотрам. Ошибка не должна ронять чтение поста.
    """
    try:
        with database.session_scope() as db:
            increment_view_count(db, post_id)
    except SQLAlchemyError:
        logger.warning("Could not persist view for post %s", post_id, exc_info=True)


def _load_post_with_author(db: Session, post_id: int) -> Post:
    return (
        db.query(Post)
        .options(joinedload(Post.author), selectinload(Post.tags))
        .filter(Post.id == post_id)
        .one()
    )


def _get_owned_post(db: Session, post_id: int, current_user: User) -> Post:
    db_post = db.query(Post).filter(Post.id == post_id).first()
    if not db_post:
        raise NotFound("Post not found")

    if db_post.author_id != current_user.id:
        raise PermissionDeniedError("Not authorized to modify this post")

    return db_post


async def create_post_for_user(
    db: Session,
    author: User,
    post_in: PostCreate,
) -> Post:
    """
    Создать опубликованный пост для пользователя и сбросить кэш ленты.
    """
    db_post = Post(
        title=post_in.title,
        content=post_in.content,
        excerpt=post_in.excerpt,
        image_url=post_in.image_url,
        author_id=author.id,
        is_published=True,
        published_at=utcnow(),
    )
    db_post.tags = resolve_tags(db, post_in.tags)

    db.add(db_post)
    db.commit()

    await invalidate_feed_cache()
    logger.info("Post %s created by user %s", db_post.id, author.id)

    return _load_post_with_author(db, db_post.id)


async def update_post_for_user(
    db: Session,
    post_id: int,
    post_update: PostUpdate,
    current_user: User,
) -> Post:
    """
    Обновить только переданные поля. NotFound / PermissionDeniedError.
    """
    db_post = _get_owned_post(db, post_id, current_user)

    update_data = post_update.model_dump(exclude_unset=True)
    tag_names = update_data.pop("tags", None)
    for key, value in update_data.items():
        setattr(db_post, key, value)
    if tag_names is not None:
        db_post.tags = resolve_tags(db, tag_names)

    db.commit()

    await invalidate_feed_cache()

    return _load_post_with_author(db, db_post.id)


async def delete_post_for_user(
    db: Session,
    post_id: int,
    current_user: User,
) -> None:
    """
    Удалить пост вместе с комментариями, лайками и связями с тегами.
    """
    db_post = _get_owned_post(db, post_id, current_user)

    db.delete(db_post)
    db.commit()

    await invalidate_feed_cache()
    logger.info("Post %s deleted by user %s", post_id, current_user.id)


async def toggle_like(
    db: Session,
    post_id: int,
    current_user: User,
) -> tuple[bool, int]:
    """
    Лайк есть - удаляем, нет - создаем. Возвращает (liked, likes_count).

    Гонку двух одновременных вставок ловит уникальный индекс (post_id, user_id).
    """
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise NotFound("Post not found")

    existing = (
        db.query(Like)
        .filter(Like.post_id == post.id, Like.user_id == current_user.id)
        .first()
    )

    if existing:
        db.delete(existing)
        liked = False
    else:
        db.add(Like(post_id=post.id, user_id=current_user.id))
        liked = True

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Like already registered for this post")

    await invalidate_feed_cache()

    likes_count, _ = like_metrics(db, post.id, current_user.id)
    return liked, likes_count
