"""
API endpoints для публикаций
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session

from blog.schemas import (
    LikeResponse,
    MessageResponse,
    PostCreate,
    PostDetailResponse,
    PostEnvelope,
    PostListResponse,
    PostUpdate,
)
from blog.models import User
from blog.utils.database import get_db
from blog.utils.pagination import parse_positive_int, resolve_page
from blog.dependencies import get_current_user, get_current_user_optional, valid_post_id
from blog.services.post_queries import (
    DEFAULT_SORT_DIRECTION,
    DEFAULT_SORT_FIELD,
    PostListParams,
)
from blog.services.post_services import (
    create_post_for_user,
    delete_post_for_user,
    get_post_detail,
    list_posts,
    record_post_view,
    toggle_like,
    update_post_for_user,
)

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


# ==========================
# ПОЛУЧИТЬ СПИСОК ПУБЛИКАЦИЙ
# ==========================

@router.get("", response_model=PostListResponse)
async def list_posts_endpoint(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort_by: str = Query(DEFAULT_SORT_FIELD, alias="sortBy"),
    sort_order: str = Query(DEFAULT_SORT_DIRECTION, alias="sortOrder"),
    search: Optional[str] = None,
    tags: Optional[str] = None,
    author_id: Optional[str] = Query(None, alias="authorId"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Лента опубликованных постов.

    Не требует авторизации. Невалидные page/limit заменяются на 1/10,
    неизвестная сортировка - на createdAt DESC. tags - через запятую.
    """
    page_number, limit_number = resolve_page(page, limit)
    tag_list = [t.strip().lower() for t in tags.split(",") if t.strip()] if tags else []

    params = PostListParams(
        page=page_number,
        limit=limit_number,
        sort_field=sort_by,
        sort_direction=sort_order,
        search=search,
        tags=tag_list,
        author_id=parse_positive_int(author_id, None),
        current_user_id=current_user.id if current_user else None,
    )
    return await list_posts(db, params)


# ==========================================
# ПОЛУЧИТЬ ПУБЛИКАЦИЮ СО ВСЕМИ КОММЕНТАРИЯМИ
# ==========================================

@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post(
    request: Request,
    background_tasks: BackgroundTasks,
    post_id: int = Depends(valid_post_id),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Полный пост с автором, лайками и комментариями.

    Не требует авторизации. Каждый успешный запрос засчитывает просмотр.
    """
    post = await get_post_detail(db, post_id, current_user)

    background_tasks.add_task(record_post_view, request.app.state.db, post_id)

    return {"post": post}


# =========================
# СОЗДАНИЕ НОВОЙ ПУБЛИКАЦИИ
# =========================

@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
async def create_post(
    post: PostCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Создание публикации с привязкой к текущему пользователю.
    """
    db_post = await create_post_for_user(db, current_user, post)
    return {"message": "Post created successfully", "post": db_post}


# =====================================
# ОБНОВЛЕНИЕ(РЕДАКТИРОВАНИЕ) ПУБЛИКАЦИИ
# =====================================

@router.put("/{post_id}", response_model=PostEnvelope)
async def update_post(
    post_update: PostUpdate,
    post_id: int = Depends(valid_post_id),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Обновление поста. Только для автора.
    """
    db_post = await update_post_for_user(db, post_id, post_update, current_user)
    return {"message": "Post updated successfully", "post": db_post}


# ==================
# УДАЛИТЬ ПУБЛИКАЦИЮ
# ==================

@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: int = Depends(valid_post_id),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Удаление поста. Только для автора.
    """
    await delete_post_for_user(db, post_id, current_user)
    return {"message": "Post deleted successfully"}


# =============
# ЛАЙК / ДИЗЛАЙК
# =============

@router.post("/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: int = Depends(valid_post_id),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    liked, likes_count = await toggle_like(db, post_id, current_user)
    return {
        "message": "Post liked" if liked else "Post unliked",
        "liked": liked,
        "likes_count": likes_count,
    }
