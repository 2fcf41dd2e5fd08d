# blog/routes/comments.py

"""
API endpoints для комментариев.

Все endpoints кроме GET требуют авторизации.
Удаление/обновление - только для автора комментария.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from blog.schemas import (
    CommentCreate,
    CommentEnvelope,
    CommentListResponse,
    CommentUpdate,
    MessageResponse,
)
from blog.models import User
from blog.utils.database import get_db
from blog.utils.pagination import is_db_id
from blog.dependencies import get_current_user, valid_comment_id
from blog.services.comment_service import (
    create_comment_for_post,
    list_comments_for_post,
    update_comment_for_user,
    delete_comment_for_user,
)


router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


@router.get("/post/{post_id}", response_model=CommentListResponse)
async def list_comments(
    post_id: int,
    db: Session = Depends(get_db),
):
    """
    Все комментарии к посту в порядке создания.

    Не требует авторизации.
    """
    if not is_db_id(post_id):
        return {"comments": []}

    comments = await list_comments_for_post(db=db, post_id=post_id)
    return {"comments": comments}


@router.post("", response_model=CommentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Создаём комментарий к посту (postId в теле запроса).

    Только для авторизованных пользователей.
    """
    db_comment = await create_comment_for_post(
        db=db,
        author=current_user,
        comment_in=comment,
    )
    return {"message": "Comment created successfully", "comment": db_comment}


@router.put("/{comment_id}", response_model=CommentEnvelope)
async def update_comment(
    comment: CommentUpdate,
    comment_id: int = Depends(valid_comment_id),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Обновить комментарий.

    Только для автора комментария.
    """
    db_comment = await update_comment_for_user(
        db=db,
        comment_id=comment_id,
        comment_update=comment,
        current_user=current_user,
    )
    return {"message": "Comment updated successfully", "comment": db_comment}


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: int = Depends(valid_comment_id),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Удалить комментарий.

    Только автор комментария.
    """
    await delete_comment_for_user(
        db=db,
        comment_id=comment_id,
        current_user=current_user,
    )
    return {"message": "Comment deleted successfully"}
