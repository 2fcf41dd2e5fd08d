# blog/services/comment_service.py

"""
Сервисный слой для комментариев.

Знает про Comment/Post/User и БД, но не про HTTP-исключения.
"""

from typing import List

from sqlalchemy.orm import Session, joinedload

from blog.models import Comment, User, Post
from blog.schemas import CommentCreate, CommentUpdate
from blog.services.post_services import invalidate_feed_cache
from blog.utils.exceptions import NotFound, PermissionDeniedError, ValidationError


def _load_comment_with_author(db: Session, comment_id: int) -> Comment:
    return (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.id == comment_id)
        .one()
    )


def _get_owned_comment(db: Session, comment_id: int, current_user: User) -> Comment:
    db_comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not db_comment:
        raise NotFound("Comment not found")

    if db_comment.author_id != current_user.id:
        raise PermissionDeniedError("Not authorized to modify this comment")

    return db_comment


async def list_comments_for_post(
    db: Session,
    post_id: int,
) -> List[Comment]:
    """
    Все комментарии к посту вместе с авторами, один запрос с JOIN.
    """
    return (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.post_id == post_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


async def create_comment_for_post(
    db: Session,
    author: User,
    comment_in: CommentCreate,
) -> Comment:
    """
    Создать комментарий к опубликованному посту от имени пользователя.
    """
    post = (
        db.query(Post)
        .filter(Post.id == comment_in.post_id, Post.is_published.is_(True))
        .first()
    )
    if not post:
        raise NotFound("Post not found")

    if comment_in.parent_id is not None:
        parent = db.query(Comment).filter(Comment.id == comment_in.parent_id).first()
        # Ответ возможен только на комментарий того же поста
        if parent is None or parent.post_id != post.id:
            raise ValidationError("Parent comment does not belong to this post", field="parentId")

    db_comment = Comment(
        content=comment_in.content,
        author_id=author.id,
        post_id=post.id,
        parent_id=comment_in.parent_id,
    )
    db.add(db_comment)
    db.commit()

    await invalidate_feed_cache()

    return _load_comment_with_author(db, db_comment.id)


async def update_comment_for_user(
    db: Session,
    comment_id: int,
    comment_update: CommentUpdate,
    current_user: User,
) -> Comment:
    db_comment = _get_owned_comment(db, comment_id, current_user)

    db_comment.content = comment_update.content
    db.commit()

    return _load_comment_with_author(db, db_comment.id)


async def delete_comment_for_user(
    db: Session,
    comment_id: int,
    current_user: User,
) -> None:
    db_comment = _get_owned_comment(db, comment_id, current_user)

    # Ответы остаются в ветке, но без родителя
    db.query(Comment).filter(Comment.parent_id == db_comment.id).update(
        {Comment.parent_id: None, Comment.updated_at: Comment.updated_at},
        synchronize_session=False,
    )
    db.delete(db_comment)
    db.commit()

    await invalidate_feed_cache()
