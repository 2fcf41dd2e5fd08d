# blog/schemas/__init__.py

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from blog.utils.pagination import MAX_DB_INT


class CamelModel(BaseModel):
    """
    Общая база: в JSON поля в camelCase, на вход принимаем оба варианта
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =======================
# СХЕМЫ ДЛЯ ПОЛЬЗОВАТЕЛЕЙ
# =======================

class UserCreate(CamelModel):
    """
    Схема для создания пользователя (регистрация)
    """
    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, password: str) -> str:
        """
        Минимум одна буква и одна цифра (длина проверяется через Field)
        """
        if not any(ch.isalpha() for ch in password):
            raise ValueError("Password must contain at least one letter")
        if not any(ch.isdigit() for ch in password):
            raise ValueError("Password must contain at least one digit")
        return password


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class UserUpdate(CamelModel):
    """
    Обновление профиля: хотя бы одно поле
    """
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    avatar: Optional[str] = Field(default=None, max_length=2048)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class AuthorSummary(CamelModel):
    """Краткая информация об авторе поста/комментария"""
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None


class UserResponse(CamelModel):
    """
    Схема ответа с инфо о пользователе (без пароля)
    """
    id: int
    username: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class AuthResponse(CamelModel):
    message: str
    user: UserResponse
    token: str
    token_type: str = "bearer"


# ====================
# СХЕМЫ ДЛЯ ПУБЛИКАЦИИ
# ====================


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned: List[str] = []
    for tag in tags:
        name = tag.strip().lower()
        if not name:
            continue
        if len(name) > 50:
            raise ValueError("Tag must be at most 50 characters")
        if name not in cleaned:
            cleaned.append(name)
    return cleaned


class PostCreate(CamelModel):
    """Создание поста"""
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1, max_length=50000)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    image_url: Optional[str] = Field(default=None, max_length=2048)
    tags: List[str] = Field(default_factory=list, max_length=10)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, tags: List[str]) -> List[str]:
        return _clean_tags(tags)


class PostUpdate(CamelModel):
    """Частичное обновление поста: меняются только переданные поля"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1, max_length=50000)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    image_url: Optional[str] = Field(default=None, max_length=2048)
    tags: Optional[List[str]] = Field(default=None, max_length=10)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, tags: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(tags)

    @model_validator(mode="after")
    def check_fields(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        # title и content в БД NOT NULL
        for name in ("title", "content"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PostResponse(CamelModel):
    """Ответ с информацией о посте"""
    id: int
    title: str
    content: str
    excerpt: Optional[str] = None
    image_url: Optional[str] = None
    tags: List[str] = []
    is_published: bool
    published_at: Optional[datetime] = None
    view_count: int
    author_id: int
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary

    @field_validator("tags", mode="before")
    @classmethod
    def tag_objects_to_names(cls, tags):
        # из ORM приходят объекты Tag
        return [getattr(tag, "name", tag) for tag in tags or []]


class PostListItem(PostResponse):
    """Пост в ленте с вычисляемыми полями"""
    likes_count: int = 0
    comments_count: int = 0
    is_liked_by_current_user: bool = False


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool


class PostListResponse(CamelModel):
    posts: List[PostListItem]
    pagination: Pagination


class PostEnvelope(CamelModel):
    message: str
    post: PostResponse


class LikeResponse(CamelModel):
    message: str
    liked: bool
    likes_count: int


class MessageResponse(CamelModel):
    message: str


# ======================
# СХЕМЫ ДЛЯ КОММЕНТАРИЕВ
# ======================

class CommentCreate(CamelModel):
    """Создание комментария"""
    content: str = Field(min_length=1, max_length=5000)
    post_id: int = Field(gt=0, le=MAX_DB_INT)
    parent_id: Optional[int] = Field(default=None, gt=0, le=MAX_DB_INT)


class CommentUpdate(CamelModel):
    """Обновление комментария"""
    content: str = Field(min_length=1, max_length=5000)


class CommentResponse(CamelModel):
    id: int
    content: str
    post_id: int
    author_id: int
    parent_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class CommentWithAuthor(CommentResponse):
    """Комментарий с инфо об авторе"""
    author: AuthorSummary


class CommentListResponse(CamelModel):
    comments: List[CommentWithAuthor]


class CommentEnvelope(CamelModel):
    message: str
    comment: CommentWithAuthor


class PostWithComments(PostListItem):
    """Пост со всеми его комментариями и автором"""
    comments: List[CommentWithAuthor] = []


class PostDetailResponse(CamelModel):
    post: PostWithComments
