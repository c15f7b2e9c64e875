import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for wire schemas: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Auth ---

class RegisterRequest(CamelModel):
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)


class UserResponse(CamelModel):
    id: uuid.UUID
    email: str
    created_at: datetime


class AuthResponse(CamelModel):
    access_token: str
    user: UserResponse


class CurrentUser(CamelModel):
    id: uuid.UUID
    email: str


# --- Article ---

class ArticleCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    published_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")


class ArticleUpdate(CamelModel):
    """Partial update; ``authorId`` and any other unknown field is rejected."""

    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)
    published_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("title", "content")
    @classmethod
    def _not_null(cls, value: str | None) -> str:
        # Explicit null would violate NOT NULL; omit the field to leave it unchanged.
        if value is None:
            raise ValueError("must not be null")
        return value


class ArticleResponse(CamelModel):
    id: uuid.UUID
    title: str
    content: str
    author_id: uuid.UUID
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime


# --- Pagination ---

class PaginationMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class PaginatedArticles(BaseModel):
    data: list[ArticleResponse]
    meta: PaginationMeta


# --- Health ---

class HealthResponse(BaseModel):
    status: str
    version: str
    cache: dict = {}
