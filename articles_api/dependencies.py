import uuid
from datetime import datetime

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from articles_api.config import settings
from articles_api.database import get_db
from articles_api.exceptions import UnauthorizedError
from articles_api.schemas import CurrentUser
from articles_api.security import decode_access_token
from articles_api.services import user_service

SORTABLE_FIELDS = ("createdAt", "updatedAt", "title", "publishedAt")


class ArticleListParams:
    """
    Reusable FastAPI dependency that parses and validates the article list
    query string.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(params: ArticleListParams = Depends()):
            ...

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    limit:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    author_id:
        Optional exact filter on the article author.
    published_from, published_to:
        Optional inclusive bounds on ``published_at``.
    sort_by:
        Wire name of the sort field, one of ``SORTABLE_FIELDS``.
    sort_order:
        ``"ASC"`` or ``"DESC"``.
    offset:
        Computed SQL OFFSET derived from *page* and *limit*.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Number of articles per page.",
        ),
        author_id: uuid.UUID | None = Query(
            None, alias="authorId", description="Only articles by this author."
        ),
        published_from: datetime | None = Query(
            None,
            alias="publishedFrom",
            description="Articles published at or after this ISO-8601 timestamp.",
        ),
        published_to: datetime | None = Query(
            None,
            alias="publishedTo",
            description="Articles published at or before this ISO-8601 timestamp.",
        ),
        sort_by: str = Query(
            "createdAt",
            alias="sortBy",
            pattern=f"^({'|'.join(SORTABLE_FIELDS)})$",
            description="Field to sort by.",
        ),
        sort_order: str = Query(
            "DESC",
            alias="sortOrder",
            pattern="^(ASC|DESC)$",
            description="Sort direction.",
        ),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.MAX_PAGE_SIZE)
        self.author_id = author_id
        self.published_from = published_from
        self.published_to = published_to
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        """SQL OFFSET value computed from the current page and limit."""
        return (self.page - 1) * self.limit


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the caller from the ``Authorization: Bearer`` header.

    The token must verify and its subject must still exist; anything else
    is rejected with 401.
    """
    if credentials is None:
        raise UnauthorizedError("Unauthorized")

    payload = decode_access_token(credentials.credentials)
    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UnauthorizedError("Invalid token") from exc

    user = await user_service.get_user_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError("Unauthorized")
    return CurrentUser(id=user.id, email=user.email)
