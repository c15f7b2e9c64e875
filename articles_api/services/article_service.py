"""
Article service — business logic for the Article aggregate.

Design notes
------------
- Reads go through the read-through pattern (Redis → fallback to DB →
  populate Redis).  List keys encode every normalised query dimension so
  two different queries never share an entry.
- Every mutation drops the per-article entry and *all* list entries
  (the ``articles:list:*`` namespace).
- Ownership is checked against the author of the loaded article before
  any update or delete.  ``author_id`` is taken from the authenticated
  caller on create and can never be patched.
- Mutations commit before they invalidate the cache.  ``get_db`` owns
  the transaction for reads and rolls back on error.
"""
import logging
import math
import uuid
from datetime import datetime, timezone

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from articles_api.cache import CacheManager, article_detail_key, article_list_key
from articles_api.config import settings
from articles_api.dependencies import ArticleListParams
from articles_api.exceptions import ForbiddenError, NotFoundError
from articles_api.models import Article, isoformat_utc, utcnow
from articles_api.schemas import ArticleCreate, ArticleUpdate

logger = logging.getLogger(__name__)

# Wire sort names mapped to columns; guards against arbitrary attribute access.
_SORT_COLUMNS = {
    "createdAt": Article.created_at,
    "updatedAt": Article.updated_at,
    "title": Article.title,
    "publishedAt": Article.published_at,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_uuid(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _not_found(article_id) -> NotFoundError:
    return NotFoundError(f'Article with ID "{article_id}" not found')


def _build_filters(params: ArticleListParams) -> list:
    """Return the AND-combined predicates for every filter that is present."""
    filters = []
    if params.author_id is not None:
        filters.append(Article.author_id == params.author_id)
    if params.published_from is not None:
        filters.append(Article.published_at >= _to_utc(params.published_from))
    if params.published_to is not None:
        filters.append(Article.published_at <= _to_utc(params.published_to))
    return filters


def article_to_dict(article: Article) -> dict:
    """Serialise an Article ORM instance to the plain dict used on the wire and in cache."""
    return {
        "id": str(article.id),
        "title": article.title,
        "content": article.content,
        "authorId": str(article.author_id),
        "publishedAt": isoformat_utc(article.published_at),
        "createdAt": isoformat_utc(article.created_at),
        "updatedAt": isoformat_utc(article.updated_at),
    }


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_articles(
    db: AsyncSession,
    cache: CacheManager,
    params: ArticleListParams,
) -> dict:
    """
    Return one page of articles plus pagination metadata.

    Two SQL statements are issued on a cache miss:
    1. COUNT — rows matching the filters, ignoring pagination.
    2. SELECT with ORDER BY / OFFSET / LIMIT.
    """
    cache_key = article_list_key(params)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    filters = _build_filters(params)

    count_q = select(func.count()).select_from(Article).where(*filters)
    total: int = (await db.execute(count_q)).scalar_one()

    sort_col = _SORT_COLUMNS[params.sort_by]
    direction = desc if params.sort_order == "DESC" else asc
    articles_q = (
        select(Article)
        .where(*filters)
        # Tie-break on id so rows with equal sort values page deterministically.
        .order_by(direction(sort_col), direction(Article.id))
        .offset(params.offset)
        .limit(params.limit)
    )
    result = await db.execute(articles_q)
    articles = result.scalars().all()

    response = {
        "data": [article_to_dict(a) for a in articles],
        "meta": {
            "total": total,
            "page": params.page,
            "limit": params.limit,
            "totalPages": math.ceil(total / params.limit),
        },
    }
    await cache.set(cache_key, response, ttl=settings.CACHE_TTL_LIST)
    return response


async def get_article(db: AsyncSession, cache: CacheManager, article_id: uuid.UUID) -> dict:
    """
    Return the article identified by *article_id*.

    Served from cache when possible; on a miss the row is loaded and the
    snapshot cached.  Raises NotFoundError when the article does not exist.
    """
    cache_key = article_detail_key(article_id)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    article = await db.get(Article, article_id)
    if article is None:
        raise _not_found(article_id)

    data = article_to_dict(article)
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def _ensure_author(snapshot: dict, caller_id: uuid.UUID, action: str) -> None:
    if snapshot["authorId"] != str(caller_id):
        logger.warning(
            "User %s denied %s on article %s owned by %s",
            caller_id, action, snapshot["id"], snapshot["authorId"],
        )
        raise ForbiddenError(f"You can only {action} your own articles")


async def create_article(
    db: AsyncSession,
    cache: CacheManager,
    data: ArticleCreate,
    author_id: uuid.UUID,
) -> dict:
    """
    Persist a new article owned by *author_id* (the authenticated caller).

    All cached list pages are invalidated afterwards.
    """
    article = Article(
        title=data.title,
        content=data.content,
        published_at=_to_utc(data.published_at),
        author_id=author_id,
    )
    db.add(article)
    await db.flush()
    await db.refresh(article)
    await db.commit()

    await cache.invalidate_article()
    logger.info("Article %s created by %s", article.id, author_id)
    return article_to_dict(article)


async def update_article(
    db: AsyncSession,
    cache: CacheManager,
    article_id: uuid.UUID,
    data: ArticleUpdate,
    caller_id: uuid.UUID,
) -> dict:
    """
    Partially update an article owned by *caller_id*.

    Only fields explicitly set in the payload are modified
    (``model_dump(exclude_unset=True)``).  The returned dict reflects the
    persisted row, never the snapshot used for the ownership check.
    """
    article_id = _as_uuid(article_id)
    snapshot = await get_article(db, cache, article_id)
    _ensure_author(snapshot, caller_id, "edit")

    article = await db.get(Article, article_id)
    if article is None:
        # Deleted between the cached read and now.
        await cache.invalidate_article(article_id)
        raise _not_found(article_id)

    update_data = data.model_dump(exclude_unset=True)
    if "published_at" in update_data:
        update_data["published_at"] = _to_utc(update_data["published_at"])
    for field, value in update_data.items():
        setattr(article, field, value)
    article.updated_at = utcnow()

    await db.flush()
    await db.refresh(article)
    await db.commit()

    await cache.invalidate_article(article_id)
    logger.info("Article %s updated by %s (%s)", article_id, caller_id, ", ".join(update_data) or "no fields")
    return article_to_dict(article)


async def delete_article(
    db: AsyncSession,
    cache: CacheManager,
    article_id: uuid.UUID,
    caller_id: uuid.UUID,
) -> None:
    """Delete an article owned by *caller_id*; raises NotFoundError / ForbiddenError."""
    article_id = _as_uuid(article_id)
    snapshot = await get_article(db, cache, article_id)
    _ensure_author(snapshot, caller_id, "delete")

    article = await db.get(Article, article_id)
    if article is None:
        await cache.invalidate_article(article_id)
        raise _not_found(article_id)

    await db.delete(article)
    await db.flush()
    await db.commit()

    await cache.invalidate_article(article_id)
    logger.info("Article %s deleted by %s", article_id, caller_id)
