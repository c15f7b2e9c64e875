import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from articles_api.cache import CacheManager, get_cache
from articles_api.database import get_db
from articles_api.dependencies import ArticleListParams, get_current_user
from articles_api.schemas import (
    ArticleCreate,
    ArticleResponse,
    ArticleUpdate,
    CurrentUser,
    PaginatedArticles,
)
from articles_api.services import article_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.get("", response_model=PaginatedArticles)
async def list_articles(
    params: ArticleListParams = Depends(),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    return await article_service.get_articles(db, cache, params)

@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    return await article_service.get_article(db, cache, article_id)

@router.post("", status_code=status.HTTP_201_CREATED, response_model=ArticleResponse)
async def create_article(
    data: ArticleCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    return await article_service.create_article(db, cache, data, user.id)

@router.patch("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: uuid.UUID,
    data: ArticleUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    return await article_service.update_article(db, cache, article_id, data, user.id)

@router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(
    article_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    await article_service.delete_article(db, cache, article_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
