import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from articles_api.cache import CacheManager, cache, get_cache
from articles_api.config import settings
from articles_api.exceptions import install_exception_handlers
from articles_api.logging_config import configure_logging
from articles_api.middleware import TimingMiddleware
from articles_api.routers import articles, auth
from articles_api.schemas import HealthResponse

VERSION = "1.0.0"

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    logger.info("Starting articles API (%s)", settings.APP_ENV)
    await cache.connect()  # App works without Redis
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="Articles API",
    description="REST API for managing articles with JWT authentication and Redis caching",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

# Routers
app.include_router(auth.router)
app.include_router(articles.router)

@app.get("/health", response_model=HealthResponse)
async def health(cache_manager: CacheManager = Depends(get_cache)):
    return {"status": "healthy", "version": VERSION, "cache": cache_manager.stats}
