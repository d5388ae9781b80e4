from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.api.my_list import router as my_list_router
from app.config.settings import settings
from app.services.database import create_tables
from app.services.pagination_cache import build_cache
from app.utils.log import app_logger

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    create_tables()
    app.state.cache = build_cache(settings)
    app.state.cache.open()
    app_logger.info("app.started", cache_backend=settings.CACHE_BACKEND)
    yield
    # Shutdown logic
    app.state.cache.close()
    app_logger.info("app.stopped")

app = FastAPI(title=settings.SERVICE_NAME, lifespan=lifespan)

# include routes
app.include_router(my_list_router)


@app.get("/health", tags=["Health"])
def health() -> dict:
    return {"status": "ok", "service": settings.SERVICE_NAME}
