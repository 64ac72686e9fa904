import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finance_tracker.core.config import settings
from finance_tracker.core.deps import get_store
from finance_tracker.core.errors import register_exception_handlers
from finance_tracker.routers import auth, expenses, health, savings_goals
from finance_tracker.utils.google_oauth import get_google_client

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: refuse to serve without a reachable database
    store = get_store()
    try:
        if settings.DYNAMO_CREATE_TABLES:
            store.ensure_tables()
        store.check_connection()
    except Exception:
        logger.critical("DynamoDB is unavailable, shutting down")
        raise
    logger.info("DynamoDB tables reachable, serving requests")
    yield
    logger.info("Shutting down")
    get_google_client().close()
    get_google_client.cache_clear()


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted({settings.FRONTEND_URL, *settings.CORS_ORIGINS}),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=3600,
)

register_exception_handlers(app)


# Root endpoint
@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}


# Register routers
app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])
app.include_router(expenses.router, prefix=f"{settings.API_PREFIX}/expenses", tags=["Expenses"])
app.include_router(savings_goals.router, prefix=f"{settings.API_PREFIX}/savings-goals", tags=["Savings Goals"])
