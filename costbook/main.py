import logging
import traceback
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from costbook.core.config import settings
from costbook.core.exceptions import CostbookError
from costbook.services.recently_viewed_service import RecentlyViewedService

# Setup Logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Construction estimates, quotes, change orders and contingency",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --------------------------------------------------------------------------
# CORS Middleware
# --------------------------------------------------------------------------
origins = list(settings.CORS_ORIGINS)

if settings.PORTAL_BASE_URL and settings.PORTAL_BASE_URL not in origins:
    origins.append(settings.PORTAL_BASE_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --------------------------------------------------------------------------
# Startup / Shutdown
# --------------------------------------------------------------------------
from costbook.core.database import init_db


@app.on_event("startup")
async def on_startup():
    app.state.recently_viewed = RecentlyViewedService()
    app.state.recently_viewed.start()

    try:
        logger.info("Connecting to Database...")
        app.state.mongo_client = await init_db()
        logger.info("Database Connection Successful!")
    except Exception as e:
        logger.error(f"Database Connection FAILED: {e}")
        raise


@app.on_event("shutdown")
async def on_shutdown():
    registry = getattr(app.state, "recently_viewed", None)
    if registry:
        registry.stop()

    client = getattr(app.state, "mongo_client", None)
    if client:
        client.close()
        logger.info("Database connection closed")


# --------------------------------------------------------------------------
# Exception Handlers
# --------------------------------------------------------------------------
@app.exception_handler(CostbookError)
async def costbook_exception_handler(request: Request, exc: CostbookError):
    logger.info(f"{exc.__class__.__name__} at {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "message": exc.message,
            "detail": exc.detail,
            "path": str(request.url)
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_msg = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"ERROR OCCURRED AT {request.url.path}:\n{error_msg}")

    return JSONResponse(
        status_code=500,
        content={
            "message": "Internal Server Error",
            "detail": str(exc),
            "path": str(request.url)
        }
    )

# --------------------------------------------------------------------------
# Basic Routes
# --------------------------------------------------------------------------
@app.get("/")
async def root():
    return {
        "message": "Costbook API is running",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# --------------------------------------------------------------------------
# API Routers
# --------------------------------------------------------------------------
from costbook.api.v1 import api_router

app.include_router(api_router, prefix="/api/v1")
