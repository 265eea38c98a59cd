from contextlib import asynccontextmanager
import logging
import sys

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from planwise.api.api import api_router
from planwise.core.config import settings
from planwise.db.session import get_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting up {settings.PROJECT_NAME} ({settings.ENVIRONMENT.value})...")
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET is not set; cron endpoints will refuse every request")
    if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
        logger.warning("Twilio credentials are not set; reminders will be recorded as failed")
    yield
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Every error body has the shape {"error": "<message>"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected request body | path={request.url.path} errors={exc.errors()!r}")
    return JSONResponse(
        status_code=400,
        content={"error": "Ungueltiger Request-Body."},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api_router)

    @app.get("/health", tags=["Health Check"])
    def health_check(db: Session = Depends(get_db)):
        """Health check endpoint"""
        try:
            db.execute(text("SELECT 1"))
            db_status = "healthy"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            db_status = "unhealthy"
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "project": settings.PROJECT_NAME,
            "database": db_status,
        }

    if settings.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    logger.info("FastAPI instance created successfully")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "planwise.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT.value == "development",
    )
