from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from agencytax.api.middleware.error_handler import (
    handle_generic_error,
    handle_integrity_error,
    handle_pipeline_error,
    handle_validation_error,
)
from agencytax.api.middleware.logging import RequestLoggingMiddleware, configure_logging
from agencytax.api.v1 import router as v1_router
from agencytax.api.v1.health import router as health_router
from agencytax.config import settings
from agencytax.core.exceptions import PipelineError
from agencytax.db.session import async_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await async_engine.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="AgencyTax API",
        description="Bank transaction ingestion and tax categorization",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    # Most specific first
    app.add_exception_handler(PipelineError, handle_pipeline_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()
