"""
FastAPI application entry point for the Whitestones Wealth Hub backend.

This module creates the FastAPI app instance and registers all routers.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from wealthhub.config import settings
from wealthhub.routes.activity import router as activity_router
from wealthhub.routes.admin import router as admin_router
from wealthhub.routes.auth import router as auth_router
from wealthhub.routes.balance import router as balance_router
from wealthhub.routes.deposits import router as deposits_router
from wealthhub.routes.health import router as health_router
from wealthhub.routes.kyc import router as kyc_router
from wealthhub.routes.payment_methods import router as payment_methods_router
from wealthhub.routes.profile import router as profile_router
from wealthhub.routes.referrals import router as referrals_router
from wealthhub.routes.withdrawal_accounts import router as withdrawal_accounts_router
from wealthhub.routes.withdrawals import router as withdrawals_router

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def _get_cors_origins() -> list[str]:
    """
    Get allowed CORS origins based on environment.

    - ENVIRONMENT=production: uses CORS_ALLOWED_ORIGINS (none allowed if unset)
    - anything else: allows all origins for local development of the web client

    Returns:
        List of allowed origin URLs, or ["*"] for development.
    """
    if settings.is_production():
        if settings.CORS_ALLOWED_ORIGINS:
            logger.info(
                f"CORS configured for production with {len(settings.CORS_ALLOWED_ORIGINS)} allowed origins"
            )
            return settings.CORS_ALLOWED_ORIGINS
        logger.warning(
            "CORS_ALLOWED_ORIGINS not set in production. "
            "No web origins allowed. Set CORS_ALLOWED_ORIGINS for the web client."
        )
        return []

    logger.info(f"CORS configured for {settings.ENVIRONMENT}: allowing all origins")
    return ["*"]


# Create FastAPI app
app = FastAPI(
    title="Whitestones Wealth Hub API",
    description="Backend service for the Whitestones Wealth Hub investment platform",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Log validation errors and return them in the standard error shape.

    Request bodies are not logged; they can carry identity or payout details.
    """
    logger.error(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "details": jsonable_errors(exc),
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx values (e.g. the ValueError raised by a model validator) are not JSON serializable
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


# Configure CORS with environment-based origins
cors_origins = _get_cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(kyc_router)
app.include_router(withdrawal_accounts_router)
app.include_router(deposits_router)
app.include_router(withdrawals_router)
app.include_router(balance_router)
app.include_router(activity_router)
app.include_router(referrals_router)
app.include_router(payment_methods_router)
app.include_router(admin_router)

logger.info("FastAPI app initialized successfully")
