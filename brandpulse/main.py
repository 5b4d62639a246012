import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from brandpulse import __version__
from brandpulse.config import get_settings
from brandpulse.database import engine, init_db
from brandpulse.errors import BrandPulseError
from brandpulse.health import healthcheck
from brandpulse.logging_config import configure_app_logging
from brandpulse.routers import accounts, auth, billing, content, mentions, schedule, sentiment

configure_app_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="BrandPulse API",
    description="Social mention monitoring, sentiment analytics and AI post scheduling",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS - Allow frontend domain
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",      # Next.js dev server
        "http://localhost:5173",       # Vite dev server
        "http://localhost:8000",       # Same domain (testing)
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(accounts.router)
app.include_router(mentions.router)
app.include_router(sentiment.router)
app.include_router(content.router)
app.include_router(schedule.router)
app.include_router(billing.router)


@app.exception_handler(BrandPulseError)
async def brandpulse_error_handler(request: Request, exc: BrandPulseError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()
        ]},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.on_event("startup")
async def startup():
    """Initialize database and log startup."""
    try:
        init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database init failed: {e}")
    logger.info("BrandPulse API starting up")


@app.on_event("shutdown")
async def shutdown():
    """Log shutdown."""
    logger.info("BrandPulse API shutting down")


@app.get("/healthz")
def health_check():
    """Health check endpoint."""
    result = healthcheck(engine)
    if result["status"] != "ok":
        raise HTTPException(status_code=503, detail="Service unhealthy")
    return result


@app.get("/")
def root():
    """Root endpoint - service information."""
    return {
        "service": "BrandPulse API",
        "version": __version__,
        "description": "Social mention monitoring, sentiment analytics and AI post scheduling",
        "endpoints": {
            "health": "/healthz",
            "auth": "/auth",
            "accounts": "/accounts",
            "mentions": "/mentions",
            "sentiment": "/sentiment",
            "content": "/content",
            "schedule": "/schedule",
            "billing_webhook": "/billing/webhook",
            "docs": "/docs",
            "redoc": "/redoc"
        }
    }
