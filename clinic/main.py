from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
import time
import logging

import httpx
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes import admin, doctor, patient
from .core.config import settings
from .core.database import create_db_engine, create_session_factory, init_db
from .core.errors import LoginRequired, ServerError
from .core.session import RedisSessionStore
from .services.auth_service import AuthService
from .services.media import CloudinaryUploader
from .services.notifications import EmailNotifier

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Clinic portal: doctor onboarding, admin review and appointment confirmation",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Middleware setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Only add TrustedHostMiddleware in production, not in testing
if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost", "testserver"]
    )

# Custom middleware for request logging and timing
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Log request
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.4f}s"
    )

    return response

# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    content = {"success": False, "message": exc.detail}
    if isinstance(exc, ServerError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.internal}")
        if settings.DEBUG and exc.internal:
            content["details"] = exc.internal
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body")
        problems.append(f"{field}: {error['msg']}" if field else error["msg"])
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "; ".join(problems)}
    )

@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(exc.redirect_url, status_code=302)

# Include routers
app.include_router(admin.login_router)
app.include_router(admin.router)
app.include_router(doctor.router)
app.include_router(patient.verify_router)
app.include_router(patient.router)

# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Build the store clients and seed the admin account."""
    logger.info("Starting Clinic Portal...")

    db_url = settings.get_database_url
    db_type = "PostgreSQL" if "postgresql" in db_url else "SQLite" if "sqlite" in db_url else "Unknown"
    logger.info(f"Using {db_type} database")

    engine = create_db_engine(db_url)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    try:
        init_db(engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    db = app.state.session_factory()
    try:
        AuthService(db).seed_admin(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    finally:
        db.close()

    app.state.session_store = RedisSessionStore.from_url(
        settings.REDIS_URL, settings.SESSION_MAX_AGE_SECONDS
    )
    app.state.media_uploader = CloudinaryUploader(
        httpx.AsyncClient(),
        settings.CLOUDINARY_CLOUD_NAME,
        settings.CLOUDINARY_API_KEY,
        settings.CLOUDINARY_API_SECRET,
        timeout=settings.UPLOAD_TIMEOUT_SECONDS,
    )
    app.state.notifier = EmailNotifier(
        settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        sender=settings.SMTP_FROM,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )

    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_event():
    """Close the store clients."""
    logger.info("Shutting down Clinic Portal...")
    await app.state.media_uploader.close()
    app.state.session_store.close()
    app.state.engine.dispose()

# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.VERSION
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "clinic.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
