import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL, FirebaseConfigError, load_firebase_config, validate_firebase_config
from .domain.accounts.router import router as accounts_router
from .domain.appointments.router import router as appointments_router
from .domain.practitioners.router import router as practitioners_router
from .domain.users.router import router as users_router
from .firebase import close_http_client
from .route_guard import RouteGuardMiddleware, login_redirect

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("google").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        config = validate_firebase_config(load_firebase_config())
        logger.info(f"Firebase project: {config.projectId}")
    except FirebaseConfigError as e:
        # Public routes still answer; anything touching Firebase will fail
        logger.error(str(e))

    yield

    await close_http_client()
    logger.info("Application shutting down...")


app = FastAPI(title="HolisticConnect API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            content = {
                "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
            }
            if getattr(request.state, "route_kind", None) == "protected":
                content["redirect"] = login_redirect(request.url.path)
            return JSONResponse(status_code=401, content=content)

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


app.add_middleware(RouteGuardMiddleware)

# CORS Configuration
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Routes
app.include_router(accounts_router)
app.include_router(users_router)
app.include_router(practitioners_router)
app.include_router(appointments_router)


@app.get("/")
def root():
    return {"message": "HolisticConnect API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
