import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from conduit.cache import cache
from conduit.config import settings
from conduit.exceptions import ConduitError, ConfigurationError
from conduit.middleware import TimingMiddleware
from conduit.routers import articles, profiles, tags, users

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def setup_logging() -> None:
    """Configure the root logger from ``settings.LOG_LEVEL``."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if not settings.JWT_SECRET:
        logger.warning("JWT_SECRET is not set; login and registration will fail")
    try:
        await cache.connect()
    except Exception as exc:
        # App works without Redis
        logger.warning("Cache unavailable: %s", exc)
    yield
    await cache.disconnect()


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"errors": {field: message}}``."""

    @app.exception_handler(ConduitError)
    async def conduit_error_handler(request: Request, exc: ConduitError):
        if isinstance(exc, ConfigurationError):
            logger.error("Configuration error on %s: %s", request.url.path, exc.message)
        else:
            logger.debug("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"errors": exc.errors})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = {}
        for error in exc.errors():
            # ("body", "user", "email") -> "user.email"
            loc = [str(part) for part in error["loc"][1:]] or [str(error["loc"][0])]
            errors[".".join(loc)] = error["msg"]
        return JSONResponse(status_code=422, content={"errors": errors})


app = FastAPI(
    title="Conduit API",
    description="Social blogging backend: articles, comments, profiles, follows and favorites",
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

register_exception_handlers(app)

# Routers
app.include_router(users.router)
app.include_router(profiles.router)
app.include_router(articles.router)
app.include_router(tags.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION, "cache": cache.stats}
