from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.config import get_settings
from ..core.context import AppContext, get_context
from ..core.errors import BookstoreError, ValidationError
from .routers.books import router as books_router
from .routers.cart import router as cart_router
from .routers.reviews import router as reviews_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: report which backend the repositories use.
    Shutdown: close the MongoDB client, if one was created.
    """
    ctx = get_context()
    logger.info(f"Startup: using the {ctx.backend} backend.")
    yield
    ctx.close()


app = FastAPI(title=settings.PROJECT_NAME, version="0.1.0", lifespan=lifespan)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON, a non-object body or an unparsable parameter => 400."""
    in_body = any((error.get("loc") or ("",))[0] == "body" for error in exc.errors())
    message = "Invalid request body" if in_body else "Invalid request parameters"
    logger.info(f"{request.method} {request.url.path} rejected: {exc.errors()}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(BookstoreError)
async def bookstore_error_handler(request: Request, exc: BookstoreError):
    # Detail stays in the server log only.
    logger.error(f"{request.method} {request.url.path} failed: {exc!r}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


app.include_router(books_router, prefix=settings.API_PREFIX)
app.include_router(reviews_router, prefix=settings.API_PREFIX)
app.include_router(cart_router, prefix=settings.API_PREFIX)


@app.get("/")
def root(ctx: AppContext = Depends(get_context)):
    """Health check endpoint."""
    return {"status": "ok", "service": "amana-bookstore", "backend": ctx.backend}
