import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from blog_api.core.config import settings
from blog_api.core.errors import persistence_error_handler, request_validation_handler
from blog_api.db.session import init_db

# Import models to ensure they are registered with SQLModel metadata
import blog_api.models  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies whose declared size exceeds MAX_UPLOAD_BYTES."""

    async def dispatch(self, request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.MAX_UPLOAD_BYTES:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"detail": "Request body is too large"},
            )
        return await call_next(request)


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Blog content management API"
)

app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, persistence_error_handler)


@app.get("/")
def read_root():
    return {"message": "Welcome to the Blog CMS API. Visit /docs for Swagger UI."}

from blog_api.routers import auth, admin, posts, taxonomy

app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])
app.include_router(posts.router, prefix="/api/v1/posts", tags=["posts"])
app.include_router(taxonomy.router, prefix="/api/v1", tags=["taxonomy"])

app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
