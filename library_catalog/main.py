import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from starlette.middleware.base import BaseHTTPMiddleware
from library_catalog.config import settings
from library_catalog.database import init_db
from library_catalog.exceptions import LibraryError
from library_catalog.routes import book, borrowing

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log each request with its outcome and duration."""
    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} - IP: {client_ip} - "
            f"{response.status_code} in {elapsed_ms:.1f}ms"
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and the upload directory before serving requests."""
    logger.info("Initializing database...")
    init_db()
    Path(settings.image_upload_dir, settings.image_folder).mkdir(parents=True, exist_ok=True)

    yield

    logger.info("Library Catalog API stopped")


app = FastAPI(
    title="Library Catalog API",
    description="Book catalog with soft deletion, cover images and borrowing ledger",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Logging middleware (last, to log everything)
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(book.router)
app.include_router(borrowing.router)


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.get("/")
async def root():
    return {"message": "Library Catalog API", "version": "1.0.0"}

@app.get("/api/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "library_catalog.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
