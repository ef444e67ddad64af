import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from db import close_pool, db_healthcheck
from init_db import init_database
from logging_config import setup_logging
from utils import UPLOAD_ROOT, setup_upload_directories

# --- 1. Logging first, so every import below can log ---
setup_logging(settings.log_level)
logger = logging.getLogger("mario")


# --- 2. Startup / shutdown ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Mario backend starting (env=%s)", settings.environment)
    logger.info("Frontend URL: %s", settings.frontend_url)
    logger.info("Database: %s", "configured" if settings.database_url else "not configured")
    # Create tables on every start; sync psycopg, so off the event loop
    await asyncio.to_thread(init_database)
    yield
    await close_pool()


# --- 3. Application ---
app = FastAPI(title="Mario Marketplace API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- 4. Uploaded files (avatars) ---
# e.g. <img src="/uploads/avatars/..."> maps to the upload folder
setup_upload_directories()
app.mount("/uploads", StaticFiles(directory=UPLOAD_ROOT), name="uploads")


# --- 5. Uniform error envelope: {"success": false, "error": "..."} ---
def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        # No route matched at all
        return error_response(404, "Route not found")
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """FastAPI answers 422 by default; the API contract says 400 with a readable message."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"success": False, "error": "; ".join(messages) or "Invalid request"}),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


# --- 6. Routers ---
from routes.auth import router as auth_router  # noqa: E402
from routes.services import router as services_router  # noqa: E402
from routes.users import router as users_router  # noqa: E402

app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(services_router, prefix="/api/services", tags=["services"])
app.include_router(users_router, prefix="/api/users", tags=["users"])


# --- 7. Liveness probe ---
@app.get("/api/health", tags=["health"])
async def health():
    database_ok = await db_healthcheck()
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": "Mario backend is running!",
        "database": "ok" if database_ok else "unreachable",
    }


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=not settings.is_production)
