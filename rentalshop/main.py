import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import analytics, orders
from .config import settings
from .core.errors import ApiError, ErrorCode, ERROR_MESSAGES
from .core.logging import setup_logging
from .core.responses import jsonable
from .services.redis import redis_client

logger = logging.getLogger(__name__)


app = FastAPI(title="Rental Shop Orders API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add response time header"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=jsonable(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = ApiError(ErrorCode.INVALID_PAYLOAD, details=jsonable(exc.errors()))
    return JSONResponse(status_code=400, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = {401: ErrorCode.UNAUTHORIZED, 403: ErrorCode.FORBIDDEN}.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else ERROR_MESSAGES.get(code, code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": message, "code": code, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = ApiError(ErrorCode.INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=500, content=error.to_dict())


@app.on_event("startup")
async def startup_event():
    """Configure logging and check the Redis connection"""
    setup_logging()
    try:
        redis_client.ping()
        logger.info("Redis connected successfully")
    except Exception as e:
        logger.warning("Redis connection failed: %s", e)


@app.on_event("shutdown")
async def shutdown_event():
    redis_client.close()
    logger.info("Redis connection closed")


app.include_router(orders.router)
app.include_router(analytics.router)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
