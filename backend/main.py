from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import logging
import time
import uuid

from api_people import router as people_router
from api_links import router as links_router
from api_feature_requests import router as feature_requests_router
from api_events import router as events_router
from api_health import router as health_router
from config import CORS_ORIGIN
from db_sqlite import init_db
from utils.structured_log import structured_log_line

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("people_web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        raise
    logger.info("People Web server ready")

    yield

    logger.info("People Web server shutting down")


app = FastAPI(
    title="People Web Backend",
    description="People, their relationships, and a live change stream for every connected canvas.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(people_router)
app.include_router(links_router)
app.include_router(feature_requests_router)
app.include_router(events_router)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    start = time.perf_counter()
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id

    response = None
    try:
        response = await call_next(request)
    finally:
        latency_ms = int((time.perf_counter() - start) * 1000)
        status_code = getattr(response, "status_code", 500)
        logger.info(
            structured_log_line(
                {
                    "event": "request",
                    "request_id": request_id,
                    "route": request.url.path,
                    "method": request.method,
                    "status": status_code,
                    "latency_ms": latency_ms,
                }
            )
        )

    response.headers["x-request-id"] = request_id
    return response


def _request_fields(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "request_id": getattr(request.state, "request_id", None),
    }


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx can hold exception objects that json can't encode
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


# Centralized error handling: every error leaves as {"detail": ...}
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """4xx are the client's problem (WARNING); 5xx are ours (ERROR)."""
    fields = {**_request_fields(request), "status_code": exc.status_code, "detail": exc.detail}
    message = f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}"
    if exc.status_code >= 500:
        logger.error(message, extra=fields)
    else:
        logger.warning(message, extra=fields)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_errors(exc)
    logger.warning(
        f"{request.method} {request.url.path} -> 422: invalid request body",
        extra={**_request_fields(request), "errors": errors},
    )
    return JSONResponse(status_code=422, content={"detail": errors})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log the full traceback; the client only sees a generic message."""
    logger.exception(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        extra={**_request_fields(request), "exception_message": str(exc)},
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
def read_root():
    return {"status": "ok", "message": "People Web backend is running"}


if __name__ == "__main__":
    import uvicorn
    from config import PORT
    uvicorn.run(app, host="0.0.0.0", port=PORT)
