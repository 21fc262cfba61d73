import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from rental_api.api import bookings, health
from rental_api.core.config import settings
from rental_api.core.exceptions import BookingAPIError
from rental_api.core.logger import setup_logging, logger
from rental_api.services.db_service import BookingRepository, MongoConnection

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"🚀 Starting {settings.PROJECT_NAME} on http://{settings.HOST}:{settings.PORT}")
    mongo = MongoConnection()
    await asyncio.to_thread(mongo.connect)
    if mongo.is_connected:
        await asyncio.to_thread(BookingRepository(mongo).ensure_indexes)
    app.state.mongo = mongo
    logger.info(f"📊 Database state: {'✅ Connected' if mongo.is_connected else '❌ Disconnected'}")
    yield
    # Shutdown
    logger.info("🛑 Shutting down gracefully...")
    await asyncio.to_thread(mongo.close)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    # Registered before CORS so that fallback 500s still get CORS headers
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {exc!r}")
        response = JSONResponse(status_code=500, content=error_body("Internal server error", str(exc)))
    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f} ms)")
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

def error_body(message: str, detail: str = None) -> dict:
    body = {"success": False, "message": message}
    if settings.debug and detail:
        body["error"] = detail
    return body

@app.exception_handler(BookingAPIError)
async def booking_error_handler(request: Request, exc: BookingAPIError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.detail))

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # An unsupported method on a known path is reported like an unknown route
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content=error_body(f"Route {request.url.path} not found"))
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)), headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=error_body("Invalid request", str(exc.errors())))

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {exc!r}")
    return JSONResponse(
        status_code=500,
        content=error_body("Internal server error", str(exc))
    )

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(bookings.router, prefix=settings.API_PREFIX, tags=["Bookings"])

# Preflight without CORS request headers still gets an answer on every path
@app.options("/{path:path}", include_in_schema=False)
async def options_fallback(path: str):
    return Response(status_code=204)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rental_api.main:app", host=settings.HOST, port=settings.PORT)
