"""FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from file_search_proxy.api.routes import router as file_search_router
from file_search_proxy.core.config import Settings, get_settings
from file_search_proxy.core.exceptions import FileSearchError
from file_search_proxy.core.logging import configure_logging
from file_search_proxy.schemas.file_search import HealthResponse

settings = get_settings()
logger = configure_logging(settings.log_level, settings.log_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Gemini File Search proxy starting")
    if not settings.api_key_configured:
        logger.warning("GEMINI_API_KEY is not configured; remote calls will fail")
    yield
    logger.info("Gemini File Search proxy shutting down")


app = FastAPI(title="Gemini File Search API", version="0.2.0", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(file_search_router, prefix=settings.api_prefix)


@app.exception_handler(FileSearchError)
async def file_search_error_handler(request: Request, exc: FileSearchError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("[%s %s] %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("[%s %s] Invalid request", request.method, request.url.path)
    content = {"success": False, "error": {"message": "Invalid request", "details": exc.errors()}}
    return JSONResponse(status_code=400, content=jsonable_encoder(content))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[%s %s] Unhandled error", request.method, request.url.path)
    content = {"success": False, "error": {"message": "Internal server error", "details": str(exc)}}
    return JSONResponse(status_code=500, content=content)


@app.get("/", response_model=HealthResponse, tags=["health"])
def healthcheck(current: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(status="ok", api_key_configured=current.api_key_configured)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("file_search_proxy.main:app", host="0.0.0.0", port=8000)
