"""
Plastix 2.0 - Backend API
Main FastAPI application entry point
"""

# Load environment variables from .env file FIRST
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import router
from errors import PlastixError
from settings import Settings, get_settings
from vision import OpenAIClient, PlastixPipeline


VERSION = "2.0.0"


async def handle_plastix_error(request: Request, exc: PlastixError):
    print(f"[ERR] {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) for err in exc.errors())
    return JSONResponse({"error": f"Invalid request: {fields}"}, status_code=400)


async def handle_unexpected_error(request: Request, exc: Exception):
    print(f"[ERR] Unhandled error on {request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse({"error": "Failed to process image"}, status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[OpenAIClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Process settings (defaults to the environment)
        client: Upstream client to share across requests (created if omitted)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        upstream = client or OpenAIClient(settings)
        if not settings.has_credentials:
            print("[WARN] OPENAI_API_KEY not set - upstream calls will fail")
        app.state.settings = settings
        app.state.pipeline = PlastixPipeline(upstream, settings)
        print(f"[OK] Plastix API ready (timeout={settings.upstream_timeout:.0f}s, retries={settings.max_retries})")
        try:
            yield
        finally:
            await upstream.aclose()

    app = FastAPI(
        title="Plastix 2.0",
        description="Identify plastics in photos and visualize environments without plastic pollution",
        version=VERSION,
        lifespan=lifespan,
    )

    # Configure CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PlastixError, handle_plastix_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Include API routes
    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "message": "Plastix 2.0 API",
            "docs": "/docs",
            "version": VERSION,
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "upstream_configured": settings.has_credentials,
        }

    return app


app = create_app()
