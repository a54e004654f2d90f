"""
Math Solver AI - local server (Groq backend)

- Proxies chat / vision requests to Groq
- Lists chat-capable Groq models, with a hardcoded fallback
- Serves the static frontend

Usage:
    GROQ_API_KEY=your_key math-solver-ai
    open http://localhost:3000
"""

import errno
import socket
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request

from chat import complete_chat, parse_chat_request
from config import Settings, load_settings, mask_secret
from errors import APIError, error_response, json_response
from groq_client import GroqClient
from logging_config import ROOT_LOGGER_NAME, install_fault_handlers, setup_logging
from middleware import CORSMiddleware, RequestTracingMiddleware
from model_catalog import list_models
from models import ChatResponse, HealthResponse, ModelsResponse
from request_body import MAX_CHAT_BYTES, read_limited_body
from static_files import serve_static

__version__ = "1.0.0"

STARTED_AT = time.monotonic()

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]

# =====================================================
# CONFIGURATION & LOGGING
# =====================================================

settings = load_settings()

logger = setup_logging(
    name=ROOT_LOGGER_NAME,
    level=settings.log_level,
    json_format=True if settings.environment == "production" else None,
)

# =====================================================
# DEPENDENCIES
# =====================================================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_groq(request: Request) -> GroqClient:
    return request.app.state.groq

# =====================================================
# ROUTES
# =====================================================

router = APIRouter()

@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):
    payload = HealthResponse(
        uptimeSec=round(time.monotonic() - STARTED_AT),
        apiKey=settings.api_key_status,
    )
    return json_response(200, payload.model_dump())

@router.get("/api/models")
async def available_models(groq: GroqClient = Depends(get_groq)):
    payload = ModelsResponse(models=await list_models(groq))
    return json_response(200, payload.model_dump())

@router.post("/api/chat")
async def chat_proxy(request: Request, groq: GroqClient = Depends(get_groq)):
    raw_body = await read_limited_body(request, MAX_CHAT_BYTES)
    payload = parse_chat_request(raw_body)
    text = await complete_chat(groq, payload)
    return json_response(200, ChatResponse(text=text).model_dump())

@router.api_route("/api/{rest:path}", methods=ALL_METHODS)
async def unknown_api_route(request: Request):
    raise APIError(404, f"Unknown API route: {request.method} {request.url.path}")

@router.api_route("/{path:path}", methods=ALL_METHODS)
async def static(request: Request, settings: Settings = Depends(get_settings)):
    return serve_static(settings.static_root, request.url.path)

# =====================================================
# EXCEPTION HANDLERS
# =====================================================

async def api_error_handler(request: Request, exc: APIError):
    if exc.cause is not None:
        logger.error(exc.message, exc_info=exc.cause)
    else:
        logger.error(exc.message)
    return error_response(exc.status_code, exc.message, exc.headers)

async def general_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Uncaught exception: {exc}", exc_info=exc)
    return error_response(500, "Internal server error")

# =====================================================
# FASTAPI APP
# =====================================================

def log_startup(settings: Settings) -> None:
    logger.info("Math Solver AI server is running (Groq backend)")
    if not settings.serverless:
        logger.info(f"URL: http://localhost:{settings.port}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Static root: {settings.static_root}")
    if not settings.groq_api_key:
        logger.warning("*** GROQ_API_KEY is not set! Set it before starting: GROQ_API_KEY=your_key math-solver-ai ***")
    else:
        logger.info(f"Groq API key detected ({mask_secret(settings.groq_api_key)}). Ready to handle requests.")

def create_app(settings: Optional[Settings] = None, groq: Optional[GroqClient] = None) -> FastAPI:
    settings = settings or load_settings()
    groq = groq or GroqClient(api_key=settings.groq_api_key)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        install_fault_handlers(logger)
        log_startup(settings)
        yield
        logger.info("Math Solver AI server shutting down")

    app = FastAPI(
        title="Math Solver AI",
        description="Local proxy for Groq chat/vision models plus the static frontend",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.groq = groq

    app.add_middleware(CORSMiddleware)
    app.add_middleware(RequestTracingMiddleware)

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(router)
    return app

app = create_app(settings)

# =====================================================
# LOCAL SERVER
# =====================================================

def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listen socket up front so a busy port is a clean exit(1)."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        if e.errno == errno.EADDRINUSE:
            logger.error(f"Port {port} is already in use.")
            logger.error("Stop the process holding it or set PORT to a different value.")
        else:
            logger.error(f"Server failed to start: {e}", exc_info=True)
        sys.exit(1)
    sock.set_inheritable(True)
    return sock

def main() -> int:
    settings = app.state.settings
    if settings.serverless:
        logger.info("VERCEL detected: the platform imports `app` from api/index.py, not binding a socket")
        return 0

    sock = bind_socket(settings.host, settings.port)
    config = uvicorn.Config(
        app,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
    uvicorn.Server(config).run(sockets=[sock])
    return 0

if __name__ == "__main__":
    sys.exit(main())
